"""Asset registry mapping published asset paths to Cloudinary URLs"""

import logging
import threading
from typing import Any, Dict, List, Optional

from models.asset import CloudinaryAsset

logger = logging.getLogger("Cloudinary")


class AssetRegistry:
    """Build-wide table of assets known to Cloudinary, keyed by publish path"""

    def __init__(self):
        self._assets: Dict[str, CloudinaryAsset] = {}
        self._url_to_path: Dict[str, str] = {}  # publish_url -> publish_path
        self._lock = threading.Lock()
        self.collected = False

    def __len__(self) -> int:
        return len(self._assets)

    def __contains__(self, publish_path: str) -> bool:
        return publish_path in self._assets

    def register_asset(
        self,
        publish_path: str,
        cloudinary_url: str,
        public_id: Optional[str] = None,
        source_url: Optional[str] = None,
        publish_url: Optional[str] = None,
        media_type: str = "images",
        mime_type: Optional[str] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
        bytes_size: Optional[int] = None,
    ) -> CloudinaryAsset:
        """Register an asset, replacing any earlier record for the same path"""
        record = CloudinaryAsset(
            publish_path=publish_path,
            cloudinary_url=cloudinary_url,
            public_id=public_id,
            source_url=source_url,
            publish_url=publish_url,
            media_type=media_type,
            mime_type=mime_type,
            width=width,
            height=height,
            bytes_size=bytes_size or 0,
        )
        self._add(record)
        logger.debug(f"Registered {media_type} asset {publish_path} -> {cloudinary_url}")
        return record

    def _add(self, record: CloudinaryAsset):
        with self._lock:
            self._assets[record.publish_path] = record
            if record.publish_url:
                self._url_to_path[record.publish_url] = record.publish_path

    def get_asset(self, publish_path: str) -> Optional[CloudinaryAsset]:
        return self._assets.get(publish_path)

    def find_asset(self, url: Optional[str]) -> Optional[CloudinaryAsset]:
        """Look an asset up by either its publish path or its absolute publish URL"""
        if not url:
            return None
        record = self._assets.get(url)
        if record:
            return record
        publish_path = self._url_to_path.get(url)
        if publish_path:
            return self._assets.get(publish_path)
        return None

    def get_assets(self, media_type: Optional[str] = None) -> List[CloudinaryAsset]:
        with self._lock:
            records = list(self._assets.values())
        if media_type is None:
            return records
        return [record for record in records if record.media_type == media_type]

    def media_types(self) -> List[str]:
        seen: List[str] = []
        for record in self.get_assets():
            if record.media_type not in seen:
                seen.append(record.media_type)
        return seen

    def clear(self):
        with self._lock:
            self._assets.clear()
            self._url_to_path.clear()
            self.collected = False

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        """Serialise as {media_type: [asset dict, ...]} for the build environment"""
        data: Dict[str, List[Dict[str, Any]]] = {}
        for record in self.get_assets():
            data.setdefault(record.media_type, []).append(record.to_dict())
        return data

    def load_dict(self, data: Dict[str, List[Dict[str, Any]]]) -> int:
        """Restore assets from the shape produced by to_dict(). Returns the count loaded."""
        count = 0
        for media_type, assets in (data or {}).items():
            for asset in assets or []:
                values = dict(asset)
                values.setdefault("media_type", media_type)
                self._add(CloudinaryAsset.from_dict(values))
                count += 1
        self.collected = True
        logger.debug(f"Restored {count} assets into registry")
        return count
