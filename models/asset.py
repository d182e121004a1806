"""Asset data models"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class CloudinaryAsset:
    """Record of a local asset and the Cloudinary URL that serves it"""
    publish_path: str  # Root-relative path inside the publish directory
    cloudinary_url: str
    public_id: Optional[str]
    source_url: Optional[str]  # Local file path (upload) or remote URL (fetch)
    publish_url: Optional[str] = None  # Absolute URL of the original on the site host
    media_type: str = "images"
    mime_type: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    bytes_size: int = 0
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CloudinaryAsset":
        values = dict(data)
        created_at = values.get("created_at")
        if isinstance(created_at, str):
            values["created_at"] = datetime.fromisoformat(created_at)
        elif created_at is None:
            values.pop("created_at", None)
        return cls(**values)


@dataclass(frozen=True)
class AssetDirectory:
    """Directory of the publish output whose files are served from Cloudinary"""
    name: str
    input_key: str
    path: str


CLOUDINARY_ASSET_DIRECTORIES = (
    AssetDirectory(name="images", input_key="imagesPath", path="/images"),
)
