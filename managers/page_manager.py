"""Rewrites on-page image references in generated HTML to Cloudinary URLs"""

import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from asset_processor import resolve_page_url
from cloudinary_client import CloudinaryUrl, get_cloudinary_url
from managers.asset_registry import AssetRegistry

logger = logging.getLogger("Cloudinary")

CLOUDINARY_DELIVERY_HOSTS = ("res.cloudinary.com",)


@dataclass
class RewriteResult:
    html: str
    errors: List[Dict[str, str]] = field(default_factory=list)


def parse_srcset(srcset: str) -> List[Tuple[str, str]]:
    """Split a srcset attribute into (url, descriptor) candidates.

    URLs are runs of non-whitespace, so commas inside a URL (as in Cloudinary
    transformation strings) are kept; a descriptor runs to the next comma.
    """
    candidates: List[Tuple[str, str]] = []
    pos, length = 0, len(srcset)
    while pos < length:
        while pos < length and (srcset[pos].isspace() or srcset[pos] == ","):
            pos += 1
        if pos >= length:
            break

        start = pos
        while pos < length and not srcset[pos].isspace():
            pos += 1
        url = srcset[start:pos]

        descriptor = ""
        if url.endswith(","):
            url = url.rstrip(",")
        else:
            end = srcset.find(",", pos)
            if end == -1:
                end = length
            descriptor = srcset[pos:end].strip()
            pos = end
        candidates.append((url, descriptor))
    return candidates


def format_srcset(candidates: List[Tuple[str, str]]) -> str:
    return ", ".join(f"{url} {descriptor}" if descriptor else url for url, descriptor in candidates)


def should_skip(src: Optional[str]) -> bool:
    """Images without a source, inline data URIs and Cloudinary URLs are left alone"""
    if not src or src.startswith("data:"):
        return True
    return urlparse(src).netloc in CLOUDINARY_DELIVERY_HOSTS


class PageRewriter:
    """Resolves Cloudinary URLs for the images found on one or more pages"""

    def __init__(
        self,
        registry: AssetRegistry,
        delivery_type: str,
        folder: Optional[str] = None,
        upload_preset: Optional[str] = None,
        local_dir: Optional[str] = None,
        remote_host: Optional[str] = None,
        loading_strategy: str = "lazy",
    ):
        self.registry = registry
        self.delivery_type = delivery_type
        self.folder = folder
        self.upload_preset = upload_preset
        self.local_dir = local_dir
        self.remote_host = remote_host
        self.loading_strategy = loading_strategy
        self._lock = threading.Lock()
        self._pending: Dict[str, Future] = {}  # key -> URL of an upload in flight

    def resolve_url(self, src: str, page_path: Optional[str] = None) -> str:
        """Return the Cloudinary URL for an image reference on a page.

        Uploaded assets collected before the build (or uploaded by an earlier
        page) are reused; anything else is resolved through the media API.
        """
        key = resolve_page_url(src, page_path)

        if self.delivery_type != "upload":
            return self._get_url(key).cloudinary_url

        # One upload per key; concurrent pages wait for the first one
        with self._lock:
            asset = self.registry.find_asset(key)
            if asset:
                return asset.cloudinary_url
            pending = self._pending.get(key)
            if pending is None:
                pending = self._pending[key] = Future()
                owner = True
            else:
                owner = False

        if not owner:
            return pending.result()

        try:
            result = self._get_url(key)
            self.registry.register_asset(
                publish_path=key,
                cloudinary_url=result.cloudinary_url,
                public_id=result.public_id,
                source_url=result.source_url,
            )
        except Exception as e:
            pending.set_exception(e)
            raise
        else:
            pending.set_result(result.cloudinary_url)
        finally:
            with self._lock:
                self._pending.pop(key, None)
        return result.cloudinary_url

    def _get_url(self, key: str) -> CloudinaryUrl:
        return get_cloudinary_url(
            delivery_type=self.delivery_type,
            folder=self.folder,
            path=key,
            local_dir=self.local_dir,
            upload_preset=self.upload_preset,
            remote_host=self.remote_host,
        )

    def rewrite(self, html: str, page_path: Optional[str] = None) -> RewriteResult:
        errors: List[Dict[str, str]] = []
        soup = BeautifulSoup(html, "html.parser")

        for img in soup.find_all("img"):
            img_src = img.get("src")
            if should_skip(img_src):
                continue

            try:
                cloudinary_url = self.resolve_url(img_src, page_path)
            except Exception as e:
                logger.warning(f"Failed to resolve Cloudinary URL for {img_src}: {e}")
                errors.append({"imgSrc": img_src, "message": str(e)})
                continue

            img["src"] = cloudinary_url
            img["loading"] = self.loading_strategy

            srcset = img.get("srcset")
            new_srcset = None
            if srcset:
                new_srcset = self._rewrite_srcset(srcset, page_path, errors)
                img["srcset"] = new_srcset

            # Preload hints for the same image, e.g. emitted by Next.js for
            # priority images, must point at the same URL to be useful
            for link in soup.find_all("link", attrs={"as": "image"}):
                if "preload" not in (link.get("rel") or []):
                    continue
                if link.get("href") == img_src:
                    link["href"] = cloudinary_url
                if srcset and link.get("imagesrcset") == srcset:
                    link["imagesrcset"] = new_srcset

        return RewriteResult(html=str(soup), errors=errors)

    def _rewrite_srcset(self, srcset: str, page_path: Optional[str], errors: List[Dict[str, str]]) -> str:
        candidates = []
        for url, descriptor in parse_srcset(srcset):
            if should_skip(url):
                candidates.append((url, descriptor))
                continue
            try:
                candidates.append((self.resolve_url(url, page_path), descriptor))
            except Exception as e:
                logger.warning(f"Failed to resolve Cloudinary URL for srcset entry {url}: {e}")
                errors.append({"imgSrc": url, "message": str(e)})
                candidates.append((url, descriptor))
        return format_srcset(candidates)


def update_html_images_to_cloudinary(
    html: str,
    *,
    registry: Optional[AssetRegistry] = None,
    delivery_type: str,
    folder: Optional[str] = None,
    upload_preset: Optional[str] = None,
    local_dir: Optional[str] = None,
    remote_host: Optional[str] = None,
    loading_strategy: str = "lazy",
    page_path: Optional[str] = None,
) -> RewriteResult:
    """Swap every <img> source (and srcset / preload link) in html for a Cloudinary URL.

    Args:
        html: Page markup
        registry: Assets collected before the build; used for upload lookups
        delivery_type: "fetch" or "upload"
        folder: Cloudinary folder for uploads
        upload_preset: Preset for unsigned uploads
        local_dir: Publish directory that local paths are relative to
        remote_host: Public site host, required for fetch
        loading_strategy: Value set on each rewritten image's loading attribute
        page_path: Root-relative path of the page, for resolving relative sources

    Returns:
        RewriteResult with the serialised document and a list of
        {"imgSrc", "message"} errors for images that could not be resolved
    """
    rewriter = PageRewriter(
        registry=registry if registry is not None else AssetRegistry(),
        delivery_type=delivery_type,
        folder=folder,
        upload_preset=upload_preset,
        local_dir=local_dir,
        remote_host=remote_host,
        loading_strategy=loading_strategy,
    )
    return rewriter.rewrite(html, page_path=page_path)
