"""URL helpers and content hashing for assets sent to Cloudinary"""

import hashlib
import logging
import mimetypes
import posixpath
from pathlib import Path
from typing import Any, Dict, Optional, Union
from urllib.parse import urlparse

import requests
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger("Cloudinary")

REMOTE_URL_PREFIXES = ("http://", "https://")
HASH_CHUNK_SIZE = 65536


def is_remote_url(url: Optional[str]) -> bool:
    """Check whether url points at a remote http(s) resource"""
    return bool(url) and url.lower().startswith(REMOTE_URL_PREFIXES)


def ensure_host(host: Optional[str]) -> Optional[str]:
    """Normalise a host to https://example.com form (scheme, no trailing slash)."""
    if not host:
        return None
    host = host.strip()
    if not is_remote_url(host):
        host = "https://" + host.lstrip("/")
    return host.rstrip("/")


def determine_remote_url(url: str, host: str) -> str:
    """Return an absolute URL for url, joining local paths onto host.

    Remote URLs are returned unchanged.
    """
    if is_remote_url(url):
        return url
    base = ensure_host(host)
    return f"{base}/{url.lstrip('/')}"


def resolve_page_url(src: str, page_path: Optional[str] = None) -> str:
    """Resolve an image reference found on a page to a root-relative publish path.

    Args:
        src: Value of the src/href/srcset candidate as written in the HTML
        page_path: Root-relative publish path of the page (e.g. "/blog/index.html")

    Returns:
        Root-relative path for relative references; anything absolute,
        remote, protocol-relative or a data URI is returned as-is.
    """
    if not src or not page_path:
        return src
    parsed = urlparse(src)
    if parsed.scheme or parsed.netloc or src.startswith(("/", "#")):
        return src

    page_dir = posixpath.dirname("/" + page_path.lstrip("/"))
    resolved = posixpath.normpath(posixpath.join(page_dir, parsed.path))
    # normpath keeps a leading "//" on POSIX
    resolved = "/" + resolved.lstrip("/")
    if parsed.query:
        resolved += f"?{parsed.query}"
    return resolved


def fetch_asset_bytes(asset_url: str, timeout: int = 30) -> bytes:
    """Fetch asset bytes from a remote URL"""
    try:
        response = requests.get(asset_url, timeout=timeout)
        response.raise_for_status()
        return response.content
    except requests.RequestException as e:
        logger.error(f"Failed to fetch asset from {asset_url}: {e}")
        raise


def hash_file(path: Union[str, Path]) -> str:
    """MD5 hex digest of a local file, read in chunks"""
    digest = hashlib.md5()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(HASH_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def create_public_id(path: str) -> str:
    """Build a content-addressed Cloudinary public ID for a file.

    The ID is "<name>-<md5 of content>" where name is the file name without
    its extension. Remote files are downloaded to compute the digest.
    """
    if is_remote_url(path):
        name = Path(urlparse(path).path).stem
        digest = hashlib.md5(fetch_asset_bytes(path)).hexdigest()
    else:
        name = Path(path).stem
        digest = hash_file(path)
    return f"{name}-{digest}"


def get_image_metadata(path: Union[str, Path]) -> Dict[str, Any]:
    """Extract width, height, format and mime type from an image file"""
    mime_type, _ = mimetypes.guess_type(str(path))
    try:
        with Image.open(path) as img:
            return {
                "width": img.width,
                "height": img.height,
                "format": img.format,
                "mime_type": Image.MIME.get(img.format or "", mime_type),
            }
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Failed to extract image metadata from {path}: {e}")
        return {"width": None, "height": None, "format": None, "mime_type": mime_type}
