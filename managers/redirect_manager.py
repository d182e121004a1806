"""Redirect generation for the upload and fetch delivery types"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from cloudinary_client import get_cloudinary_url
from managers.asset_registry import AssetRegistry
from managers.config_manager import normalize_media_paths
from models.asset import CLOUDINARY_ASSET_DIRECTORIES
from models.redirect import Redirect

logger = logging.getLogger("Cloudinary")

# Public prefix that serves the original files for Cloudinary to fetch
PUBLIC_ASSET_PATH = "cloudinary-assets"
REDIRECTS_FILENAME = "_redirects"


def build_upload_redirects(registry: AssetRegistry) -> List[Redirect]:
    """One redirect per uploaded asset, from its publish path to its Cloudinary URL.

    Uploaded assets are addressed by their own public IDs, so there is no
    generic pattern to map a directory onto; each asset gets its own rule.
    """
    return [
        Redirect(from_path=f"{asset.publish_path}*", to=asset.cloudinary_url, status=302, force=True)
        for asset in registry.get_assets()
    ]


def build_fetch_redirects(
    host: str,
    folder: Optional[str] = None,
    inputs: Optional[Dict[str, Any]] = None,
    upload_preset: Optional[str] = None,
) -> List[Redirect]:
    """Generic per-directory redirects for the fetch delivery type.

    Requests for /images/* go to Cloudinary, which fetches the original from
    /cloudinary-assets/images/*. That prefix is rewritten (status 200) back to
    the real file, so Cloudinary's fetch does not hit the redirect again.
    """
    inputs = inputs or {}
    redirects: List[Redirect] = []
    for directory in CLOUDINARY_ASSET_DIRECTORIES:
        for media_path in normalize_media_paths(inputs.get(directory.input_key), directory.path):
            cld_asset_path = f"/{PUBLIC_ASSET_PATH}{media_path}"
            cld_asset_url = f"{host}{cld_asset_path}"

            asset_redirect = get_cloudinary_url(
                delivery_type="fetch",
                folder=folder,
                path=f"{cld_asset_url}/:splat",
                remote_host=host,
                upload_preset=upload_preset,
            )

            redirects.append(Redirect(
                from_path=f"{media_path}/*",
                to=asset_redirect.cloudinary_url,
                status=302,
                force=True,
            ))
            redirects.append(Redirect(
                from_path=f"{cld_asset_path}/*",
                to=f"{media_path}/:splat",
                status=200,
                force=True,
            ))
    return redirects


def render_redirects_file(redirects: Iterable[Redirect]) -> str:
    lines = [redirect.to_line() for redirect in redirects]
    return "\n".join(lines) + "\n" if lines else ""


def write_redirects_file(
    publish_dir: Union[str, Path],
    redirects: Iterable[Redirect],
    filename: Union[str, Path, None] = None,
) -> Path:
    """Write redirects ahead of any rules already present in the _redirects file.

    Existing lines identical to a generated rule are dropped, so writing the
    same rules again (e.g. a rebuild into the same directory) is idempotent.
    """
    target = Path(filename) if filename else Path(publish_dir) / REDIRECTS_FILENAME
    rendered = render_redirects_file(redirects)
    generated = set(rendered.splitlines())

    existing = target.read_text(encoding="utf-8") if target.exists() else ""
    kept = [line for line in existing.splitlines(keepends=True) if line.strip() not in generated]
    content = rendered + "".join(kept)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")
    logger.info(f"Wrote redirects to {target}")
    return target


class RedirectManager:
    """Adds redirect rules to the host build configuration"""

    def __init__(self, netlify_config: Dict[str, Any]):
        self.netlify_config = netlify_config
        self.netlify_config.setdefault("redirects", [])

    @property
    def redirects(self) -> List[Dict[str, Any]]:
        return self.netlify_config["redirects"]

    def prepend(self, redirects: List[Redirect]) -> int:
        """Insert redirects ahead of existing rules, keeping their given order"""
        self.netlify_config["redirects"][:0] = [redirect.to_dict() for redirect in redirects]
        return len(redirects)
