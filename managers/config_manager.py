"""Plugin configuration resolved from build inputs and environment variables"""

import logging
import os
from typing import Any, Dict, List, Mapping, Optional, Union

from asset_processor import ensure_host
from cloudinary_client import DELIVERY_TYPES
from errors import (
    ERROR_CLOUD_NAME_REQUIRED,
    ERROR_INVALID_DELIVERY_TYPE,
    ERROR_SITE_NAME_REQUIRED,
    BuildError,
    PluginError,
)
from models.asset import CLOUDINARY_ASSET_DIRECTORIES

logger = logging.getLogger("Cloudinary")

DEFAULT_DELIVERY_TYPE = "fetch"
DEFAULT_LOADING_STRATEGY = "lazy"
DEFAULT_UPLOAD_CONCURRENCY = 8


def normalize_media_path(path: str) -> str:
    """Normalise a media directory to /dir form (leading slash, no trailing slash).

    The publish root is rejected: it would treat every file on the site as media.
    """
    normalized = path.strip().strip("/")
    if not normalized:
        raise PluginError(f"Invalid media path {path!r}: must name a directory below the publish root.")
    return f"/{normalized}"


def normalize_media_paths(value: Union[str, List[str], None], default: str) -> List[str]:
    if not value:
        return [normalize_media_path(default)]
    if isinstance(value, str):
        value = [value]
    paths: List[str] = []
    for item in value:
        path = normalize_media_path(item)
        if path not in paths:
            paths.append(path)
    return paths


def determine_host(environ: Mapping[str, str]) -> Optional[str]:
    """Pick the public host for this deploy.

    Production deploys prefer NETLIFY_HOST; previews and branch deploys
    prefer DEPLOY_PRIME_URL. Each falls back to the other.
    """
    if environ.get("CONTEXT") == "production":
        host = environ.get("NETLIFY_HOST") or environ.get("DEPLOY_PRIME_URL")
    else:
        host = environ.get("DEPLOY_PRIME_URL") or environ.get("NETLIFY_HOST")
    return ensure_host(host)


class PluginConfig:
    """Configuration for a single plugin run.

    Cloud name: CLOUDINARY_CLOUD_NAME > cloudName input.
    Folder: folder input > SITE_NAME.
    API key and secret are only read from the environment.
    """

    def __init__(
        self,
        delivery_type: str = DEFAULT_DELIVERY_TYPE,
        cloud_name: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        upload_preset: Optional[str] = None,
        folder: Optional[str] = None,
        images_paths: Optional[List[str]] = None,
        loading_strategy: str = DEFAULT_LOADING_STRATEGY,
        upload_concurrency: int = DEFAULT_UPLOAD_CONCURRENCY,
        host: Optional[str] = None,
        inputs: Optional[Dict[str, Any]] = None,
    ):
        if delivery_type not in DELIVERY_TYPES:
            raise PluginError(ERROR_INVALID_DELIVERY_TYPE.format(delivery_type=delivery_type))

        self.delivery_type = delivery_type
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.upload_preset = upload_preset
        self.folder = folder
        self.images_paths = images_paths or [CLOUDINARY_ASSET_DIRECTORIES[0].path]
        self.loading_strategy = loading_strategy
        self.upload_concurrency = max(1, int(upload_concurrency))
        self.host = ensure_host(host)
        self.inputs = dict(inputs or {})

    @classmethod
    def from_inputs(cls, inputs: Optional[Mapping[str, Any]] = None, environ: Optional[Mapping[str, str]] = None) -> "PluginConfig":
        """Build configuration from plugin inputs and the process environment"""
        inputs = dict(inputs or {})
        environ = os.environ if environ is None else environ

        default_images_path = CLOUDINARY_ASSET_DIRECTORIES[0].path
        try:
            upload_concurrency = int(inputs.get("uploadConcurrency") or DEFAULT_UPLOAD_CONCURRENCY)
        except (TypeError, ValueError):
            raise PluginError(f"Invalid uploadConcurrency: {inputs.get('uploadConcurrency')!r}")

        return cls(
            delivery_type=inputs.get("deliveryType") or DEFAULT_DELIVERY_TYPE,
            cloud_name=environ.get("CLOUDINARY_CLOUD_NAME") or inputs.get("cloudName"),
            api_key=environ.get("CLOUDINARY_API_KEY"),
            api_secret=environ.get("CLOUDINARY_API_SECRET"),
            upload_preset=inputs.get("uploadPreset"),
            folder=inputs.get("folder") or environ.get("SITE_NAME"),
            images_paths=normalize_media_paths(inputs.get("imagesPath"), default_images_path),
            loading_strategy=inputs.get("loadingStrategy") or DEFAULT_LOADING_STRATEGY,
            upload_concurrency=upload_concurrency,
            host=determine_host(environ),
            inputs=inputs,
        )

    @property
    def can_sign_upload(self) -> bool:
        return bool(self.api_key and self.api_secret)

    def require_cloud_name(self) -> str:
        if not self.cloud_name:
            raise BuildError(ERROR_CLOUD_NAME_REQUIRED)
        return self.cloud_name

    def require_folder(self) -> str:
        if not self.folder:
            raise PluginError(ERROR_SITE_NAME_REQUIRED)
        return self.folder

    def credentials(self) -> Dict[str, Optional[str]]:
        return {
            "cloud_name": self.cloud_name,
            "api_key": self.api_key,
            "api_secret": self.api_secret,
        }

    def media_paths(self, input_key: str, default_path: str) -> List[str]:
        """Media directories configured for an asset directory's input key"""
        if input_key == "imagesPath":
            return list(self.images_paths)
        return normalize_media_paths(self.inputs.get(input_key), default_path)
