"""Cloudinary SDK wrapper: configuration, delivery URLs and uploads"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
import cloudinary.utils

from asset_processor import create_public_id, determine_remote_url, is_remote_url
from errors import ERROR_CLOUD_NAME_REQUIRED

logger = logging.getLogger("Cloudinary")

DELIVERY_TYPES = ("fetch", "upload")
DEFAULT_TRANSFORMATION = [{"fetch_format": "auto", "quality": "auto"}]


@dataclass(frozen=True)
class CloudinaryUrl:
    source_url: Optional[str]
    cloudinary_url: str
    public_id: str


def configure_cloudinary(cloud_name: Optional[str], api_key: Optional[str] = None, api_secret: Optional[str] = None):
    cloudinary.config(
        cloud_name=cloud_name,
        api_key=api_key,
        api_secret=api_secret,
    )
    return cloudinary


def get_cloudinary(config: Optional[Mapping[str, Any]] = None):
    """Return the configured SDK, applying config first when given"""
    if not config:
        return cloudinary
    return configure_cloudinary(
        config.get("cloud_name"),
        config.get("api_key"),
        config.get("api_secret"),
    )


def get_cloudinary_url(
    delivery_type: str,
    path: str,
    folder: Optional[str] = None,
    local_dir: Optional[str] = None,
    remote_host: Optional[str] = None,
    upload_preset: Optional[str] = None,
) -> CloudinaryUrl:
    """Resolve the Cloudinary delivery URL for a local path or remote URL.

    fetch: Cloudinary pulls the public URL on demand and caches it on the CDN;
    nothing is stored in the account.
    upload: the file is stored in the account under a content-addressed
    public ID (never overwritten) and served from there.

    Raises:
        ValueError: If configuration does not allow the requested delivery type
        RuntimeError: If the upload API call fails
    """
    config = cloudinary.config()
    can_sign_upload = bool(config.api_key and config.api_secret)

    if not config.cloud_name:
        raise ValueError(ERROR_CLOUD_NAME_REQUIRED)

    if delivery_type not in DELIVERY_TYPES:
        raise ValueError(f"Unsupported deliveryType {delivery_type}, expected one of {DELIVERY_TYPES}.")

    if delivery_type == "upload" and not can_sign_upload and not upload_preset:
        raise ValueError(
            f"To use deliveryType {delivery_type}, please use an uploadPreset for unsigned requests "
            f"or an API Key and Secret for signed requests."
        )

    if delivery_type == "fetch" and not remote_host:
        raise ValueError(f"To use deliveryType {delivery_type}, please provide a remoteHost.")

    if delivery_type == "fetch":
        file_location = determine_remote_url(path, remote_host)
        public_id = file_location
    else:
        file_location = path
        if not is_remote_url(file_location):
            if not local_dir:
                raise ValueError(f"To use deliveryType {delivery_type} with local file {path}, please provide a localDir.")
            file_location = os.path.join(local_dir, path.lstrip("/"))
        public_id = _upload(file_location, folder, upload_preset, can_sign_upload)

    cloudinary_url, _ = cloudinary.utils.cloudinary_url(
        public_id,
        type=delivery_type,
        secure=True,
        transformation=DEFAULT_TRANSFORMATION,
    )
    return CloudinaryUrl(
        source_url=file_location,
        cloudinary_url=cloudinary_url,
        public_id=public_id,
    )


def _upload(file_location: str, folder: Optional[str], upload_preset: Optional[str], signed: bool) -> str:
    upload_options: Dict[str, Any] = {
        "folder": folder,
        "public_id": create_public_id(file_location),
        "overwrite": False,
    }
    if upload_preset:
        upload_options["upload_preset"] = upload_preset

    try:
        if signed:
            results = cloudinary.uploader.upload(file_location, **upload_options)
        else:
            # Unsigned uploads need no key/secret but must name a preset
            results = cloudinary.uploader.unsigned_upload(file_location, upload_preset, **upload_options)
    except cloudinary.exceptions.Error as e:
        raise RuntimeError(f"Cloudinary upload failed for {file_location}: {e}") from e

    logger.debug(f"Uploaded {file_location} as {results['public_id']}")
    return results["public_id"]
