"""Data models for the Cloudinary build plugin"""

from models.asset import CLOUDINARY_ASSET_DIRECTORIES, AssetDirectory, CloudinaryAsset
from models.redirect import Redirect

__all__ = ["AssetDirectory", "CLOUDINARY_ASSET_DIRECTORIES", "CloudinaryAsset", "Redirect"]
