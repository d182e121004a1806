"""Manager classes for the Cloudinary build plugin"""

from managers.asset_registry import AssetRegistry
from managers.config_manager import PluginConfig
from managers.page_manager import PageRewriter, update_html_images_to_cloudinary
from managers.redirect_manager import RedirectManager

__all__ = ["AssetRegistry", "PageRewriter", "PluginConfig", "RedirectManager", "update_html_images_to_cloudinary"]
