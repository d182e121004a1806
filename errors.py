"""Error messages and exceptions raised by the Cloudinary build plugin"""

ERROR_CLOUD_NAME_REQUIRED = (
    "A Cloudinary Cloud Name is required. Please set the cloudName input "
    "or use the environment variable CLOUDINARY_CLOUD_NAME"
)
ERROR_SITE_NAME_REQUIRED = (
    "A site name is required to use as the Cloudinary folder. Please set the "
    "folder input or use the environment variable SITE_NAME"
)
ERROR_HOST_UNKNOWN = "Cannot determine the site host, can not proceed with plugin."
ERROR_HOST_CLI_SUPPORT = (
    "Note: The host can not be determined when building locally, "
    "try deploying or pass --host to the CLI."
)
ERROR_ASSETS_NOT_FOUND = "Can not find build assets."
ERROR_INVALID_DELIVERY_TYPE = "Invalid deliveryType '{delivery_type}'. Must be 'fetch' or 'upload'."


class CloudinaryPluginError(Exception):
    """Base class for errors that stop the plugin"""


class BuildError(CloudinaryPluginError):
    """Failure that should stop the whole site build"""


class PluginError(CloudinaryPluginError):
    """Failure that should only stop this plugin, the build carries on"""
