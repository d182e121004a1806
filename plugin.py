"""Build lifecycle hooks that move a site's images onto Cloudinary"""

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from asset_processor import determine_remote_url, get_image_metadata
from cloudinary_client import configure_cloudinary, get_cloudinary_url
from errors import (
    ERROR_ASSETS_NOT_FOUND,
    ERROR_HOST_CLI_SUPPORT,
    ERROR_HOST_UNKNOWN,
    BuildError,
)
from managers.asset_registry import AssetRegistry
from managers.config_manager import PluginConfig
from managers.page_manager import PageRewriter
from managers.redirect_manager import RedirectManager, build_fetch_redirects, build_upload_redirects
from models.asset import CloudinaryAsset

logger = logging.getLogger("Cloudinary")

ASSETS_ENVIRONMENT_KEY = "CLOUDINARY_ASSETS"


def _build_environment(netlify_config: Dict[str, Any]) -> Dict[str, Any]:
    build = netlify_config.setdefault("build", {})
    return build.setdefault("environment", {})


def find_image_files(publish_dir: Path, images_path: str) -> List[Path]:
    """All files with an extension under publish_dir/images_path, sorted"""
    root = publish_dir / images_path.lstrip("/")
    if not root.is_dir():
        return []
    return sorted(p for p in root.glob("**/*") if p.is_file() and p.suffix)


def to_publish_path(file_path: Path, publish_dir: Path) -> str:
    return "/" + file_path.relative_to(publish_dir).as_posix()


class CloudinaryPlugin:
    """Pre-build, build and post-build hooks sharing one asset registry"""

    def __init__(self, registry: Optional[AssetRegistry] = None):
        self.registry = registry if registry is not None else AssetRegistry()

    def _configure(self, inputs, environ) -> PluginConfig:
        config = PluginConfig.from_inputs(inputs, environ)
        config.require_cloud_name()
        configure_cloudinary(**config.credentials())
        return config

    def _restore_registry(self, netlify_config: Dict[str, Any]):
        if self.registry.collected:
            return
        stored = _build_environment(netlify_config).get(ASSETS_ENVIRONMENT_KEY)
        if stored is not None:
            self.registry.load_dict(stored)

    def on_pre_build(
        self,
        netlify_config: Dict[str, Any],
        constants: Mapping[str, Any],
        inputs: Optional[Mapping[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> List[CloudinaryAsset]:
        """Upload every image under the configured images path(s) and record its URL"""
        logger.info("Collecting Cloudinary asset configurations...")

        config = PluginConfig.from_inputs(inputs, environ)

        # Fetch delivery reads media from the public site, nothing to upload
        if config.delivery_type == "fetch":
            logger.info("Skipping: Delivery type set to fetch.")
            return []

        config.require_cloud_name()
        config.require_folder()
        configure_cloudinary(**config.credentials())

        publish_dir = Path(constants["PUBLISH_DIR"])
        image_files: List[Path] = []
        for images_path in config.images_paths:
            found = find_image_files(publish_dir, images_path)
            if not found:
                logger.warning(f"No image files found in {images_path}")
                logger.info("Did you update your images path? You can set the imagesPath input in your build config.")
            image_files.extend(found)

        def collect(image: Path) -> CloudinaryAsset:
            publish_path = to_publish_path(image, publish_dir)
            result = get_cloudinary_url(
                delivery_type=config.delivery_type,
                folder=config.folder,
                path=publish_path,
                local_dir=str(publish_dir),
                upload_preset=config.upload_preset,
                remote_host=config.host,
            )
            metadata = get_image_metadata(image)
            return self.registry.register_asset(
                publish_path=publish_path,
                cloudinary_url=result.cloudinary_url,
                public_id=result.public_id,
                source_url=result.source_url,
                publish_url=determine_remote_url(publish_path, config.host) if config.host else None,
                mime_type=metadata["mime_type"],
                width=metadata["width"],
                height=metadata["height"],
                bytes_size=image.stat().st_size,
            )

        try:
            with ThreadPoolExecutor(max_workers=config.upload_concurrency) as pool:
                assets = list(pool.map(collect, image_files))
        except Exception as e:
            raise BuildError(str(e)) from e

        self.registry.collected = True
        _build_environment(netlify_config)[ASSETS_ENVIRONMENT_KEY] = self.registry.to_dict()

        logger.info(f"Collected {len(assets)} assets.")
        logger.info("Done.")
        return assets

    def on_build(
        self,
        netlify_config: Dict[str, Any],
        constants: Optional[Mapping[str, Any]] = None,
        inputs: Optional[Mapping[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> int:
        """Install redirects from the original asset paths to Cloudinary"""
        logger.info("Creating redirects...")

        config = PluginConfig.from_inputs(inputs, environ)

        if config.delivery_type == "fetch" and not config.host:
            logger.warning(ERROR_HOST_UNKNOWN)
            logger.info(ERROR_HOST_CLI_SUPPORT)
            return 0

        config = self._configure(inputs, environ)
        redirect_manager = RedirectManager(netlify_config)

        if config.delivery_type == "upload":
            self._restore_registry(netlify_config)
            if not self.registry.collected:
                raise BuildError(ERROR_ASSETS_NOT_FOUND)
            count = redirect_manager.prepend(build_upload_redirects(self.registry))
        else:
            logger.info(f"Using host: {config.host}")
            count = redirect_manager.prepend(build_fetch_redirects(
                host=config.host,
                folder=config.folder,
                inputs=config.inputs,
                upload_preset=config.upload_preset,
            ))

        logger.info(f"Added {count} redirects.")
        logger.info("Done.")
        return count

    def on_post_build(
        self,
        netlify_config: Optional[Dict[str, Any]],
        constants: Mapping[str, Any],
        inputs: Optional[Mapping[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        """Rewrite <img> references in every generated HTML page.

        This only covers the markup as generated; images swapped in later by
        client-side JavaScript still go through the redirects.
        """
        logger.info("Replacing on-page images with Cloudinary URLs...")

        config = PluginConfig.from_inputs(inputs, environ)

        if not config.host:
            logger.warning(ERROR_HOST_UNKNOWN)
            logger.info(ERROR_HOST_CLI_SUPPORT)
            return []
        logger.info(f"Using host: {config.host}")

        config = self._configure(inputs, environ)
        if netlify_config is not None:
            self._restore_registry(netlify_config)

        publish_dir = Path(constants["PUBLISH_DIR"])
        pages = sorted(publish_dir.glob("**/*.html"))

        rewriter = PageRewriter(
            registry=self.registry,
            delivery_type=config.delivery_type,
            folder=config.folder,
            upload_preset=config.upload_preset,
            local_dir=str(publish_dir),
            remote_host=config.host,
            loading_strategy=config.loading_strategy,
        )

        def rewrite_page(page: Path) -> Dict[str, Any]:
            source_html = page.read_text(encoding="utf-8")
            result = rewriter.rewrite(source_html, page_path=to_publish_path(page, publish_dir))
            page.write_text(result.html, encoding="utf-8")
            return {"page": str(page), "errors": result.errors}

        with ThreadPoolExecutor(max_workers=config.upload_concurrency) as pool:
            results = list(pool.map(rewrite_page, pages))

        errors = [result for result in results if result["errors"]]
        if errors:
            logger.info(f"Done with {len(errors)} errors...")
            logger.info(json.dumps(errors, indent=2))
        else:
            logger.info("Done.")
        return results


# Hooks the host build calls; they share one registry for the whole build
default_plugin = CloudinaryPlugin()


def on_pre_build(netlify_config, constants, inputs=None, environ=None):
    return default_plugin.on_pre_build(netlify_config, constants, inputs, environ)


def on_build(netlify_config, constants=None, inputs=None, environ=None):
    return default_plugin.on_build(netlify_config, constants, inputs, environ)


def on_post_build(netlify_config, constants, inputs=None, environ=None):
    return default_plugin.on_post_build(netlify_config, constants, inputs, environ)
