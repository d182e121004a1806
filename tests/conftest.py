"""Shared fixtures for the Cloudinary build plugin tests"""

from pathlib import Path

import cloudinary
import pytest
from PIL import Image

PLUGIN_ENV_VARS = (
    "CLOUDINARY_CLOUD_NAME",
    "CLOUDINARY_API_KEY",
    "CLOUDINARY_API_SECRET",
    "SITE_NAME",
    "CONTEXT",
    "NETLIFY_HOST",
    "DEPLOY_PRIME_URL",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep real credentials or deploy variables from leaking into tests"""
    for name in PLUGIN_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
    cloudinary.config(cloud_name=None, api_key=None, api_secret=None)


@pytest.fixture
def signed_cloudinary():
    """SDK configured for signed uploads"""
    cloudinary.config(cloud_name="demo", api_key="123456", api_secret="secret")
    return cloudinary


@pytest.fixture
def unsigned_cloudinary():
    """SDK configured with a cloud name only"""
    cloudinary.config(cloud_name="demo", api_key=None, api_secret=None)
    return cloudinary


def _make_image(path: Path, size=(4, 3), color=(200, 30, 30), format="PNG") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color).save(path, format=format)
    return path


@pytest.fixture
def make_image():
    """Factory writing a small real image to a path"""
    return _make_image


@pytest.fixture
def publish_dir(tmp_path):
    """A generated site with two images and a page referencing them"""
    site = tmp_path / "public"
    _make_image(site / "images" / "hero.png", size=(8, 6))
    _make_image(site / "images" / "team" / "alice.jpg", size=(5, 5), format="JPEG")
    (site / "index.html").write_text(
        '<!DOCTYPE html><html><head>'
        '<link rel="preload" as="image" href="/images/hero.png">'
        '</head><body>'
        '<img src="/images/hero.png" alt="Hero">'
        '<img src="/images/team/alice.jpg" srcset="/images/team/alice.jpg 1x, /images/hero.png 2x">'
        '</body></html>',
        encoding="utf-8",
    )
    return site
