"""Tests for the build-wide asset registry

Run with pytest from project root:
    pytest tests/test_asset_registry.py -v
"""

from concurrent.futures import ThreadPoolExecutor

from managers.asset_registry import AssetRegistry
from models.asset import CloudinaryAsset


def _register(registry, path, **kwargs):
    return registry.register_asset(
        publish_path=path,
        cloudinary_url=f"https://res.cloudinary.com/demo/image/upload{path}",
        public_id=path.strip("/"),
        source_url=f"/site{path}",
        **kwargs
    )


class TestAssetRegistry:
    """Tests for AssetRegistry"""

    def test_register_and_get(self):
        """Test a registered asset can be read back by publish path"""
        registry = AssetRegistry()
        record = _register(registry, "/images/a.png", width=10, height=5, bytes_size=123)

        assert isinstance(record, CloudinaryAsset)
        assert registry.get_asset("/images/a.png") is record
        assert record.width == 10
        assert record.bytes_size == 123
        assert len(registry) == 1
        assert "/images/a.png" in registry

    def test_register_replaces_same_path(self):
        """Test registering a path twice keeps one record"""
        registry = AssetRegistry()
        _register(registry, "/images/a.png")
        registry.register_asset(publish_path="/images/a.png", cloudinary_url="https://new")

        assert len(registry) == 1
        assert registry.get_asset("/images/a.png").cloudinary_url == "https://new"

    def test_find_asset_by_path_or_url(self):
        """Test lookup matches both the publish path and the absolute publish URL"""
        registry = AssetRegistry()
        record = _register(registry, "/images/a.png", publish_url="https://example.com/images/a.png")

        assert registry.find_asset("/images/a.png") is record
        assert registry.find_asset("https://example.com/images/a.png") is record
        assert registry.find_asset("/images/missing.png") is None
        assert registry.find_asset(None) is None
        assert registry.find_asset("") is None

    def test_get_assets_by_media_type(self):
        """Test filtering by media type"""
        registry = AssetRegistry()
        _register(registry, "/images/a.png")
        _register(registry, "/videos/b.mp4", media_type="videos")

        assert [a.publish_path for a in registry.get_assets("images")] == ["/images/a.png"]
        assert len(registry.get_assets()) == 2
        assert registry.media_types() == ["images", "videos"]

    def test_clear(self):
        """Test clear empties the table and resets the collected flag"""
        registry = AssetRegistry()
        _register(registry, "/images/a.png", publish_url="https://example.com/images/a.png")
        registry.collected = True

        registry.clear()

        assert len(registry) == 0
        assert registry.collected is False
        assert registry.find_asset("https://example.com/images/a.png") is None

    def test_to_dict_and_load_dict(self):
        """Test the environment shape restores into a new registry"""
        registry = AssetRegistry()
        _register(registry, "/images/a.png", publish_url="https://example.com/images/a.png", width=3)
        data = registry.to_dict()

        assert list(data.keys()) == ["images"]
        assert data["images"][0]["publish_path"] == "/images/a.png"
        assert isinstance(data["images"][0]["created_at"], str)

        restored = AssetRegistry()
        assert restored.load_dict(data) == 1
        assert restored.collected is True
        record = restored.find_asset("https://example.com/images/a.png")
        assert record.width == 3
        assert record.cloudinary_url == registry.get_asset("/images/a.png").cloudinary_url

    def test_load_empty_marks_collected(self):
        """Test an empty collection still counts as collected"""
        registry = AssetRegistry()
        assert registry.load_dict({"images": []}) == 0
        assert registry.collected is True

    def test_concurrent_registration(self):
        """Test registering from a worker pool keeps every asset"""
        registry = AssetRegistry()
        paths = [f"/images/{i}.png" for i in range(200)]
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda p: _register(registry, p), paths))

        assert len(registry) == 200
