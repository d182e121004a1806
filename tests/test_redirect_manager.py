"""Tests for redirect rules and the _redirects file

Run with pytest from project root:
    pytest tests/test_redirect_manager.py -v
"""

from managers.asset_registry import AssetRegistry
from managers.redirect_manager import (
    PUBLIC_ASSET_PATH,
    RedirectManager,
    build_fetch_redirects,
    build_upload_redirects,
    render_redirects_file,
    write_redirects_file,
)
from models.redirect import Redirect


class TestRedirectModel:
    """Tests for the Redirect model"""

    def test_to_dict(self):
        """Test the host config shape"""
        redirect = Redirect(from_path="/images/a.png*", to="https://cdn/a.png")
        assert redirect.to_dict() == {
            "from": "/images/a.png*",
            "to": "https://cdn/a.png",
            "status": 302,
            "force": True,
        }

    def test_from_dict(self):
        """Test rules read back from host config"""
        redirect = Redirect.from_dict({"from": "/a/*", "to": "/b/:splat", "status": "200", "force": True})
        assert redirect == Redirect(from_path="/a/*", to="/b/:splat", status=200, force=True)

    def test_to_line(self):
        """Test _redirects syntax marks forced rules with !"""
        assert Redirect("/a/*", "/b/:splat", 200, True).to_line() == "/a/* /b/:splat 200!"
        assert Redirect("/old", "/new", 301, False).to_line() == "/old /new 301"


class TestUploadRedirects:
    """Tests for per-asset redirects"""

    def test_one_rule_per_asset(self):
        """Test every registered asset maps its publish path to its Cloudinary URL"""
        registry = AssetRegistry()
        registry.register_asset("/images/a.png", "https://res.cloudinary.com/demo/image/upload/site/a-1")
        registry.register_asset("/images/b.jpg", "https://res.cloudinary.com/demo/image/upload/site/b-2")

        redirects = build_upload_redirects(registry)

        assert [r.from_path for r in redirects] == ["/images/a.png*", "/images/b.jpg*"]
        assert redirects[0].to == "https://res.cloudinary.com/demo/image/upload/site/a-1"
        assert all(r.status == 302 and r.force for r in redirects)

    def test_empty_registry(self):
        """Test no assets means no rules"""
        assert build_upload_redirects(AssetRegistry()) == []


class TestFetchRedirects:
    """Tests for per-directory fetch redirects"""

    def test_default_images_path(self, unsigned_cloudinary):
        """Test the media path redirects to Cloudinary and the asset path rewrites back"""
        redirects = build_fetch_redirects(host="https://example.com")

        assert len(redirects) == 2
        to_cloudinary, to_original = redirects

        assert to_cloudinary.from_path == "/images/*"
        assert to_cloudinary.status == 302
        assert to_cloudinary.force is True
        assert to_cloudinary.to.startswith("https://res.cloudinary.com/demo/image/fetch/")
        assert f"https://example.com/{PUBLIC_ASSET_PATH}/images/:splat" in to_cloudinary.to

        assert to_original == Redirect(
            from_path=f"/{PUBLIC_ASSET_PATH}/images/*",
            to="/images/:splat",
            status=200,
            force=True,
        )

    def test_multiple_images_paths(self, unsigned_cloudinary):
        """Test each configured directory gets its own pair of rules in order"""
        redirects = build_fetch_redirects(
            host="https://example.com",
            inputs={"imagesPath": ["/static/img", "photos"]},
        )
        assert [r.from_path for r in redirects] == [
            "/static/img/*",
            f"/{PUBLIC_ASSET_PATH}/static/img/*",
            "/photos/*",
            f"/{PUBLIC_ASSET_PATH}/photos/*",
        ]


class TestRedirectsFile:
    """Tests for rendering and writing _redirects"""

    def test_render(self):
        """Test one rule per line"""
        content = render_redirects_file([
            Redirect("/images/*", "https://cdn/:splat", 302, True),
            Redirect("/cloudinary-assets/images/*", "/images/:splat", 200, True),
        ])
        assert content == (
            "/images/* https://cdn/:splat 302!\n"
            "/cloudinary-assets/images/* /images/:splat 200!\n"
        )
        assert render_redirects_file([]) == ""

    def test_write_prepends_to_existing(self, tmp_path):
        """Test new rules go ahead of rules already in the file"""
        existing = tmp_path / "_redirects"
        existing.write_text("/old /new 301\n", encoding="utf-8")

        target = write_redirects_file(tmp_path, [Redirect("/images/*", "https://cdn/:splat")])

        assert target == existing
        assert existing.read_text(encoding="utf-8") == "/images/* https://cdn/:splat 302!\n/old /new 301\n"

    def test_write_twice_is_idempotent(self, tmp_path):
        """Test rewriting the same rules replaces them instead of stacking copies"""
        (tmp_path / "_redirects").write_text("/old /new 301\n", encoding="utf-8")
        redirects = [
            Redirect("/images/*", "https://cdn/:splat", 302, True),
            Redirect("/cloudinary-assets/images/*", "/images/:splat", 200, True),
        ]

        write_redirects_file(tmp_path, redirects)
        target = write_redirects_file(tmp_path, redirects)

        assert target.read_text(encoding="utf-8") == (
            "/images/* https://cdn/:splat 302!\n"
            "/cloudinary-assets/images/* /images/:splat 200!\n"
            "/old /new 301\n"
        )

    def test_write_custom_filename(self, tmp_path):
        """Test an explicit target file is created with its parent directory"""
        target = write_redirects_file(tmp_path, [Redirect("/a", "/b")], tmp_path / "out" / "rules")
        assert target.read_text(encoding="utf-8") == "/a /b 302!\n"


class TestRedirectManager:
    """Tests for RedirectManager"""

    def test_creates_redirects_list(self):
        """Test a config without redirects gets an empty list"""
        config = {}
        manager = RedirectManager(config)
        assert manager.redirects == []
        assert config["redirects"] == []

    def test_prepend_keeps_order_ahead_of_existing(self):
        """Test new rules precede user rules so they take priority"""
        config = {"redirects": [{"from": "/user", "to": "/rule", "status": 301, "force": False}]}
        manager = RedirectManager(config)

        count = manager.prepend([Redirect("/a", "/b"), Redirect("/c", "/d", 200)])

        assert count == 2
        assert [r["from"] for r in config["redirects"]] == ["/a", "/c", "/user"]
        assert config["redirects"][1]["status"] == 200
