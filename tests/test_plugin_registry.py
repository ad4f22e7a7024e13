"""Tests for plugin discovery, headers and site booting."""

from pathlib import Path

from plugin_doctor.host import HostEnvironment, MemoryOptionStore
from plugin_doctor.host.layout import HostLayout, is_within, normalize_path
from plugin_doctor.host.loader import boot
from plugin_doctor.host.options import ACTIVE_PLUGINS
from plugin_doctor.host.registry import plugin_slug, read_plugin_header


class TestPaths:
    def test_normalize(self):
        assert normalize_path("a\\b//c/") == "a/b/c"
        assert normalize_path("/") == "/"

    def test_is_within(self):
        assert is_within("/site/content/plugins/seo/x.py", "/site/content/plugins/seo")
        assert is_within("/site/content", "/site/content/")
        assert not is_within("/site/content-old/x.py", "/site/content")

    def test_relative_to_plugins(self):
        layout = HostLayout(Path("/site"))
        assert layout.relative_to_plugins("/site/content/plugins/seo/seo.py") == "seo/seo.py"
        assert layout.relative_to_plugins("/elsewhere/x.py") == "/elsewhere/x.py"


class TestHeaders:
    def test_read_header_fields(self, tmp_path):
        path = tmp_path / "plugin.py"
        path.write_text('"""\nPlugin Name: Quick SEO\nVersion: 1.2.0\n"""\n')
        header = read_plugin_header(path)
        assert header["name"] == "Quick SEO"
        assert header["version"] == "1.2.0"
        assert header["author"] == ""

    def test_comment_style_header(self, tmp_path):
        path = tmp_path / "plugin.py"
        path.write_text("# Plugin Name: Commented\n# Author: Someone\n")
        header = read_plugin_header(path)
        assert header["name"] == "Commented"
        assert header["author"] == "Someone"

    def test_plugin_slug(self):
        assert plugin_slug("seo-pack/seo_pack.py") == "seo-pack"
        assert plugin_slug("hello.py") == "hello"


class TestPluginDirectoryRegistry:
    def test_active_components(self, fixture_env):
        records = fixture_env.registry.active_components()
        assert [r.slug for r in records] == ["quick-seo", "yoast-lite", "turbo-cache", "hello"]

        seo = records[0]
        assert seo.name == "Quick SEO"
        assert seo.version == "1.2.0"
        assert seo.author == "Example Labs"
        assert seo.file == "quick-seo/quick_seo.py"
        assert seo.directory.name == "quick-seo"

    def test_single_file_plugin_lives_in_plugins_dir(self, fixture_env):
        hello = fixture_env.registry.active_components()[-1]
        assert hello.directory == fixture_env.layout.plugins_dir
        assert hello.name == "Hello Dolly"

    def test_missing_entry_file_skipped(self, site_dir):
        store = MemoryOptionStore({ACTIVE_PLUGINS: ["ghost/ghost.py", "hello.py"]})
        env = HostEnvironment.for_site(site_dir, store)
        assert [r.slug for r in env.registry.active_components()] == ["hello"]

    def test_name_falls_back_to_slug(self, make_site):
        env = make_site({"nameless/main.py": "VALUE = 1\n"}, boot_plugins=False)
        assert env.registry.active_components()[0].name == "nameless"


class TestBoot:
    def test_fixture_plugins_register_callbacks(self, fixture_env):
        assert fixture_env.hooks.has("init")
        assert fixture_env.hooks.has("wp_footer")
        assert "turbo-jquery" in fixture_env.scripts.registered

    def test_broken_plugin_is_skipped(self, make_site):
        env = make_site(
            {
                "broken/broken.py": "raise RuntimeError('boom')\n",
                "good/good.py": """
                def on_init():
                    return None


                def setup(host):
                    host.hooks.add("init", on_init)
                """,
            },
            boot_plugins=False,
        )
        loaded = boot(env, env.registry.active_components())
        assert loaded == ["good"]
        assert env.hooks.has("init")

    def test_failing_setup_is_skipped(self, make_site):
        env = make_site(
            {"bad-setup/main.py": "def setup(host):\n    raise ValueError('nope')\n"},
            boot_plugins=False,
        )
        assert boot(env, env.registry.active_components()) == []
