"""Shared test fixtures for Plugin Doctor."""

import shutil
import textwrap
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from plugin_doctor.host import HostEnvironment, MemoryOptionStore
from plugin_doctor.host.loader import boot
from plugin_doctor.host.options import ACTIVE_PLUGINS

FIXTURE_SITE = Path(__file__).parent / "fixtures" / "site"

FIXTURE_PLUGINS = [
    "quick-seo/quick_seo.py",
    "yoast-lite/yoast_lite.py",
    "turbo-cache/turbo_cache.py",
    "hello.py",
]


class FakeClock:
    """Deterministic ``now`` callable; advance it by hand."""

    def __init__(self, start=datetime(2026, 3, 1, 12, 0, 0)):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)
        return self.current


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryOptionStore()


@pytest.fixture
def fixture_plugins():
    return list(FIXTURE_PLUGINS)


@pytest.fixture
def site_dir(tmp_path):
    """Writable copy of the fixture site."""
    target = tmp_path / "site"
    shutil.copytree(FIXTURE_SITE, target)
    return target


@pytest.fixture
def fixture_env(site_dir):
    """Booted environment for the fixture site with every plugin active."""
    store = MemoryOptionStore({ACTIVE_PLUGINS: list(FIXTURE_PLUGINS)})
    env = HostEnvironment.for_site(site_dir, store)
    boot(env, env.registry.active_components())
    return env


@pytest.fixture
def make_site(tmp_path):
    """Build a site from ``{entry file: source}`` and boot it.

    Sources are dedented, so tests can count callback lines exactly.
    """

    def _make(plugins, active=None, boot_plugins=True, store=None):
        root = tmp_path / "built-site"
        for sub in ("includes", "admin", "content/plugins"):
            (root / sub).mkdir(parents=True, exist_ok=True)

        for entry, source in plugins.items():
            path = root / "content" / "plugins" / entry
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(source).lstrip(), encoding="utf-8")

        store = store if store is not None else MemoryOptionStore()
        store.set(ACTIVE_PLUGINS, list(plugins) if active is None else list(active))
        env = HostEnvironment.for_site(root, store)
        if boot_plugins:
            boot(env, env.registry.active_components())
        return env

    return _make
