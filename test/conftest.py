"""
Pytest configuration and fixtures for the CMS plugin runtime tests
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))  # noqa: PTH100, PTH118, PTH119, PTH120

from app.config import Settings  # noqa: E402
from app.plugins import BUILTIN_PLUGINS  # noqa: E402
from app.plugins.base import FunctionPlugin, PluginMetadata  # noqa: E402
from app.plugins.contributions import MenuItem, SettingsPanel  # noqa: E402
from app.plugins.events import EventBus  # noqa: E402
from app.plugins.loader import PluginLoader  # noqa: E402
from app.plugins.manager import PluginManager  # noqa: E402
from app.plugins.registry import ExtensionRegistry  # noqa: E402
from app.services.plugin_store import InMemoryPluginStore  # noqa: E402


def make_plugin(plugin_id: str, dependencies=(), panel: bool = True, menu: bool = True, cleanup=None):
    """
    Build a FunctionPlugin that registers one settings panel and one menu item.

    The contributions deliberately claim a foreign plugin id to exercise
    ownership stamping.
    """
    metadata = PluginMetadata(id=plugin_id, name=plugin_id.upper(), dependencies=tuple(dependencies))

    def initialize(api):
        if panel:
            api.register_settings_panel(
                SettingsPanel(id=f"{plugin_id}-settings", title=plugin_id, component="Panel", plugin_id="spoofed")
            )
        if menu:
            api.register_menu_item(MenuItem(id=f"{plugin_id}-menu", title=plugin_id, path=f"/{plugin_id}"))
        return cleanup

    return FunctionPlugin(metadata, initialize)


@pytest.fixture
def events():
    return EventBus()


@pytest.fixture
def registry(events):
    return ExtensionRegistry(events)


@pytest.fixture
def plugins_dir(tmp_path):
    return tmp_path / "plugins"


@pytest.fixture
def loader(events, registry, plugins_dir):
    return PluginLoader(events, plugins_dir, registry=registry)


@pytest.fixture
def store():
    return InMemoryPluginStore()


@pytest.fixture
def manager(events, loader, registry, store):
    return PluginManager(events, loader, registry, store)


@pytest.fixture
def builtin_loader(events, registry, plugins_dir):
    return PluginLoader(events, plugins_dir, registry=registry, factories=BUILTIN_PLUGINS)


@pytest.fixture
def builtin_manager(events, builtin_loader, registry, store):
    return PluginManager(events, builtin_loader, registry, store)


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        plugins_dir=str(tmp_path / "plugins"),
        core_plugins=[],
        database_url=None,
        log_level="WARNING",
        _env_file=None,
    )
