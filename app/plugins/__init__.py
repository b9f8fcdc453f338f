"""
CMS Plugin System

Public API for the plugin runtime:
    EventBus           — publish/subscribe for lifecycle and domain events
    ExtensionRegistry  — store of plugin metadata and contributions
    PluginAPI          — per-plugin facade handed to initialize()
    PluginLoader       — resolves plugin ids to plugin objects, installs / uninstalls
    PluginManager      — status tracking and the install / activate / deactivate lifecycle
    PluginBase         — abstract base class for plugins
    BUILTIN_PLUGINS    — factories of the plugins shipped with the CMS, keyed by id
"""

from typing import Callable

from .base import FunctionPlugin, PluginBase, PluginInstallation, PluginMetadata, PluginStatus
from .events import EventBus
from .loader import PluginLoader
from .manager import PluginManager
from .registry import ExtensionRegistry, PluginAPI
from .reviews_plugin import create_reviews_plugin
from .seo_plugin import SEOToolkitPlugin
from .shop_plugin import ShopPlugin

BUILTIN_PLUGINS: dict[str, Callable[[], PluginBase]] = {
    "seo-toolkit": SEOToolkitPlugin,
    "ecommerce-shop": ShopPlugin,
    "product-reviews": create_reviews_plugin,
}

__all__ = [
    "BUILTIN_PLUGINS",
    "EventBus",
    "ExtensionRegistry",
    "FunctionPlugin",
    "PluginAPI",
    "PluginBase",
    "PluginInstallation",
    "PluginLoader",
    "PluginManager",
    "PluginMetadata",
    "PluginStatus",
]
