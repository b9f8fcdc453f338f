"""
Extension Registry

ExtensionRegistry: in-process store of plugin metadata and every extension
point contributed by plugins (menu items, settings panels, editor
extensions, custom routes, content types). The admin UI queries it to
decide what to render.

PluginAPI: per-plugin facade created by ExtensionRegistry.create_plugin_api().
Everything registered through it is stamped with the plugin id the API was
created for, whatever id the contribution itself carries.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Awaitable, Callable, TypeVar

from app.exceptions import PluginIdMismatchError
from app.plugins.base import PluginMetadata
from app.plugins.contributions import (
    ContentTypeDefinition,
    CustomRoute,
    EditorExtension,
    MenuItem,
    SettingsPanel,
)
from app.plugins.events import EventBus
from app.plugins.hooks import (
    EVENT_CONTENT_TYPE_REGISTERED,
    EVENT_EDITOR_EXTENSION_REGISTERED,
    EVENT_MENU_ITEM_REGISTERED,
    EVENT_PLUGIN_REGISTERED,
    EVENT_ROUTE_REGISTERED,
    EVENT_SETTINGS_PANEL_REGISTERED,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

ConfigGetter = Callable[[], dict[str, Any]]
ConfigSaver = Callable[[dict[str, Any]], Awaitable[Any]]


class PluginAPI:
    """
    API object handed to a plugin's initialize().

    Plugins use it to contribute extension points, read and save their
    configuration, and reach the shared event bus.
    """

    def __init__(
        self,
        plugin_id: str,
        registry: ExtensionRegistry,
        get_config: ConfigGetter | None = None,
        save_config: ConfigSaver | None = None,
    ) -> None:
        self.plugin_id = plugin_id
        self._registry = registry
        self._get_config = get_config
        self._save_config = save_config
        self._local_config: dict[str, Any] = {}
        self._logger = logging.getLogger(f"plugin.{plugin_id}")

    @property
    def events(self) -> EventBus:
        return self._registry.events

    # ── Metadata ──────────────────────────────────────────────────────────────

    def register_plugin(self, metadata: PluginMetadata) -> None:
        """Register the plugin's metadata; the id must match the API's plugin id."""
        if metadata.id != self.plugin_id:
            raise PluginIdMismatchError(metadata.id, self.plugin_id)
        self._registry._add_plugin(metadata)

    def get_plugin_config(self, plugin_id: str) -> PluginMetadata | None:
        """Return the registered metadata of any plugin, or None."""
        return self._registry.get_plugin(plugin_id)

    # ── Extension points ──────────────────────────────────────────────────────

    def register_menu_item(self, item: MenuItem) -> MenuItem:
        return self._registry._add(self._registry._menu_items, item, self.plugin_id, EVENT_MENU_ITEM_REGISTERED)

    def register_settings_panel(self, panel: SettingsPanel) -> SettingsPanel:
        return self._registry._add(
            self._registry._settings_panels, panel, self.plugin_id, EVENT_SETTINGS_PANEL_REGISTERED
        )

    def register_editor_extension(self, extension: EditorExtension) -> EditorExtension:
        return self._registry._add(
            self._registry._editor_extensions, extension, self.plugin_id, EVENT_EDITOR_EXTENSION_REGISTERED
        )

    def register_route(self, route: CustomRoute) -> CustomRoute:
        return self._registry._add(self._registry._custom_routes, route, self.plugin_id, EVENT_ROUTE_REGISTERED)

    def register_content_type(self, content_type: ContentTypeDefinition) -> ContentTypeDefinition:
        return self._registry._add(
            self._registry._content_types, content_type, self.plugin_id, EVENT_CONTENT_TYPE_REGISTERED
        )

    # ── Configuration & storage ───────────────────────────────────────────────

    def get_config(self) -> dict[str, Any]:
        """Return the plugin's configuration map."""
        if self._get_config is not None:
            return self._get_config()
        return self._local_config

    async def save_config(self, config: dict[str, Any]) -> None:
        """Merge `config` into the plugin's configuration and persist it."""
        if self._save_config is not None:
            await self._save_config(config)
        else:
            self._local_config.update(config)

    def get_storage_dir(self) -> str:
        """Return the namespaced storage path for this plugin (a naming convention only)."""
        return f"{self._registry.storage_root}/{self.plugin_id}/storage"

    def get_logger(self, name: str | None = None) -> logging.Logger:
        """Get a logger namespaced under plugin.<plugin_id>."""
        if name:
            return logging.getLogger(f"plugin.{self.plugin_id}.{name}")
        return self._logger

    def __repr__(self) -> str:
        return f"PluginAPI(plugin_id={self.plugin_id!r})"


class ExtensionRegistry:
    """
    Global store of plugin metadata and contributions.

    Query methods return new lists in registration order, so callers may
    iterate while plugins are being activated or deactivated.
    """

    def __init__(self, events: EventBus, storage_root: str = "plugins") -> None:
        self.events = events
        self.storage_root = storage_root.rstrip("/") or "plugins"
        self._plugins: dict[str, PluginMetadata] = {}
        self._content_types: list[ContentTypeDefinition] = []
        self._menu_items: list[MenuItem] = []
        self._settings_panels: list[SettingsPanel] = []
        self._editor_extensions: list[EditorExtension] = []
        self._custom_routes: list[CustomRoute] = []

    def create_plugin_api(
        self,
        plugin_id: str,
        get_config: ConfigGetter | None = None,
        save_config: ConfigSaver | None = None,
    ) -> PluginAPI:
        """Create a PluginAPI scoped to `plugin_id`."""
        return PluginAPI(plugin_id, self, get_config=get_config, save_config=save_config)

    # ── Registration (called through PluginAPI) ───────────────────────────────

    def _add_plugin(self, metadata: PluginMetadata) -> None:
        self._plugins[metadata.id] = metadata
        logger.info("Plugin registered: %s v%s", metadata.id, metadata.version)
        self.events.emit(EVENT_PLUGIN_REGISTERED, metadata)

    def _add(self, bucket: list[T], contribution: T, plugin_id: str, event: str) -> T:
        stamped = dataclasses.replace(contribution, plugin_id=plugin_id)
        bucket.append(stamped)
        logger.debug("%s registered %s %s", plugin_id, type(stamped).__name__, stamped.id)
        self.events.emit(event, stamped)
        return stamped

    # ── Removal ───────────────────────────────────────────────────────────────

    def remove_plugin_contributions(self, plugin_id: str) -> int:
        """Drop every contribution owned by `plugin_id`; returns how many were removed."""
        removed = 0
        for name in ("_content_types", "_menu_items", "_settings_panels", "_editor_extensions", "_custom_routes"):
            bucket = getattr(self, name)
            kept = [item for item in bucket if item.plugin_id != plugin_id]
            removed += len(bucket) - len(kept)
            setattr(self, name, kept)
        if removed:
            logger.debug("Removed %d contribution(s) of %s", removed, plugin_id)
        return removed

    def unregister_plugin(self, plugin_id: str) -> PluginMetadata | None:
        """Forget a plugin's metadata (contributions are left alone)."""
        return self._plugins.pop(plugin_id, None)

    # ── Queries ───────────────────────────────────────────────────────────────

    def get_plugin(self, plugin_id: str) -> PluginMetadata | None:
        return self._plugins.get(plugin_id)

    def get_plugins(self) -> list[PluginMetadata]:
        return list(self._plugins.values())

    def get_content_types(self) -> list[ContentTypeDefinition]:
        return list(self._content_types)

    def get_menu_items(self) -> list[MenuItem]:
        return list(self._menu_items)

    def get_settings_panels(self) -> list[SettingsPanel]:
        return list(self._settings_panels)

    def get_editor_extensions(self) -> list[EditorExtension]:
        return list(self._editor_extensions)

    def get_custom_routes(self) -> list[CustomRoute]:
        return list(self._custom_routes)

    def get_contributions(self, plugin_id: str) -> dict[str, list[Any]]:
        """Return every contribution owned by one plugin, grouped by kind."""
        return {
            "content_types": [c for c in self._content_types if c.plugin_id == plugin_id],
            "menu_items": [m for m in self._menu_items if m.plugin_id == plugin_id],
            "settings_panels": [p for p in self._settings_panels if p.plugin_id == plugin_id],
            "editor_extensions": [e for e in self._editor_extensions if e.plugin_id == plugin_id],
            "custom_routes": [r for r in self._custom_routes if r.plugin_id == plugin_id],
        }
