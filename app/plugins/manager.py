"""
Plugin Manager

PluginManager: the orchestrator behind every UI install / activate /
deactivate / uninstall / configure action. It owns the per-plugin status
table, enforces dependency ordering, runs plugin initialize / cleanup
callbacks, keeps the ExtensionRegistry in step and persists status through a
PluginStore.

State machine:

    (none) --install--> INSTALLED --activate--> ACTIVE <--deactivate/activate--> INACTIVE
                                        \\--(failure)--> ERROR --activate--> ...
    any --uninstall--> (removed)

Public operations never raise: failures are logged and reported as a False
return or an ERROR status, and the message is kept for get_last_error().
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable

from app.exceptions import PluginDependencyError, PluginLoadError
from app.plugins.base import CleanupFn, PluginInstallation, PluginMetadata, PluginStatus, is_valid_plugin_id
from app.plugins.contributions import (
    ContentTypeDefinition,
    CustomRoute,
    EditorExtension,
    MenuItem,
    SettingsPanel,
)
from app.plugins.events import EventBus
from app.plugins.hooks import (
    EVENT_PLUGIN_ACTIVATE_ERROR,
    EVENT_PLUGIN_AFTER_ACTIVATE,
    EVENT_PLUGIN_AFTER_DEACTIVATE,
    EVENT_PLUGIN_BEFORE_ACTIVATE,
    EVENT_PLUGIN_BEFORE_DEACTIVATE,
    EVENT_PLUGIN_CONFIG_UPDATED,
    EVENT_PLUGIN_DEACTIVATE_ERROR,
    EVENT_PLUGIN_STATUS_CHANGED,
    EVENT_PLUGIN_UNINSTALL_ERROR,
)
from app.plugins.loader import PluginLoader
from app.plugins.registry import ExtensionRegistry, PluginAPI
from app.services.plugin_store import PluginStore, StoredPlugin

logger = logging.getLogger(__name__)


async def _call(fn: Callable[[], Any]) -> None:
    result = fn()
    if inspect.isawaitable(result):
        await result


class PluginManager:
    """Tracks plugin status and drives the plugin lifecycle."""

    def __init__(
        self,
        events: EventBus,
        loader: PluginLoader,
        registry: ExtensionRegistry,
        store: PluginStore,
    ) -> None:
        self.events = events
        self.loader = loader
        self.registry = registry
        self.store = store

        self._status: dict[str, PluginInstallation] = {}
        self._plugins: dict[str, Any] = {}
        self._apis: dict[str, PluginAPI] = {}
        self._cleanups: dict[str, CleanupFn] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._last_errors: dict[str, str] = {}

    def _lock(self, plugin_id: str) -> asyncio.Lock:
        lock = self._locks.get(plugin_id)
        if lock is None:
            lock = self._locks[plugin_id] = asyncio.Lock()
        return lock

    # ── Bootstrap ─────────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """
        Rebuild runtime state after a process start.

        Loads persisted rows, adopts materialized plugins the store does not
        know about, and re-activates every plugin persisted as active.
        """
        try:
            to_restore = await self._load_from_store()

            materialized = await self.loader.get_installed_plugins_metadata()
            for metadata in materialized:
                record = self._status.get(metadata.id)
                if record is None:
                    record = PluginInstallation(plugin_id=metadata.id, metadata=metadata)
                    self._status[metadata.id] = record
                    await self._persist("save", metadata.id, lambda r=record: self.store.save_plugin(_to_stored(r)))
                    logger.info("Adopted materialized plugin %s", metadata.id)
                elif record.metadata is None:
                    record.metadata = metadata

            restorable = [m for m in materialized if m.id in to_restore]
            for metadata in _activation_order(restorable):
                await self.activate_plugin(metadata.id)

            missing = to_restore - {m.id for m in restorable}
            for plugin_id in sorted(missing):
                logger.warning("Plugin %s was active but is no longer materialized", plugin_id)

            logger.info("Initialized %d plugin(s)", len(self._plugins))
        except Exception as e:
            logger.error("Failed to initialize plugin manager: %s", e)

    async def _load_from_store(self) -> set[str]:
        try:
            stored_plugins = await self.store.get_all_plugins()
        except Exception as e:
            logger.error("Failed to load plugins from store: %s", e)
            return set()

        to_restore: set[str] = set()
        for row in stored_plugins:
            if row.id in self._status:
                continue
            # active rows start INACTIVE so that activation re-runs initialize()
            self._status[row.id] = PluginInstallation(
                plugin_id=row.id,
                status=PluginStatus.INACTIVE,
                installed_at=row.installed_at,
                updated_at=row.updated_at,
                config=dict(row.config or {}),
                metadata=PluginMetadata(
                    id=row.id,
                    name=row.name,
                    version=row.version,
                    description=row.description,
                    author=row.author,
                    category=row.category,
                ),
            )
            if row.is_active:
                to_restore.add(row.id)

        logger.info("Loaded %d plugin(s) from store", len(stored_plugins))
        return to_restore

    async def shutdown(self) -> None:
        """
        Run cleanup for every loaded plugin, newest first, and drop runtime state.

        Persisted status is left untouched so the next start re-activates them.
        """
        for plugin_id in reversed(list(self._plugins)):
            try:
                await self._run_cleanup(plugin_id)
            except Exception:
                logger.exception("Error during cleanup of plugin %s", plugin_id)
            self.registry.remove_plugin_contributions(plugin_id)
            self.registry.unregister_plugin(plugin_id)

        self._plugins.clear()
        self._apis.clear()
        self._cleanups.clear()
        logger.info("Plugin manager shut down")

    # ── Install ───────────────────────────────────────────────────────────────

    async def install_plugin(self, plugin_id: str, metadata: PluginMetadata | None = None) -> bool:
        """Materialize a plugin and record it as INSTALLED. False if already tracked."""
        if not is_valid_plugin_id(plugin_id):
            logger.error("Refusing to install plugin with invalid id %r", plugin_id)
            return False

        async with self._lock(plugin_id):
            self._last_errors.pop(plugin_id, None)
            if plugin_id in self._status:
                logger.warning("Plugin %s is already installed", plugin_id)
                return False

            # tracked before materializing so afterInstall listeners see the record
            record = PluginInstallation(plugin_id=plugin_id, metadata=metadata)
            self._status[plugin_id] = record

            if not await self.loader.install_from_marketplace(plugin_id, metadata):
                del self._status[plugin_id]
                self._last_errors[plugin_id] = f"Failed to install plugin {plugin_id}"
                return False

            record.metadata = self.loader.get_plugin_metadata(plugin_id) or metadata

            try:
                saved = await self.store.save_plugin(_to_stored(record))
            except Exception as e:
                saved = False
                logger.error("Failed to install plugin %s: could not persist: %s", plugin_id, e)
            if not saved:
                logger.error("Plugin store did not save plugin %s; install rolled back", plugin_id)
                del self._status[plugin_id]
                self._last_errors[plugin_id] = f"Failed to persist plugin {plugin_id}"
                return False

            logger.info("Plugin %s installed", plugin_id)
            self.events.emit(EVENT_PLUGIN_STATUS_CHANGED, record)
            return True

    # ── Activate ──────────────────────────────────────────────────────────────

    async def activate_plugin(self, plugin_id: str) -> bool:
        """Load, dependency-check and initialize a plugin. No-op success if ACTIVE."""
        async with self._lock(plugin_id):
            self._last_errors.pop(plugin_id, None)
            return await self._activate(plugin_id)

    async def _activate(self, plugin_id: str) -> bool:
        record = self.get_plugin_status(plugin_id)
        if record.status == PluginStatus.ACTIVE:
            logger.warning("Plugin %s is already active", plugin_id)
            return True

        try:
            self.events.emit(EVENT_PLUGIN_BEFORE_ACTIVATE, plugin_id)

            plugin = await self.loader.load_plugin(plugin_id)
            if plugin is None:
                raise PluginLoadError(f"Failed to load plugin {plugin_id}", plugin_id=plugin_id)

            for dependency in plugin.metadata.dependencies:
                if self.get_plugin_status(dependency).status != PluginStatus.ACTIVE:
                    raise PluginDependencyError(
                        f"Plugin {plugin_id} depends on {dependency}, but it's not active",
                        plugin_id=plugin_id,
                        dependencies=[dependency],
                    )

            api = self._create_api(plugin_id)
            try:
                result = plugin.initialize(api)
                if inspect.isawaitable(result):
                    result = await result
            except Exception:
                # drop whatever initialize() managed to register before failing
                self.registry.remove_plugin_contributions(plugin_id)
                self.registry.unregister_plugin(plugin_id)
                raise

            if callable(result):
                self._cleanups[plugin_id] = result
            self._plugins[plugin_id] = plugin
            self._apis[plugin_id] = api

            record.status = PluginStatus.ACTIVE
            record.error = None
            record.metadata = plugin.metadata
            record.touch()
            self._status[plugin_id] = record
        except Exception as e:
            logger.error("Failed to activate plugin %s: %s", plugin_id, e)
            record.status = PluginStatus.ERROR
            record.error = str(e)
            record.touch()
            self._status[plugin_id] = record
            self._last_errors[plugin_id] = str(e)
            self.events.emit(EVENT_PLUGIN_ACTIVATE_ERROR, {"plugin_id": plugin_id, "error": str(e)})
            self.events.emit(EVENT_PLUGIN_STATUS_CHANGED, record)
            return False

        persisted = await self._persist("status", plugin_id, lambda: self.store.update_plugin_status(plugin_id, True))

        logger.info("Plugin %s activated", plugin_id)
        self.events.emit(EVENT_PLUGIN_AFTER_ACTIVATE, plugin_id)
        self.events.emit(EVENT_PLUGIN_STATUS_CHANGED, record)
        return persisted

    def _create_api(self, plugin_id: str) -> PluginAPI:
        def get_config() -> dict[str, Any]:
            return self.get_plugin_status(plugin_id).config

        async def save_config(config: dict[str, Any]) -> None:
            await self.update_plugin_config(plugin_id, config)

        return self.registry.create_plugin_api(plugin_id, get_config=get_config, save_config=save_config)

    # ── Deactivate ────────────────────────────────────────────────────────────

    async def deactivate_plugin(self, plugin_id: str) -> bool:
        """Run cleanup and withdraw a plugin's contributions. No-op success if not ACTIVE."""
        async with self._lock(plugin_id):
            self._last_errors.pop(plugin_id, None)
            return await self._deactivate(plugin_id)

    async def _deactivate(self, plugin_id: str) -> bool:
        record = self._status.get(plugin_id)
        if record is None or record.status != PluginStatus.ACTIVE:
            logger.warning("Plugin %s is not active", plugin_id)
            return True

        try:
            dependents = self._find_dependents(plugin_id)
            if dependents:
                raise PluginDependencyError(
                    f"Cannot deactivate plugin {plugin_id} because it's required by: {', '.join(dependents)}",
                    plugin_id=plugin_id,
                    dependencies=dependents,
                )

            self.events.emit(EVENT_PLUGIN_BEFORE_DEACTIVATE, plugin_id)

            await self._run_cleanup(plugin_id)

            self.registry.remove_plugin_contributions(plugin_id)
            self.registry.unregister_plugin(plugin_id)
            self._plugins.pop(plugin_id, None)
            self._apis.pop(plugin_id, None)

            record.status = PluginStatus.INACTIVE
            record.touch()
        except Exception as e:
            logger.error("Failed to deactivate plugin %s: %s", plugin_id, e)
            self._last_errors[plugin_id] = str(e)
            self.events.emit(EVENT_PLUGIN_DEACTIVATE_ERROR, {"plugin_id": plugin_id, "error": str(e)})
            return False

        persisted = await self._persist("status", plugin_id, lambda: self.store.update_plugin_status(plugin_id, False))

        logger.info("Plugin %s deactivated", plugin_id)
        self.events.emit(EVENT_PLUGIN_AFTER_DEACTIVATE, plugin_id)
        self.events.emit(EVENT_PLUGIN_STATUS_CHANGED, record)
        return persisted

    async def _run_cleanup(self, plugin_id: str) -> None:
        cleanup = self._cleanups.get(plugin_id)
        if cleanup is not None:
            await _call(cleanup)
            # kept until it has run without raising
            del self._cleanups[plugin_id]

        plugin_cleanup = getattr(self._plugins.get(plugin_id), "cleanup", None)
        if callable(plugin_cleanup):
            await _call(plugin_cleanup)

    def _find_dependents(self, plugin_id: str) -> list[str]:
        return [
            other_id
            for other_id, plugin in self._plugins.items()
            if other_id != plugin_id and plugin_id in plugin.metadata.dependencies
        ]

    # ── Uninstall ─────────────────────────────────────────────────────────────

    async def uninstall_plugin(self, plugin_id: str) -> bool:
        """Deactivate if needed, remove the plugin's files and forget its record."""
        async with self._lock(plugin_id):
            self._last_errors.pop(plugin_id, None)
            record = self._status.get(plugin_id)
            if record is None:
                logger.warning("Plugin %s is not installed", plugin_id)
                return False

            if record.status == PluginStatus.ACTIVE and not await self._deactivate(plugin_id):
                message = f"Failed to deactivate plugin {plugin_id}"
                logger.error("Failed to uninstall plugin %s: %s", plugin_id, message)
                self.events.emit(EVENT_PLUGIN_UNINSTALL_ERROR, {"plugin_id": plugin_id, "error": message})
                return False

            # forgotten before removal so afterUninstall listeners see the final table
            del self._status[plugin_id]
            if not await self.loader.uninstall_plugin(plugin_id):
                self._status[plugin_id] = record
                self._last_errors[plugin_id] = f"Failed to remove files of plugin {plugin_id}"
                return False

            persisted = await self._persist("delete", plugin_id, lambda: self.store.delete_plugin(plugin_id))
            logger.info("Plugin %s uninstalled", plugin_id)
            return persisted

    # ── Configuration ─────────────────────────────────────────────────────────

    async def update_plugin_config(self, plugin_id: str, config: dict[str, Any]) -> bool:
        """Shallow-merge `config` into the plugin's configuration; new keys win."""
        self._last_errors.pop(plugin_id, None)
        record = self._status.get(plugin_id)
        if record is None:
            logger.warning("Cannot update config of plugin %s: not installed", plugin_id)
            return False

        record.config = {**record.config, **config}
        record.touch()

        persisted = await self._persist(
            "config", plugin_id, lambda: self.store.update_plugin_config(plugin_id, dict(config))
        )
        self.events.emit(EVENT_PLUGIN_CONFIG_UPDATED, plugin_id, dict(record.config))
        self.events.emit(EVENT_PLUGIN_STATUS_CHANGED, record)
        return persisted

    # ── Persistence ───────────────────────────────────────────────────────────

    async def _persist(self, action: str, plugin_id: str, call: Callable[[], Awaitable[Any]]) -> bool:
        """Run one store call; a raise is a soft failure, a falsy result (row missing) only a warning."""
        try:
            result = await call()
        except Exception as e:
            logger.error("Plugin store %s failed for %s: %s", action, plugin_id, e)
            self._last_errors[plugin_id] = str(e)
            return False
        if not result:
            logger.warning("Plugin store %s had no effect for %s", action, plugin_id)
        return True

    # ── Queries ───────────────────────────────────────────────────────────────

    def get_plugin_status(self, plugin_id: str) -> PluginInstallation:
        """
        Return the status record of `plugin_id`.

        An untracked id yields a fresh default INSTALLED record which is NOT
        added to the table; use install_plugin() to register a plugin.
        Nothing is inserted in memory or in the store, so is_installed() stays
        False afterwards.
        """
        record = self._status.get(plugin_id)
        if record is None:
            return PluginInstallation(plugin_id=plugin_id)
        return record

    def get_last_error(self, plugin_id: str) -> str | None:
        """Why the most recent operation on `plugin_id` failed, or None if it succeeded."""
        return self._last_errors.get(plugin_id)

    def is_installed(self, plugin_id: str) -> bool:
        return plugin_id in self._status

    def get_installed_plugins(self) -> list[PluginInstallation]:
        return list(self._status.values())

    def get_active_plugins(self) -> list[PluginInstallation]:
        return [r for r in self._status.values() if r.status == PluginStatus.ACTIVE]

    def get_plugin(self, plugin_id: str) -> Any | None:
        """Return the loaded plugin object, or None if it is not active."""
        return self._plugins.get(plugin_id)

    def get_plugins(self) -> list[PluginMetadata]:
        return self.registry.get_plugins()

    def get_menu_items(self) -> list[MenuItem]:
        return self.registry.get_menu_items()

    def get_settings_panels(self) -> list[SettingsPanel]:
        return self.registry.get_settings_panels()

    def get_editor_extensions(self) -> list[EditorExtension]:
        return self.registry.get_editor_extensions()

    def get_custom_routes(self) -> list[CustomRoute]:
        return self.registry.get_custom_routes()

    def get_content_types(self) -> list[ContentTypeDefinition]:
        return self.registry.get_content_types()


def _to_stored(record: PluginInstallation) -> StoredPlugin:
    metadata = record.metadata or PluginMetadata(id=record.plugin_id, name=record.plugin_id)
    return StoredPlugin(
        id=record.plugin_id,
        name=metadata.name,
        description=metadata.description,
        version=metadata.version,
        author=metadata.author,
        category=metadata.category,
        is_active=record.status == PluginStatus.ACTIVE,
        installed_at=record.installed_at,
        updated_at=record.updated_at,
        config=dict(record.config),
    )


def _activation_order(plugins: list[PluginMetadata]) -> list[PluginMetadata]:
    """Order plugins so that dependencies among them come first; cycles keep input order."""
    by_id = {m.id: m for m in plugins}
    ordered: list[PluginMetadata] = []
    visited: set[str] = set()

    def visit(metadata: PluginMetadata) -> None:
        if metadata.id in visited:
            return
        visited.add(metadata.id)
        for dependency in metadata.dependencies:
            if dependency in by_id:
                visit(by_id[dependency])
        ordered.append(metadata)

    for metadata in plugins:
        visit(metadata)
    return ordered
