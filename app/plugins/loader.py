"""
Plugin Loader

Turns a plugin id into a loadable plugin object and performs the install /
uninstall side effects on the plugins directory.

Every materialized plugin lives in `<plugins_dir>/<id>/plugin.json`. Code is
resolved, in order, from:

1. the manifest's `entry_point` ("package.module:factory"), imported with importlib;
2. a factory registered at startup (the built-in plugin table);
3. the manifest alone, giving a ManifestPlugin whose initialize only logs.

The loader also keeps the simple "direct" flow used by CMSCore for plugin
objects registered in code, outside the PluginManager's status tracking.
"""

from __future__ import annotations

import importlib
import inspect
import json
import logging
import shutil
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError as PydanticValidationError

from app.exceptions import PluginDependencyError, PluginLoadError
from app.plugins.base import CleanupFn, PluginBase, PluginMetadata, is_valid_plugin_id
from app.plugins.events import EventBus
from app.plugins.hooks import (
    EVENT_PLUGIN_AFTER_INSTALL,
    EVENT_PLUGIN_AFTER_LOAD,
    EVENT_PLUGIN_AFTER_UNINSTALL,
    EVENT_PLUGIN_BEFORE_INSTALL,
    EVENT_PLUGIN_BEFORE_LOAD,
    EVENT_PLUGIN_BEFORE_UNINSTALL,
    EVENT_PLUGIN_INSTALL_ERROR,
    EVENT_PLUGIN_LOAD_ERROR,
    EVENT_PLUGIN_UNINSTALL_ERROR,
)
from app.plugins.manifest import MANIFEST_FILE, PluginManifest
from app.plugins.registry import ExtensionRegistry

logger = logging.getLogger(__name__)

PluginFactory = Callable[[], Any]

MARKETPLACE_DESCRIPTION = "A plugin installed from the marketplace"
MARKETPLACE_AUTHOR = "Marketplace"


class ManifestPlugin(PluginBase):
    """Plugin materialized from a manifest with no code attached."""

    def __init__(self, manifest: PluginManifest) -> None:
        self._metadata = manifest.to_metadata()

    @property
    def metadata(self) -> PluginMetadata:
        return self._metadata

    def initialize(self, api: Any) -> None:
        api.get_logger().info("Plugin %s initialized", self._metadata.id)


class PluginLoader:
    """Resolves plugin ids to plugin objects and manages the plugins directory."""

    def __init__(
        self,
        events: EventBus,
        plugins_dir: str | Path = "data/plugins",
        registry: ExtensionRegistry | None = None,
        factories: dict[str, PluginFactory] | None = None,
    ) -> None:
        self.events = events
        self.plugins_dir = Path(plugins_dir)
        self.registry = registry if registry is not None else ExtensionRegistry(events)
        self._factories: dict[str, PluginFactory] = dict(factories or {})
        # direct flow state (CMSCore.install_plugin)
        self._loaded: dict[str, PluginBase] = {}
        self._cleanups: dict[str, CleanupFn] = {}

    # ── Factory table ─────────────────────────────────────────────────────────

    def register_factory(self, plugin_id: str, factory: PluginFactory) -> None:
        """Make `factory` the code source for `plugin_id`."""
        self._factories[plugin_id] = factory

    def has_factory(self, plugin_id: str) -> bool:
        return plugin_id in self._factories

    # ── Paths ─────────────────────────────────────────────────────────────────

    def plugin_dir(self, plugin_id: str) -> Path:
        """
        Directory of `plugin_id`, always a direct child of `plugins_dir`.

        Raises PluginLoadError for ids that are not valid directory names or
        that would resolve outside the plugins directory.
        """
        if not is_valid_plugin_id(plugin_id):
            raise PluginLoadError(f"Invalid plugin id '{plugin_id}'", plugin_id=plugin_id)

        root = self.plugins_dir.resolve()
        path = (root / plugin_id).resolve()
        if path.parent != root:
            raise PluginLoadError(f"Plugin {plugin_id} resolves outside {root}", plugin_id=plugin_id)
        return path

    def manifest_path(self, plugin_id: str) -> Path:
        return self.plugin_dir(plugin_id) / MANIFEST_FILE

    def is_materialized(self, plugin_id: str) -> bool:
        """Return True if the plugin has a manifest on disk."""
        try:
            return self.manifest_path(plugin_id).is_file()
        except PluginLoadError:
            return False

    # ── Loading ───────────────────────────────────────────────────────────────

    async def load_plugin(self, plugin_id: str) -> Any | None:
        """
        Resolve `plugin_id` to a plugin object.

        Emits plugin:beforeLoad, then plugin:afterLoad with the plugin, or
        plugin:loadError with {"plugin_id", "error"}. Returns None on failure.
        """
        try:
            self.events.emit(EVENT_PLUGIN_BEFORE_LOAD, plugin_id)

            plugin = self._resolve(plugin_id)
            self._validate(plugin_id, plugin)

            self.events.emit(EVENT_PLUGIN_AFTER_LOAD, plugin)
            return plugin
        except Exception as e:
            logger.error("Failed to load plugin %s: %s", plugin_id, e)
            self.events.emit(EVENT_PLUGIN_LOAD_ERROR, {"plugin_id": plugin_id, "error": str(e)})
            return None

    def _resolve(self, plugin_id: str) -> Any:
        manifest = self._read_manifest(plugin_id) if self.is_materialized(plugin_id) else None

        if manifest is not None and manifest.entry_point:
            return self._import_entry_point(manifest.entry_point)

        factory = self._factories.get(plugin_id)
        if factory is not None:
            return factory()

        if manifest is not None:
            return ManifestPlugin(manifest)

        raise PluginLoadError(f"Plugin {plugin_id} not found in {self.plugins_dir}", plugin_id=plugin_id)

    @staticmethod
    def _import_entry_point(entry_point: str) -> Any:
        module_name, _, attr = entry_point.partition(":")
        if not module_name or not attr:
            raise PluginLoadError(f"Invalid entry point '{entry_point}', expected 'module:factory'")

        module = importlib.import_module(module_name)
        target = getattr(module, attr, None)
        if target is None:
            raise PluginLoadError(f"Module {module_name} has no attribute '{attr}'")
        return target() if callable(target) else target

    @staticmethod
    def _validate(plugin_id: str, plugin: Any) -> None:
        if plugin is None or getattr(plugin, "metadata", None) is None:
            raise PluginLoadError(f"Invalid plugin structure for {plugin_id}: missing metadata", plugin_id=plugin_id)
        if not callable(getattr(plugin, "initialize", None)):
            raise PluginLoadError(
                f"Invalid plugin structure for {plugin_id}: missing initialize function", plugin_id=plugin_id
            )

    def _read_manifest(self, plugin_id: str) -> PluginManifest:
        data = json.loads(self.manifest_path(plugin_id).read_text(encoding="utf-8"))
        return PluginManifest(**data)

    def get_plugin_metadata(self, plugin_id: str) -> PluginMetadata | None:
        """Metadata from the plugin's manifest, or None if it is missing or invalid."""
        if not self.is_materialized(plugin_id):
            return None
        try:
            return self._read_manifest(plugin_id).to_metadata()
        except (OSError, ValueError) as e:
            logger.error("Failed to read manifest of %s: %s", plugin_id, e)
            return None

    # ── Install / uninstall ───────────────────────────────────────────────────

    async def install_from_marketplace(self, plugin_id: str, metadata: PluginMetadata | None = None) -> bool:
        """
        Materialize `plugin_id` by writing its manifest.

        There is no network download: the manifest is built from `metadata`,
        else from a registered factory's metadata, else from marketplace
        defaults. Never raises.
        """
        try:
            self.events.emit(EVENT_PLUGIN_BEFORE_INSTALL, plugin_id)

            manifest = PluginManifest.from_metadata(self._install_metadata(plugin_id, metadata))
            manifest = manifest.model_copy(update={"id": plugin_id})
            plugin_dir = self.plugin_dir(plugin_id)
            plugin_dir.mkdir(parents=True, exist_ok=True)
            self.manifest_path(plugin_id).write_text(
                manifest.model_dump_json(indent=2, exclude_none=True),
                encoding="utf-8",
            )
            logger.info("Installed plugin %s into %s", plugin_id, plugin_dir)

            self.events.emit(EVENT_PLUGIN_AFTER_INSTALL, plugin_id)
            return True
        except Exception as e:
            logger.error("Failed to install plugin %s: %s", plugin_id, e)
            self.events.emit(EVENT_PLUGIN_INSTALL_ERROR, {"plugin_id": plugin_id, "error": str(e)})
            return False

    def _install_metadata(self, plugin_id: str, metadata: PluginMetadata | None) -> PluginMetadata:
        if metadata is not None:
            return metadata
        factory = self._factories.get(plugin_id)
        if factory is not None:
            return factory().metadata
        return PluginMetadata(
            id=plugin_id,
            name=plugin_id,
            description=MARKETPLACE_DESCRIPTION,
            author=MARKETPLACE_AUTHOR,
        )

    async def uninstall_plugin(self, plugin_id: str) -> bool:
        """Remove the plugin's directory. Never raises."""
        try:
            self.events.emit(EVENT_PLUGIN_BEFORE_UNINSTALL, plugin_id)

            plugin_dir = self.plugin_dir(plugin_id)
            if plugin_dir.exists():
                shutil.rmtree(plugin_dir)
                logger.info("Removed plugin directory %s", plugin_dir)

            self.events.emit(EVENT_PLUGIN_AFTER_UNINSTALL, plugin_id)
            return True
        except Exception as e:
            logger.error("Failed to uninstall plugin %s: %s", plugin_id, e)
            self.events.emit(EVENT_PLUGIN_UNINSTALL_ERROR, {"plugin_id": plugin_id, "error": str(e)})
            return False

    async def get_installed_plugins_metadata(self) -> list[PluginMetadata]:
        """Metadata of every materialized plugin, whatever its activation status."""
        if not self.plugins_dir.is_dir():
            return []

        metadata: list[PluginMetadata] = []
        for item in sorted(self.plugins_dir.iterdir()):
            if not is_valid_plugin_id(item.name):
                logger.warning("Skipping %s: not a valid plugin id", item)
                continue
            if not (item / MANIFEST_FILE).is_file():
                continue
            try:
                metadata.append(self._read_manifest(item.name).to_metadata())
            except json.JSONDecodeError as e:
                logger.error("Invalid JSON in %s: %s", item / MANIFEST_FILE, e)
            except PydanticValidationError as e:
                logger.error("Invalid manifest in %s: %s", item / MANIFEST_FILE, e)
            except OSError as e:
                logger.error("Failed to read %s: %s", item / MANIFEST_FILE, e)
        return metadata

    # ── Direct flow ───────────────────────────────────────────────────────────

    async def register_plugin(self, plugin: PluginBase) -> None:
        """
        Register and initialize a plugin object directly.

        Dependencies are checked against plugins loaded through this flow.
        Raises on failure.
        """
        metadata = plugin.metadata
        plugin_id = metadata.id
        if plugin_id in self._loaded:
            logger.warning("Plugin %s is already loaded", plugin_id)
            return

        try:
            self.events.emit(EVENT_PLUGIN_BEFORE_INSTALL, plugin_id)

            for dependency in metadata.dependencies:
                if dependency not in self._loaded:
                    raise PluginDependencyError(
                        f"Plugin {plugin_id} depends on {dependency}, but it's not loaded",
                        plugin_id=plugin_id,
                        dependencies=[dependency],
                    )

            api = self.registry.create_plugin_api(plugin_id)
            api.register_plugin(metadata)

            result = plugin.initialize(api)
            if inspect.isawaitable(result):
                result = await result
            if callable(result):
                self._cleanups[plugin_id] = result

            self._loaded[plugin_id] = plugin
            self.events.emit(EVENT_PLUGIN_AFTER_INSTALL, metadata)
            logger.info("Plugin %s loaded successfully", plugin_id)
        except Exception as e:
            logger.error("Failed to load plugin %s: %s", plugin_id, e)
            raise

    async def unregister_plugin(self, plugin_id: str) -> None:
        """Unload a directly registered plugin. Raises if other loaded plugins depend on it."""
        if plugin_id not in self._loaded:
            logger.warning("Plugin %s is not loaded", plugin_id)
            return

        try:
            self.events.emit(EVENT_PLUGIN_BEFORE_UNINSTALL, plugin_id)

            dependents = [
                other_id
                for other_id, other in self._loaded.items()
                if other_id != plugin_id and plugin_id in other.metadata.dependencies
            ]
            if dependents:
                raise PluginDependencyError(
                    f"Cannot unload plugin {plugin_id} because it's required by: {', '.join(dependents)}",
                    plugin_id=plugin_id,
                    dependencies=dependents,
                )

            cleanup = self._cleanups.get(plugin_id)
            if cleanup is not None:
                result = cleanup()
                if inspect.isawaitable(result):
                    await result
                # kept until it has run without raising
                del self._cleanups[plugin_id]
            await self._loaded[plugin_id].cleanup()

            del self._loaded[plugin_id]
            self.registry.remove_plugin_contributions(plugin_id)
            self.registry.unregister_plugin(plugin_id)

            self.events.emit(EVENT_PLUGIN_AFTER_UNINSTALL, plugin_id)
            logger.info("Plugin %s unloaded successfully", plugin_id)
        except Exception as e:
            logger.error("Failed to unload plugin %s: %s", plugin_id, e)
            raise

    def is_plugin_loaded(self, plugin_id: str) -> bool:
        return plugin_id in self._loaded

    def get_loaded_plugin_ids(self) -> list[str]:
        return list(self._loaded)
