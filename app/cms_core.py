"""
CMS Bootstrap

CMSCore:       sequences system startup (cms:beforeInit, core plugins,
               cms:afterInit) and offers install / uninstall pass-throughs
               for plugin objects registered in code.
CMSContext:    one explicitly constructed instance of every plugin runtime
               component, created once per application.
build_context: wires a CMSContext from Settings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine

from app.config import Settings
from app.plugins import BUILTIN_PLUGINS
from app.plugins.base import PluginBase, PluginStatus
from app.plugins.events import EventBus
from app.plugins.hooks import EVENT_CMS_AFTER_INIT, EVENT_CMS_BEFORE_INIT
from app.plugins.loader import PluginLoader
from app.plugins.manager import PluginManager
from app.plugins.registry import ExtensionRegistry
from app.services.plugin_store import PluginStore, build_plugin_store

logger = logging.getLogger(__name__)


class CMSCore:
    """Thin outer shell around the plugin runtime; holds no plugin status itself."""

    def __init__(
        self,
        events: EventBus,
        loader: PluginLoader,
        manager: PluginManager,
        core_plugins: list[str] | None = None,
    ) -> None:
        self.events = events
        self.loader = loader
        self.manager = manager
        self.core_plugins = list(core_plugins or [])
        self._initialized = False

    async def initialize(self) -> None:
        """Start the CMS once; repeated calls log a warning and do nothing."""
        if self._initialized:
            logger.warning("CMS Core already initialized")
            return

        try:
            self.events.emit(EVENT_CMS_BEFORE_INIT)

            await self.manager.initialize()
            await self._load_core_plugins()

            self._initialized = True
            self.events.emit(EVENT_CMS_AFTER_INIT)
            logger.info("CMS Core initialized successfully")
        except Exception as e:
            logger.error("Failed to initialize CMS Core: %s", e)
            raise

    async def _load_core_plugins(self) -> None:
        for plugin_id in self.core_plugins:
            if not self.manager.is_installed(plugin_id) and not await self.manager.install_plugin(plugin_id):
                logger.error("Failed to install core plugin %s", plugin_id)
                continue
            if self.manager.get_plugin_status(plugin_id).status != PluginStatus.ACTIVE:
                if not await self.manager.activate_plugin(plugin_id):
                    logger.error(
                        "Failed to activate core plugin %s: %s",
                        plugin_id,
                        self.manager.get_plugin_status(plugin_id).error,
                    )

    async def install_plugin(self, plugin: PluginBase) -> None:
        """Register a plugin object directly, outside the manager's status tracking."""
        await self.loader.register_plugin(plugin)

    async def uninstall_plugin(self, plugin_id: str) -> None:
        await self.loader.unregister_plugin(plugin_id)

    def is_initialized(self) -> bool:
        return self._initialized


@dataclass
class CMSContext:
    """Application-wide plugin runtime, stored on `app.state.cms`."""

    settings: Settings
    events: EventBus
    registry: ExtensionRegistry
    loader: PluginLoader
    store: PluginStore
    manager: PluginManager
    core: CMSCore
    engine: AsyncEngine | None = None


def build_context(settings: Settings, store: PluginStore | None = None) -> CMSContext:
    """Construct and wire every plugin runtime component."""
    engine = None
    if store is None:
        store, engine = build_plugin_store(settings.database_url, echo=settings.debug)

    events = EventBus()
    registry = ExtensionRegistry(events, storage_root=settings.plugin_storage_root)
    loader = PluginLoader(events, settings.plugins_dir, registry=registry, factories=BUILTIN_PLUGINS)
    manager = PluginManager(events, loader, registry, store)
    core = CMSCore(events, loader, manager, core_plugins=settings.core_plugins)

    return CMSContext(
        settings=settings,
        events=events,
        registry=registry,
        loader=loader,
        store=store,
        manager=manager,
        core=core,
        engine=engine,
    )
