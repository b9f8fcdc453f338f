"""
CMS Bootstrap Tests

Test classes:
    TestInitialize     — one-shot startup, events and core plugins
    TestDirectFlow     — install / uninstall of plugin objects registered in code
    TestBuildContext   — wiring from Settings
"""

import asyncio
import logging

import pytest

from app.cms_core import CMSCore, build_context
from app.exceptions import PluginDependencyError
from app.plugins.base import PluginStatus
from app.plugins.hooks import EVENT_CMS_AFTER_INIT, EVENT_CMS_BEFORE_INIT
from app.services.plugin_store import InMemoryPluginStore

from conftest import make_plugin


@pytest.fixture
def core(events, builtin_loader, builtin_manager):
    return CMSCore(events, builtin_loader, builtin_manager, core_plugins=["seo-toolkit"])


# ══════════════════════════════════════════════════════════════════════════════
# 1. TestInitialize
# ══════════════════════════════════════════════════════════════════════════════


class TestInitialize:
    def test_initialize_emits_events_in_order(self, events, core):
        order = []
        events.on(EVENT_CMS_BEFORE_INIT, lambda: order.append("before"))
        events.on(EVENT_CMS_AFTER_INIT, lambda: order.append("after"))

        asyncio.run(core.initialize())

        assert order == ["before", "after"]
        assert core.is_initialized()

    def test_core_plugins_are_installed_and_activated(self, core, builtin_manager):
        asyncio.run(core.initialize())

        assert builtin_manager.get_plugin_status("seo-toolkit").status == PluginStatus.ACTIVE
        assert [p.id for p in builtin_manager.get_settings_panels()] == ["seo-settings"]

    def test_second_initialize_is_a_warning_noop(self, events, core, caplog):
        after = []
        events.on(EVENT_CMS_AFTER_INIT, lambda: after.append(True))
        asyncio.run(core.initialize())

        with caplog.at_level(logging.WARNING, logger="app.cms_core"):
            asyncio.run(core.initialize())

        assert after == [True]
        assert "CMS Core already initialized" in caplog.text

    def test_failing_core_plugin_does_not_abort_startup(self, events, builtin_loader, builtin_manager):
        core = CMSCore(events, builtin_loader, builtin_manager, core_plugins=["product-reviews", "seo-toolkit"])

        asyncio.run(core.initialize())

        assert core.is_initialized()
        assert builtin_manager.get_plugin_status("product-reviews").status == PluginStatus.ERROR
        assert builtin_manager.get_plugin_status("seo-toolkit").status == PluginStatus.ACTIVE

    def test_core_plugin_already_active_is_left_alone(self, core, builtin_manager):
        asyncio.run(builtin_manager.install_plugin("seo-toolkit"))
        asyncio.run(builtin_manager.activate_plugin("seo-toolkit"))

        asyncio.run(core.initialize())

        assert len(builtin_manager.get_settings_panels()) == 1

    def test_manager_failure_propagates(self, events, builtin_loader, builtin_manager):
        async def broken():
            raise RuntimeError("manager down")

        builtin_manager.initialize = broken
        core = CMSCore(events, builtin_loader, builtin_manager)

        with pytest.raises(RuntimeError):
            asyncio.run(core.initialize())
        assert not core.is_initialized()


# ══════════════════════════════════════════════════════════════════════════════
# 2. TestDirectFlow
# ══════════════════════════════════════════════════════════════════════════════


class TestDirectFlow:
    def test_install_registers_contributions(self, core, registry, builtin_loader):
        asyncio.run(core.install_plugin(make_plugin("direct")))

        assert builtin_loader.is_plugin_loaded("direct")
        assert registry.get_plugin("direct") is not None
        assert [p.plugin_id for p in registry.get_settings_panels()] == ["direct"]

    def test_install_with_missing_dependency_raises(self, core):
        with pytest.raises(PluginDependencyError):
            asyncio.run(core.install_plugin(make_plugin("child", dependencies=["parent"])))

    def test_uninstall_removes_contributions(self, core, registry, builtin_loader):
        asyncio.run(core.install_plugin(make_plugin("direct")))
        asyncio.run(core.uninstall_plugin("direct"))

        assert not builtin_loader.is_plugin_loaded("direct")
        assert registry.get_settings_panels() == []

    def test_direct_flow_is_not_tracked_by_manager(self, core, builtin_manager):
        asyncio.run(core.install_plugin(make_plugin("direct")))
        assert not builtin_manager.is_installed("direct")


# ══════════════════════════════════════════════════════════════════════════════
# 3. TestBuildContext
# ══════════════════════════════════════════════════════════════════════════════


class TestBuildContext:
    def test_components_share_one_bus_and_registry(self, test_settings):
        cms = build_context(test_settings)

        assert cms.loader.events is cms.events
        assert cms.manager.events is cms.events
        assert cms.loader.registry is cms.registry
        assert cms.manager.registry is cms.registry
        assert cms.core.manager is cms.manager

    def test_no_database_means_memory_store(self, test_settings):
        cms = build_context(test_settings)
        assert isinstance(cms.store, InMemoryPluginStore)
        assert cms.engine is None

    def test_given_store_is_used(self, test_settings):
        store = InMemoryPluginStore()
        assert build_context(test_settings, store=store).store is store

    def test_builtin_plugins_are_resolvable(self, test_settings):
        cms = build_context(test_settings)
        assert cms.loader.has_factory("seo-toolkit")
        assert cms.loader.has_factory("product-reviews")

    def test_core_plugins_come_from_settings(self, test_settings):
        test_settings.core_plugins = ["ecommerce-shop"]
        assert build_context(test_settings).core.core_plugins == ["ecommerce-shop"]

    def test_two_contexts_are_independent(self, test_settings):
        first = build_context(test_settings)
        second = build_context(test_settings)
        assert first.events is not second.events
        assert first.registry is not second.registry
