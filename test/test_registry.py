"""
Extension Registry Tests

Test classes:
    TestRegisterPlugin      — metadata registration and id enforcement
    TestContributions       — stamping, storage order, registration events
    TestPluginAPIConfig     — config, storage dir and logger helpers
    TestRemoval             — remove_plugin_contributions / unregister_plugin
"""

import asyncio
import logging

import pytest

from app.exceptions import PluginIdMismatchError
from app.plugins.base import PluginMetadata
from app.plugins.contributions import (
    ContentField,
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
from app.plugins.registry import ExtensionRegistry

# ══════════════════════════════════════════════════════════════════════════════
# 1. TestRegisterPlugin
# ══════════════════════════════════════════════════════════════════════════════


class TestRegisterPlugin:
    def test_register_plugin_stores_metadata(self, registry):
        api = registry.create_plugin_api("seo-toolkit")
        metadata = PluginMetadata(id="seo-toolkit", name="SEO")
        api.register_plugin(metadata)
        assert registry.get_plugins() == [metadata]
        assert registry.get_plugin("seo-toolkit") is metadata

    def test_register_plugin_with_foreign_id_raises(self, registry):
        api = registry.create_plugin_api("seo-toolkit")
        with pytest.raises(PluginIdMismatchError) as exc_info:
            api.register_plugin(PluginMetadata(id="ecommerce-shop", name="Shop"))
        assert "ecommerce-shop" in exc_info.value.message
        assert registry.get_plugins() == []

    def test_register_plugin_emits_event(self, events, registry):
        received = []
        events.on(EVENT_PLUGIN_REGISTERED, received.append)
        metadata = PluginMetadata(id="p", name="P")
        registry.create_plugin_api("p").register_plugin(metadata)
        assert received == [metadata]

    def test_get_plugin_config_reads_other_plugins(self, registry):
        registry.create_plugin_api("a").register_plugin(PluginMetadata(id="a", name="A", version="2.0.0"))
        api_b = registry.create_plugin_api("b")
        assert api_b.get_plugin_config("a").version == "2.0.0"
        assert api_b.get_plugin_config("missing") is None


# ══════════════════════════════════════════════════════════════════════════════
# 2. TestContributions
# ══════════════════════════════════════════════════════════════════════════════


class TestContributions:
    def test_contribution_is_stamped_with_true_owner(self, registry):
        api = registry.create_plugin_api("real-owner")
        item = MenuItem(id="m", title="M", path="/m", plugin_id="someone-else")

        stored = api.register_menu_item(item)

        assert stored.plugin_id == "real-owner"
        assert registry.get_menu_items()[0].plugin_id == "real-owner"
        # caller's object is left untouched
        assert item.plugin_id == "someone-else"

    def test_every_kind_is_stamped_and_stored(self, registry):
        api = registry.create_plugin_api("p")
        api.register_settings_panel(SettingsPanel(id="s", title="S", component="C"))
        api.register_editor_extension(EditorExtension(id="e", type="toolbar", component="C"))
        api.register_route(CustomRoute(id="r", path="/r", component="C"))
        api.register_content_type(
            ContentTypeDefinition(id="ct", name="CT", fields=[ContentField(id="f", name="F", type="text")])
        )

        for collection in (
            registry.get_settings_panels(),
            registry.get_editor_extensions(),
            registry.get_custom_routes(),
            registry.get_content_types(),
        ):
            assert [c.plugin_id for c in collection] == ["p"]

    def test_query_order_is_insertion_order(self, registry):
        api_a = registry.create_plugin_api("a")
        api_b = registry.create_plugin_api("b")
        api_b.register_menu_item(MenuItem(id="2", title="2", path="/2"))
        api_a.register_menu_item(MenuItem(id="1", title="1", path="/1"))
        api_b.register_menu_item(MenuItem(id="3", title="3", path="/3"))
        assert [m.id for m in registry.get_menu_items()] == ["2", "1", "3"]

    def test_query_returns_new_list(self, registry):
        registry.create_plugin_api("p").register_menu_item(MenuItem(id="m", title="M", path="/m"))
        items = registry.get_menu_items()
        items.clear()
        assert len(registry.get_menu_items()) == 1

    @pytest.mark.parametrize(
        "event, register, contribution",
        [
            (EVENT_MENU_ITEM_REGISTERED, "register_menu_item", MenuItem(id="m", title="M", path="/m")),
            (EVENT_SETTINGS_PANEL_REGISTERED, "register_settings_panel", SettingsPanel(id="s", title="S", component="C")),
            (
                EVENT_EDITOR_EXTENSION_REGISTERED,
                "register_editor_extension",
                EditorExtension(id="e", type="block", component="C"),
            ),
            (EVENT_ROUTE_REGISTERED, "register_route", CustomRoute(id="r", path="/r", component="C")),
            (EVENT_CONTENT_TYPE_REGISTERED, "register_content_type", ContentTypeDefinition(id="ct", name="CT")),
        ],
    )
    def test_registration_emits_stamped_contribution(self, event, register, contribution):
        events = EventBus()
        registry = ExtensionRegistry(events)
        received = []
        events.on(event, received.append)

        getattr(registry.create_plugin_api("owner"), register)(contribution)

        assert len(received) == 1
        assert received[0].plugin_id == "owner"
        assert received[0].id == contribution.id

    def test_api_exposes_shared_event_bus(self, events, registry):
        assert registry.create_plugin_api("p").events is events


# ══════════════════════════════════════════════════════════════════════════════
# 3. TestPluginAPIConfig
# ══════════════════════════════════════════════════════════════════════════════


class TestPluginAPIConfig:
    def test_local_config_when_unbound(self, registry):
        api = registry.create_plugin_api("p")
        assert api.get_config() == {}
        asyncio.run(api.save_config({"a": 1}))
        asyncio.run(api.save_config({"b": 2}))
        assert api.get_config() == {"a": 1, "b": 2}

    def test_bound_config_delegates(self, registry):
        saved = []
        config = {"theme": "dark"}

        async def save_config(partial):
            saved.append(partial)

        api = registry.create_plugin_api("p", get_config=lambda: config, save_config=save_config)
        assert api.get_config() == {"theme": "dark"}
        asyncio.run(api.save_config({"theme": "light"}))
        assert saved == [{"theme": "light"}]

    def test_storage_dir_is_namespaced(self, events):
        registry = ExtensionRegistry(events, storage_root="var/plugins/")
        assert registry.create_plugin_api("seo-toolkit").get_storage_dir() == "var/plugins/seo-toolkit/storage"

    def test_default_storage_dir(self, registry):
        assert registry.create_plugin_api("p").get_storage_dir() == "plugins/p/storage"

    def test_logger_is_namespaced_by_plugin(self, registry):
        api = registry.create_plugin_api("seo-toolkit")
        assert api.get_logger().name == "plugin.seo-toolkit"
        assert api.get_logger("sitemap").name == "plugin.seo-toolkit.sitemap"
        assert isinstance(api.get_logger(), logging.Logger)


# ══════════════════════════════════════════════════════════════════════════════
# 4. TestRemoval
# ══════════════════════════════════════════════════════════════════════════════


class TestRemoval:
    def test_remove_plugin_contributions_only_touches_owner(self, registry):
        api_a = registry.create_plugin_api("a")
        api_b = registry.create_plugin_api("b")
        api_a.register_menu_item(MenuItem(id="a-menu", title="A", path="/a"))
        api_a.register_settings_panel(SettingsPanel(id="a-panel", title="A", component="C"))
        api_b.register_menu_item(MenuItem(id="b-menu", title="B", path="/b"))
        api_b.register_route(CustomRoute(id="b-route", path="/b", component="C"))

        removed = registry.remove_plugin_contributions("a")

        assert removed == 2
        assert [m.id for m in registry.get_menu_items()] == ["b-menu"]
        assert registry.get_settings_panels() == []
        assert [r.id for r in registry.get_custom_routes()] == ["b-route"]

    def test_remove_unknown_plugin_returns_zero(self, registry):
        assert registry.remove_plugin_contributions("nobody") == 0

    def test_unregister_plugin_forgets_metadata(self, registry):
        metadata = PluginMetadata(id="p", name="P")
        registry.create_plugin_api("p").register_plugin(metadata)
        assert registry.unregister_plugin("p") is metadata
        assert registry.get_plugins() == []
        assert registry.unregister_plugin("p") is None

    def test_get_contributions_groups_by_kind(self, registry):
        api = registry.create_plugin_api("p")
        api.register_menu_item(MenuItem(id="m", title="M", path="/m"))
        api.register_route(CustomRoute(id="r", path="/r", component="C"))
        grouped = registry.get_contributions("p")
        assert [m.id for m in grouped["menu_items"]] == ["m"]
        assert [r.id for r in grouped["custom_routes"]] == ["r"]
        assert grouped["settings_panels"] == []
