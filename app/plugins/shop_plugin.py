"""
E-commerce Shop Plugin

Storefront and admin screens for products, orders and categories, plus the
"product" content type. Routes reference frontend component identifiers.
"""

from __future__ import annotations

import logging
from typing import Any

from app.plugins.base import CleanupFn, PluginBase, PluginMetadata
from app.plugins.contributions import ContentField, ContentTypeDefinition, CustomRoute, MenuItem, SettingsPanel
from app.plugins.hooks import EVENT_CONTENT_PUBLISHED

logger = logging.getLogger(__name__)

_METADATA = PluginMetadata(
    id="ecommerce-shop",
    name="E-commerce Shop",
    version="1.0.0",
    description=(
        "Complete e-commerce solution with product management, shopping cart, "
        "checkout, and order processing"
    ),
    author="CMS Core Team",
    icon="ShoppingCart",
    category="E-commerce",
)

# (id, path, component, exact)
_ROUTES = [
    ("ecommerce-products", "/shop", "ProductList", True),
    ("ecommerce-product-detail", "/shop/product/:id", "ProductDetail", False),
    ("ecommerce-cart", "/shop/cart", "Cart", False),
    ("ecommerce-checkout", "/shop/checkout", "Checkout", False),
    ("ecommerce-admin-products", "/admin/ecommerce/products", "AdminProducts", False),
    ("ecommerce-admin-orders", "/admin/ecommerce/orders", "AdminOrders", False),
    ("ecommerce-admin-settings", "/admin/ecommerce/settings", "AdminSettings", False),
]

_MENU_ITEMS = [
    MenuItem(id="ecommerce-shop", title="Shop", path="/shop", icon="ShoppingCart", order=30),
    MenuItem(id="ecommerce-admin", title="E-commerce", path="/admin/ecommerce", icon="ShoppingBag", order=40),
    MenuItem(
        id="ecommerce-admin-products",
        title="Products",
        path="/admin/ecommerce/products",
        icon="Package",
        parent="ecommerce-admin",
        order=10,
    ),
    MenuItem(
        id="ecommerce-admin-orders",
        title="Orders",
        path="/admin/ecommerce/orders",
        icon="ShoppingBag",
        parent="ecommerce-admin",
        order=20,
    ),
]

PRODUCT_CONTENT_TYPE = ContentTypeDefinition(
    id="product",
    name="Product",
    description="Item sold in the shop",
    icon="Package",
    fields=(
        ContentField(id="sku", name="SKU", type="text", required=True),
        ContentField(id="price", name="Price", type="number", required=True, default_value=0),
        ContentField(id="stock", name="Stock", type="number", default_value=0),
        ContentField(id="images", name="Images", type="media", options={"multiple": True}),
    ),
)


class ShopPlugin(PluginBase):
    """E-commerce shop: routes, admin menu, settings and the product content type."""

    @property
    def metadata(self) -> PluginMetadata:
        return _METADATA

    def initialize(self, api: Any) -> CleanupFn:
        for route_id, path, component, exact in _ROUTES:
            api.register_route(CustomRoute(id=route_id, path=path, component=component, exact=exact))
        for item in _MENU_ITEMS:
            api.register_menu_item(item)
        api.register_settings_panel(
            SettingsPanel(
                id="ecommerce-settings",
                title="E-commerce Settings",
                component="AdminSettings",
                icon="ShoppingCart",
                order=30,
            )
        )
        api.register_content_type(PRODUCT_CONTENT_TYPE)

        plugin_logger = api.get_logger()

        def on_content_published(content: Any) -> None:
            plugin_logger.debug("Content published, checking if product needs updating: %s", content)

        unsubscribe = api.events.on(EVENT_CONTENT_PUBLISHED, on_content_published)
        return unsubscribe

    async def cleanup(self) -> None:
        logger.debug("E-commerce plugin cleanup")
