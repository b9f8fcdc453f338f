"""
Product Reviews Plugin

Customer reviews for shop products. Requires the e-commerce shop plugin to
be active. Defined with FunctionPlugin rather than a PluginBase subclass.
"""

from __future__ import annotations

from typing import Any

from app.plugins.base import FunctionPlugin, PluginMetadata
from app.plugins.contributions import ContentField, ContentTypeDefinition, EditorExtension, MenuItem
from app.plugins.hooks import EVENT_CONTENT_AFTER_DELETE

DEFAULT_CONFIG = {"require_approval": True, "max_rating": 5}

REVIEWS_METADATA = PluginMetadata(
    id="product-reviews",
    name="Product Reviews",
    version="1.0.0",
    description="Customer ratings and reviews for shop products",
    author="CMS Core Team",
    icon="Star",
    dependencies=("ecommerce-shop",),
    category="E-commerce",
)


def _initialize(api: Any):
    config = {**DEFAULT_CONFIG, **api.get_config()}
    log = api.get_logger()

    api.register_content_type(
        ContentTypeDefinition(
            id="review",
            name="Review",
            icon="Star",
            fields=(
                ContentField(id="product", name="Product", type="relation", required=True, options={"to": "product"}),
                ContentField(
                    id="rating",
                    name="Rating",
                    type="number",
                    required=True,
                    options={"min": 1, "max": config["max_rating"]},
                ),
                ContentField(id="body", name="Review", type="textarea"),
                ContentField(id="approved", name="Approved", type="boolean", default_value=not config["require_approval"]),
            ),
        )
    )
    api.register_menu_item(
        MenuItem(
            id="ecommerce-admin-reviews",
            title="Reviews",
            path="/admin/ecommerce/reviews",
            icon="Star",
            parent="ecommerce-admin",
            order=60,
        )
    )
    api.register_editor_extension(EditorExtension(id="product-reviews-block", type="block", component="ReviewsBlock"))

    def on_content_deleted(content: Any) -> None:
        if isinstance(content, dict) and content.get("type") == "product":
            log.info("Product %s deleted, its reviews are orphaned", content.get("id"))

    return api.events.on(EVENT_CONTENT_AFTER_DELETE, on_content_deleted)


def create_reviews_plugin() -> FunctionPlugin:
    return FunctionPlugin(REVIEWS_METADATA, _initialize)
