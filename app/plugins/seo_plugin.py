"""
SEO Toolkit Plugin

Contributes:
  - editor sidebar "seo-metadata-panel"
  - settings panel "seo-settings"

Event subscriptions:
  - content:beforeCreate / content:beforeUpdate → strip the `seo` block off the payload
  - content:afterGet                            → attach default SEO metadata
"""

from __future__ import annotations

import logging
import re
from typing import Any

from app.plugins.base import CleanupFn, PluginBase, PluginMetadata
from app.plugins.contributions import EditorExtension, SettingsPanel
from app.plugins.hooks import EVENT_CONTENT_AFTER_GET, EVENT_CONTENT_BEFORE_CREATE, EVENT_CONTENT_BEFORE_UPDATE

logger = logging.getLogger(__name__)

DESCRIPTION_LIMIT = 160
_TAG_RE = re.compile(r"<[^>]*>")

_METADATA = PluginMetadata(
    id="seo-toolkit",
    name="SEO Toolkit",
    version="1.0.0",
    description="Comprehensive SEO tools for optimizing your content",
    author="CMS Core Team",
    icon="Search",
    category="SEO",
)


def generate_default_seo_metadata(content: dict[str, Any]) -> dict[str, str]:
    """Derive SEO metadata from a content item's title and body."""
    title = content.get("title") or ""
    description = ""
    body = content.get("content")
    if body:
        plain_text = _TAG_RE.sub("", body)
        description = plain_text[:DESCRIPTION_LIMIT]
        if len(plain_text) > DESCRIPTION_LIMIT:
            description += "..."

    return {
        "meta_title": title,
        "meta_description": description,
        "meta_keywords": "",
        "og_title": title,
        "og_description": description,
        "og_image": "",
        "twitter_title": title,
        "twitter_description": description,
        "twitter_image": "",
        "canonical_url": "",
        "robots": "index,follow",
    }


def process_seo_metadata(content: dict[str, Any]) -> dict[str, Any]:
    """Remove the `seo` block from content about to be saved."""
    if isinstance(content, dict) and content.get("id") and "seo" in content:
        seo = content.pop("seo")
        logger.debug("Processing SEO metadata for content %s: %s", content["id"], seo)
    return content


def append_seo_metadata(content: dict[str, Any]) -> dict[str, Any]:
    """Attach default SEO metadata to retrieved content."""
    if isinstance(content, dict) and content.get("id"):
        content["seo"] = generate_default_seo_metadata(content)
    return content


class SEOToolkitPlugin(PluginBase):
    """SEO analysis and metadata management for content."""

    @property
    def metadata(self) -> PluginMetadata:
        return _METADATA

    def initialize(self, api: Any) -> CleanupFn:
        api.register_editor_extension(
            EditorExtension(id="seo-metadata-panel", type="sidebar", component="SEOMetadataPanel")
        )
        api.register_settings_panel(
            SettingsPanel(id="seo-settings", title="SEO Settings", component="SEOSettings", icon="Search", order=50)
        )

        unsubscribers = [
            api.events.on(EVENT_CONTENT_BEFORE_CREATE, process_seo_metadata),
            api.events.on(EVENT_CONTENT_BEFORE_UPDATE, process_seo_metadata),
            api.events.on(EVENT_CONTENT_AFTER_GET, append_seo_metadata),
        ]
        api.get_logger().info("SEO Toolkit initialized")

        def cleanup() -> None:
            for unsubscribe in unsubscribers:
                unsubscribe()

        return cleanup
