"""Plugin manifest model - the `plugin.json` written for every materialized plugin."""

from __future__ import annotations

from pydantic import BaseModel, Field

from app.plugins.base import PLUGIN_ID_PATTERN, PluginMetadata

MANIFEST_FILE = "plugin.json"


class PluginManifest(BaseModel):
    """Plugin manifest loaded from `<plugins_dir>/<id>/plugin.json`."""

    id: str = Field(
        ..., min_length=1, pattern=PLUGIN_ID_PATTERN, description="Unique plugin identifier, also its directory name"
    )
    name: str = Field(..., min_length=1, description="Human-readable plugin name")
    version: str = Field(default="1.0.0", description="Plugin version")
    description: str = Field(default="", description="Plugin description")
    author: str = Field(default="Marketplace", description="Plugin author")
    icon: str | None = Field(default=None, description="Icon name used by the admin UI")
    dependencies: list[str] = Field(default_factory=list, description="Ids of required plugins")
    category: str = Field(default="Other", description="Marketplace category")
    entry_point: str | None = Field(
        default=None,
        description="Optional 'package.module:factory' path returning a plugin object",
    )

    def to_metadata(self) -> PluginMetadata:
        return PluginMetadata(
            id=self.id,
            name=self.name,
            version=self.version,
            description=self.description,
            author=self.author,
            icon=self.icon,
            dependencies=tuple(self.dependencies),
            category=self.category,
        )

    @classmethod
    def from_metadata(cls, metadata: PluginMetadata, entry_point: str | None = None) -> PluginManifest:
        return cls(**metadata.to_dict(), entry_point=entry_point)
