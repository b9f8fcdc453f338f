"""
Extension contributions

Everything a plugin can contribute to the admin UI. `component` values are
component identifiers resolved by the frontend; this package never renders.

`plugin_id` is always overwritten by the ExtensionRegistry with the id of
the plugin that registered the contribution.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal

EditorExtensionType = Literal["toolbar", "sidebar", "block"]


@dataclass(frozen=True)
class MenuItem:
    id: str
    title: str
    path: str
    icon: str | None = None
    order: int | None = None
    parent: str | None = None  # parent menu id for nested menus
    plugin_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SettingsPanel:
    id: str
    title: str
    component: str
    icon: str | None = None
    order: int | None = None
    plugin_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class EditorExtension:
    id: str
    type: EditorExtensionType
    component: str
    plugin_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CustomRoute:
    id: str
    path: str
    component: str
    exact: bool = False
    plugin_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ContentField:
    id: str
    name: str
    type: str  # text | textarea | number | boolean | date | select | media | relation | custom
    required: bool = False
    default_value: Any = None
    options: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ContentTypeDefinition:
    id: str
    name: str
    description: str = ""
    icon: str | None = None
    fields: tuple[ContentField, ...] = ()
    plugin_id: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
