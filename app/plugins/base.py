"""
Plugin Base Classes

PluginMetadata:     declarative identity of a plugin (id, version, dependencies).
PluginStatus:       lifecycle states tracked by the PluginManager.
PluginInstallation: per-plugin status record owned by the PluginManager.
PluginBase:         abstract base class for loadable plugins.
FunctionPlugin:     PluginBase built from plain initialize/cleanup callables.
"""

from __future__ import annotations

import enum
import inspect
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

if TYPE_CHECKING:
    from app.plugins.registry import PluginAPI

CleanupFn = Callable[[], Union[None, Awaitable[None]]]
InitializeResult = Union[None, CleanupFn]

# plugin ids double as directory names under the plugins directory
PLUGIN_ID_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9._-]*$"
_PLUGIN_ID_RE = re.compile(PLUGIN_ID_PATTERN)


def is_valid_plugin_id(plugin_id: str) -> bool:
    return isinstance(plugin_id, str) and _PLUGIN_ID_RE.fullmatch(plugin_id) is not None


@dataclass(frozen=True)
class PluginMetadata:
    """
    Declarative metadata describing a plugin.

    Attributes:
        id:           Unique machine-readable id, e.g. "seo-toolkit".
        name:         Human-readable name shown in the admin UI.
        version:      Semver string, e.g. "1.0.0".
        description:  Human-readable description.
        author:       Plugin author.
        icon:         Optional icon name used by the admin UI.
        dependencies: Ids of plugins that must be ACTIVE before this one.
        category:     Marketplace category.
    """

    id: str
    name: str
    version: str = "1.0.0"
    description: str = ""
    author: str = "CMS Core Team"
    icon: str | None = None
    dependencies: tuple[str, ...] = ()
    category: str = "Other"

    def __post_init__(self) -> None:
        # accept any iterable of ids but store an immutable tuple
        object.__setattr__(self, "dependencies", tuple(self.dependencies))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "author": self.author,
            "icon": self.icon,
            "dependencies": list(self.dependencies),
            "category": self.category,
        }


class PluginStatus(str, enum.Enum):
    """Plugin lifecycle states."""

    INSTALLED = "installed"
    ACTIVE = "active"
    INACTIVE = "inactive"
    ERROR = "error"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PluginInstallation:
    """Status record for one installed plugin."""

    plugin_id: str
    status: PluginStatus = PluginStatus.INSTALLED
    installed_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    config: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    metadata: PluginMetadata | None = None

    def touch(self) -> None:
        self.updated_at = utcnow()

    def to_dict(self) -> dict[str, Any]:
        """Serialize the record for API responses."""
        return {
            "plugin_id": self.plugin_id,
            "status": self.status.value,
            "installed_at": self.installed_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "config": dict(self.config),
            "error": self.error,
            "metadata": self.metadata.to_dict() if self.metadata else None,
        }


class PluginBase(ABC):
    """
    Abstract base class for all CMS plugins.

    Subclasses must implement `metadata` and `initialize`. `initialize` receives
    a PluginAPI scoped to the plugin and may be sync or async; it may return a
    cleanup callable which the manager runs on deactivation before `cleanup()`.
    """

    @property
    @abstractmethod
    def metadata(self) -> PluginMetadata:
        """Return the plugin's metadata."""
        ...

    @abstractmethod
    def initialize(self, api: PluginAPI) -> InitializeResult | Awaitable[InitializeResult]:
        """Register capabilities through `api`; optionally return a cleanup callable."""
        ...

    async def cleanup(self) -> None:  # noqa: B027
        """
        Called when the plugin is deactivated or the runtime shuts down.

        Override to release resources (e.g. cancel tasks, close connections).
        """


class FunctionPlugin(PluginBase):
    """A plugin defined by a metadata object and plain callables."""

    def __init__(
        self,
        metadata: PluginMetadata,
        initialize: Callable[[PluginAPI], Any],
        cleanup: Callable[[], Any] | None = None,
    ) -> None:
        self._metadata = metadata
        self._initialize = initialize
        self._cleanup = cleanup

    @property
    def metadata(self) -> PluginMetadata:
        return self._metadata

    def initialize(self, api: PluginAPI) -> Any:
        return self._initialize(api)

    async def cleanup(self) -> None:
        if self._cleanup is None:
            return
        result = self._cleanup()
        if inspect.isawaitable(result):
            await result

    def __repr__(self) -> str:
        return f"FunctionPlugin(id={self._metadata.id!r})"
