"""
Plugin Administration Routes

The admin UI's entry point into the plugin runtime. No authentication.

GET    /api/v1/plugins                       → installed plugins with status
GET    /api/v1/plugins/active                → active plugins
GET    /api/v1/plugins/extensions            → every registered contribution
GET    /api/v1/plugins/{plugin_id}           → status of one installed plugin
POST   /api/v1/plugins/{plugin_id}/install   → install (optional metadata body)
POST   /api/v1/plugins/{plugin_id}/activate  → activate
POST   /api/v1/plugins/{plugin_id}/deactivate → deactivate
DELETE /api/v1/plugins/{plugin_id}           → uninstall
PUT    /api/v1/plugins/{plugin_id}/config    → shallow-merge configuration

Failures reported by the PluginManager are raised as CMSError subclasses
and rendered by the global exception handlers.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Path, Request, status
from pydantic import BaseModel, Field

from app.cms_core import CMSContext
from app.exceptions import PluginAlreadyInstalledError, PluginNotFoundError, PluginOperationError
from app.plugins.base import PLUGIN_ID_PATTERN, PluginInstallation, PluginMetadata
from app.plugins.manager import PluginManager

router = APIRouter(tags=["Plugins"])
logger = logging.getLogger(__name__)

PluginId = Annotated[str, Path(pattern=PLUGIN_ID_PATTERN, description="Plugin id, also its directory name")]


# ── Pydantic schemas ───────────────────────────────────────────────────────────


class PluginInstallRequest(BaseModel):
    name: str = Field(..., min_length=1)
    version: str = "1.0.0"
    description: str = ""
    author: str = "Marketplace"
    icon: str | None = None
    dependencies: list[str] = Field(default_factory=list)
    category: str = "Other"

    def to_metadata(self, plugin_id: str) -> PluginMetadata:
        return PluginMetadata(
            id=plugin_id,
            name=self.name,
            version=self.version,
            description=self.description,
            author=self.author,
            icon=self.icon,
            dependencies=tuple(self.dependencies),
            category=self.category,
        )


class PluginConfigUpdate(BaseModel):
    config: dict[str, Any]


class PluginMetadataResponse(BaseModel):
    id: str
    name: str
    version: str
    description: str
    author: str
    icon: str | None = None
    dependencies: list[str]
    category: str


class PluginStatusResponse(BaseModel):
    plugin_id: str
    status: str
    installed_at: str
    updated_at: str
    config: dict[str, Any]
    error: str | None = None
    metadata: PluginMetadataResponse | None = None


class ExtensionsResponse(BaseModel):
    plugins: list[dict[str, Any]]
    menu_items: list[dict[str, Any]]
    settings_panels: list[dict[str, Any]]
    editor_extensions: list[dict[str, Any]]
    custom_routes: list[dict[str, Any]]
    content_types: list[dict[str, Any]]


# ── Dependencies & helpers ─────────────────────────────────────────────────────


def get_cms(request: Request) -> CMSContext:
    return request.app.state.cms


def get_manager(cms: CMSContext = Depends(get_cms)) -> PluginManager:
    return cms.manager


def _response(record: PluginInstallation) -> PluginStatusResponse:
    return PluginStatusResponse(**record.to_dict())


def _get_or_404(manager: PluginManager, plugin_id: str) -> PluginInstallation:
    if not manager.is_installed(plugin_id):
        raise PluginNotFoundError(plugin_id)
    return manager.get_plugin_status(plugin_id)


# ── Routes ─────────────────────────────────────────────────────────────────────


@router.get("/", response_model=list[PluginStatusResponse])
async def list_plugins(manager: PluginManager = Depends(get_manager)) -> list[PluginStatusResponse]:
    """List all installed plugins with their status and configuration."""
    return [_response(r) for r in manager.get_installed_plugins()]


@router.get("/active", response_model=list[PluginStatusResponse])
async def list_active_plugins(manager: PluginManager = Depends(get_manager)) -> list[PluginStatusResponse]:
    return [_response(r) for r in manager.get_active_plugins()]


@router.get("/extensions", response_model=ExtensionsResponse)
async def list_extensions(manager: PluginManager = Depends(get_manager)) -> ExtensionsResponse:
    """Everything active plugins have contributed, for the admin UI to render."""
    return ExtensionsResponse(
        plugins=[m.to_dict() for m in manager.get_plugins()],
        menu_items=[m.to_dict() for m in manager.get_menu_items()],
        settings_panels=[p.to_dict() for p in manager.get_settings_panels()],
        editor_extensions=[e.to_dict() for e in manager.get_editor_extensions()],
        custom_routes=[r.to_dict() for r in manager.get_custom_routes()],
        content_types=[c.to_dict() for c in manager.get_content_types()],
    )


@router.get("/{plugin_id}", response_model=PluginStatusResponse)
async def get_plugin(plugin_id: PluginId, manager: PluginManager = Depends(get_manager)) -> PluginStatusResponse:
    return _response(_get_or_404(manager, plugin_id))


@router.post("/{plugin_id}/install", response_model=PluginStatusResponse, status_code=status.HTTP_201_CREATED)
async def install_plugin(
    plugin_id: PluginId,
    body: PluginInstallRequest | None = None,
    manager: PluginManager = Depends(get_manager),
) -> PluginStatusResponse:
    """Install a plugin; metadata in the body overrides the built-in or marketplace defaults."""
    if manager.is_installed(plugin_id):
        raise PluginAlreadyInstalledError(plugin_id)

    metadata = body.to_metadata(plugin_id) if body is not None else None
    if not await manager.install_plugin(plugin_id, metadata):
        raise PluginOperationError("install", plugin_id, manager.get_last_error(plugin_id))

    logger.info("Plugin installed via API: %s", plugin_id)
    return _response(manager.get_plugin_status(plugin_id))


@router.post("/{plugin_id}/activate", response_model=PluginStatusResponse)
async def activate_plugin(plugin_id: PluginId, manager: PluginManager = Depends(get_manager)) -> PluginStatusResponse:
    _get_or_404(manager, plugin_id)
    if not await manager.activate_plugin(plugin_id):
        raise PluginOperationError("activate", plugin_id, manager.get_last_error(plugin_id))

    logger.info("Plugin activated via API: %s", plugin_id)
    return _response(manager.get_plugin_status(plugin_id))


@router.post("/{plugin_id}/deactivate", response_model=PluginStatusResponse)
async def deactivate_plugin(plugin_id: PluginId, manager: PluginManager = Depends(get_manager)) -> PluginStatusResponse:
    _get_or_404(manager, plugin_id)
    if not await manager.deactivate_plugin(plugin_id):
        raise PluginOperationError("deactivate", plugin_id, manager.get_last_error(plugin_id))

    logger.info("Plugin deactivated via API: %s", plugin_id)
    return _response(manager.get_plugin_status(plugin_id))


@router.delete("/{plugin_id}", status_code=status.HTTP_204_NO_CONTENT)
async def uninstall_plugin(plugin_id: PluginId, manager: PluginManager = Depends(get_manager)) -> None:
    _get_or_404(manager, plugin_id)
    if not await manager.uninstall_plugin(plugin_id):
        raise PluginOperationError("uninstall", plugin_id, manager.get_last_error(plugin_id))
    logger.info("Plugin uninstalled via API: %s", plugin_id)


@router.put("/{plugin_id}/config", response_model=PluginStatusResponse)
async def update_plugin_config(
    plugin_id: PluginId,
    body: PluginConfigUpdate,
    manager: PluginManager = Depends(get_manager),
) -> PluginStatusResponse:
    """Merge `config` into the plugin's configuration; keys not sent are kept."""
    _get_or_404(manager, plugin_id)
    if not await manager.update_plugin_config(plugin_id, body.config):
        raise PluginOperationError("configure", plugin_id, manager.get_last_error(plugin_id))

    logger.info("Plugin config updated via API: %s", plugin_id)
    return _response(manager.get_plugin_status(plugin_id))
