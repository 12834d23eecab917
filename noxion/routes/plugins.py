"""
Plugin Administration Routes

GET  /api/v1/plugins                 → list all registered plugins
GET  /api/v1/plugins/{name}          → get single plugin by name
POST /api/v1/plugins/{name}/enable   → enable plugin
POST /api/v1/plugins/{name}/disable  → disable plugin
PUT  /api/v1/plugins/{name}/config   → merge into plugin config
*    /api/v1/plugins/routes/{path}   → dispatch to a route registered by a plugin

Runtime state lives on app.state.plugin_registry; enabled flags and config
are also written to the plugins config file so they survive a restart.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel

from noxion.config import settings
from noxion.plugins.base import PluginBase  # noqa: TC001
from noxion.plugins.loader import load_plugins_config, save_plugins_config
from noxion.plugins.registry import PluginRegistry  # noqa: TC001

router = APIRouter(prefix="/plugins", tags=["Plugins"])
logger = logging.getLogger(__name__)


# ── Pydantic schemas ───────────────────────────────────────────────────────────


class PluginConfigUpdate(BaseModel):
    config: dict[str, Any]


class PluginResponse(BaseModel):
    name: str
    version: str
    description: str
    author: str
    dependencies: list[str]
    enabled: bool
    last_updated: Optional[str] = None
    errors: list[str] = []
    config: dict[str, Any]
    config_schema: dict[str, Any]


# ── Dependencies & helpers ─────────────────────────────────────────────────────


def get_plugin_registry(request: Request) -> PluginRegistry:
    return request.app.state.plugin_registry


def get_plugins_config_path() -> str:
    return settings.plugins_config_file


def _build_response(registry: PluginRegistry, plugin: PluginBase) -> PluginResponse:
    plugin_status = registry.get_plugin_status(plugin.meta.name)
    return PluginResponse(
        name=plugin.meta.name,
        version=plugin.meta.version,
        description=plugin.meta.description,
        author=plugin.meta.author,
        dependencies=plugin.meta.dependencies,
        enabled=plugin_status.enabled if plugin_status else False,
        last_updated=plugin_status.last_updated if plugin_status else None,
        errors=list(plugin_status.errors) if plugin_status else [],
        config=registry.get_plugin_config(plugin.meta.name),
        config_schema=plugin.meta.config_schema,
    )


def _get_or_404(registry: PluginRegistry, name: str) -> PluginBase:
    plugin = registry.get_plugin(name)
    if plugin is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Plugin not found: {name}",
        )
    return plugin


def _persist(name: str, path: str, **changes: Any) -> None:
    all_config = load_plugins_config(path)
    plugin_config = all_config.setdefault(name, {})
    if "settings" in changes:
        plugin_config.setdefault("settings", {}).update(changes.pop("settings"))
    plugin_config.update(changes)
    save_plugins_config(all_config, path)


# ── Routes ─────────────────────────────────────────────────────────────────────


@router.get("", response_model=list[PluginResponse])
async def list_plugins(registry: PluginRegistry = Depends(get_plugin_registry)) -> list[PluginResponse]:
    """List all registered plugins with their status and configuration."""
    return [_build_response(registry, p) for p in registry.get_plugins()]


@router.get("/{name}", response_model=PluginResponse)
async def get_plugin(name: str, registry: PluginRegistry = Depends(get_plugin_registry)) -> PluginResponse:
    return _build_response(registry, _get_or_404(registry, name))


@router.post("/{name}/enable", response_model=PluginResponse)
async def enable_plugin(
    name: str,
    registry: PluginRegistry = Depends(get_plugin_registry),
    config_path: str = Depends(get_plugins_config_path),
) -> PluginResponse:
    plugin = _get_or_404(registry, name)
    registry.set_plugin_enabled(name, True)
    _persist(name, config_path, enabled=True)
    return _build_response(registry, plugin)


@router.post("/{name}/disable", response_model=PluginResponse)
async def disable_plugin(
    name: str,
    registry: PluginRegistry = Depends(get_plugin_registry),
    config_path: str = Depends(get_plugins_config_path),
) -> PluginResponse:
    plugin = _get_or_404(registry, name)
    registry.set_plugin_enabled(name, False)
    _persist(name, config_path, enabled=False)
    return _build_response(registry, plugin)


@router.put("/{name}/config", response_model=PluginResponse)
async def update_plugin_config(
    name: str,
    payload: PluginConfigUpdate,
    registry: PluginRegistry = Depends(get_plugin_registry),
    config_path: str = Depends(get_plugins_config_path),
) -> PluginResponse:
    """Merge payload.config into the plugin's live settings."""
    plugin = _get_or_404(registry, name)
    registry.update_plugin_config(name, payload.config)
    _persist(name, config_path, settings=payload.config)
    return _build_response(registry, plugin)


@router.api_route("/routes/{path:path}", methods=["GET", "POST", "PUT", "DELETE"])
async def dispatch_plugin_route(
    path: str,
    request: Request,
    registry: PluginRegistry = Depends(get_plugin_registry),
) -> Any:
    """Call the handler an enabled plugin registered for this method and path."""
    resolved = registry.resolve_route(request.method, f"/{path}")
    if resolved is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No plugin route for {request.method} /{path}")

    handler, params = resolved
    payload = await request.json() if await request.body() else None
    result = handler(payload, params)
    if inspect.isawaitable(result):
        result = await result
    return result
