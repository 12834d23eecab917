"""
Blog Routes (multi-tenant)

POST   /api/v1/blogs                               → initialize a blog
DELETE /api/v1/blogs/{blog_id}                     → remove a blog
GET    /api/v1/blogs/{blog_id}/posts               → enhanced post list
GET    /api/v1/blogs/{blog_id}/posts/{slug}        → enhanced single post
GET    /api/v1/blogs/{blog_id}/slugs               → every published slug
GET    /api/v1/blogs/{blog_id}/plugins             → plugin configs of the blog
PUT    /api/v1/blogs/{blog_id}/plugins/{name}      → toggle and/or merge settings
*      /api/v1/blogs/{blog_id}/routes/{path}       → dispatch to a blog plugin route

All state lives on app.state.runtime (a MultiTenantRuntime).
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, Field

from noxion.exceptions import BlogNotFoundError, NotionAPIError, PluginNotFoundError
from noxion.plugins.loader import create_plugin
from noxion.plugins.runtime import BlogConfig, BlogPluginConfig, MultiTenantRuntime
from noxion.schemas.post import BlogPost

router = APIRouter(prefix="/blogs", tags=["Blogs"])
logger = logging.getLogger(__name__)


# ── Pydantic schemas ───────────────────────────────────────────────────────────


class BlogPluginEntry(BaseModel):
    name: str
    enabled: bool = True
    settings: dict[str, Any] = Field(default_factory=dict)


class BlogCreate(BaseModel):
    blog_id: str = Field(..., min_length=1, pattern=r"^[A-Za-z0-9_-]+$")
    notion_token: str = Field(..., min_length=1)
    notion_database_id: str = Field(..., min_length=1)
    plugins: list[BlogPluginEntry] = Field(default_factory=list)
    settings: dict[str, Any] = Field(default_factory=dict)


class BlogPluginUpdate(BaseModel):
    enabled: Optional[bool] = None
    settings: Optional[dict[str, Any]] = None


class BlogPluginResponse(BaseModel):
    name: str
    version: str
    installed_version: Optional[str] = None
    enabled: bool
    settings: dict[str, Any]
    errors: list[str] = []


class BlogResponse(BaseModel):
    blog_id: str
    plugins: list[BlogPluginResponse]


# ── Dependencies & helpers ─────────────────────────────────────────────────────


def get_runtime(request: Request) -> MultiTenantRuntime:
    return request.app.state.runtime


def _require_blog(runtime: MultiTenantRuntime, blog_id: str) -> BlogConfig:
    config = runtime.get_blog_config(blog_id)
    if config is None:
        raise BlogNotFoundError(blog_id)
    return config


def _plugin_responses(runtime: MultiTenantRuntime, config: BlogConfig) -> list[BlogPluginResponse]:
    statuses = runtime.get_blog_plugin_statuses(config.blog_id)
    responses = []
    for plugin_config in config.plugins:
        name = plugin_config.plugin.meta.name
        plugin_status = statuses.get(name)
        responses.append(
            BlogPluginResponse(
                name=name,
                version=plugin_config.plugin.meta.version,
                installed_version=plugin_config.installed_version,
                enabled=plugin_config.enabled,
                settings=plugin_config.settings,
                errors=list(plugin_status.errors) if plugin_status else [],
            )
        )
    return responses


# ── Blog lifecycle ─────────────────────────────────────────────────────────────


@router.post("", response_model=BlogResponse, status_code=status.HTTP_201_CREATED)
async def create_blog(payload: BlogCreate, runtime: MultiTenantRuntime = Depends(get_runtime)) -> BlogResponse:
    """
    Initialize (or re-initialize) a blog with its Notion credentials and plugins.

    Plugin instances are shared across blogs by name; per-blog settings are
    kept on the blog's own plugin config.
    """
    plugins = []
    for entry in payload.plugins:
        plugin = runtime.get_plugin(entry.name) or create_plugin(entry.name)
        plugins.append(BlogPluginConfig(plugin=plugin, enabled=entry.enabled, settings=dict(entry.settings)))

    config = BlogConfig(
        blog_id=payload.blog_id,
        notion_token=payload.notion_token,
        notion_database_id=payload.notion_database_id,
        plugins=plugins,
        settings=payload.settings,
    )
    await runtime.initialize_blog(config)
    return BlogResponse(blog_id=config.blog_id, plugins=_plugin_responses(runtime, config))


@router.delete("/{blog_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_blog(blog_id: str, runtime: MultiTenantRuntime = Depends(get_runtime)) -> Response:
    _require_blog(runtime, blog_id)
    await runtime.remove_blog(blog_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Content ────────────────────────────────────────────────────────────────────


@router.get("/{blog_id}/posts", response_model=list[BlogPost])
async def list_posts(blog_id: str, runtime: MultiTenantRuntime = Depends(get_runtime)) -> list[BlogPost]:
    """Published posts after the blog's afterPostsQuery hooks. Upstream failures yield []."""
    try:
        return await runtime.get_enhanced_posts(blog_id)
    except NotionAPIError as exc:
        logger.warning("Posts unavailable for blog %s: %s", blog_id, exc.message)
        return []


@router.get("/{blog_id}/posts/{slug}", response_model=BlogPost)
async def get_post(blog_id: str, slug: str, runtime: MultiTenantRuntime = Depends(get_runtime)) -> BlogPost:
    post = await runtime.get_enhanced_post(blog_id, slug)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Post not found: {slug}")
    return post


@router.get("/{blog_id}/slugs", response_model=list[str])
async def list_slugs(blog_id: str, runtime: MultiTenantRuntime = Depends(get_runtime)) -> list[str]:
    return await runtime.get_all_slugs(blog_id)


# ── Plugins ────────────────────────────────────────────────────────────────────


@router.get("/{blog_id}/plugins", response_model=list[BlogPluginResponse])
async def list_blog_plugins(
    blog_id: str, runtime: MultiTenantRuntime = Depends(get_runtime)
) -> list[BlogPluginResponse]:
    return _plugin_responses(runtime, _require_blog(runtime, blog_id))


@router.put("/{blog_id}/plugins/{name}", response_model=BlogPluginResponse)
async def update_blog_plugin(
    blog_id: str,
    name: str,
    payload: BlogPluginUpdate,
    runtime: MultiTenantRuntime = Depends(get_runtime),
) -> BlogPluginResponse:
    """Apply settings first, then the enabled flag, so a re-enabled plugin sees the new settings."""
    config = _require_blog(runtime, blog_id)
    if config.find_plugin(name) is None:
        raise PluginNotFoundError(name, blog_id=blog_id)

    if payload.settings is not None:
        runtime.update_blog_plugin_settings(blog_id, name, payload.settings)
    if payload.enabled is not None:
        await runtime.toggle_blog_plugin(blog_id, name, payload.enabled)

    config = _require_blog(runtime, blog_id)
    return next(p for p in _plugin_responses(runtime, config) if p.name == name)


@router.api_route("/{blog_id}/routes/{path:path}", methods=["GET", "POST", "PUT", "DELETE"])
async def dispatch_blog_route(
    blog_id: str,
    path: str,
    request: Request,
    runtime: MultiTenantRuntime = Depends(get_runtime),
) -> Any:
    """Call the handler one of the blog's plugins registered for this method and path."""
    _require_blog(runtime, blog_id)
    resolved = runtime.resolve_route(blog_id, request.method, f"/{path}")
    if resolved is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No plugin route for {request.method} /{path}")

    handler, params = resolved
    payload = await request.json() if await request.body() else None
    result = handler(payload, params)
    if inspect.isawaitable(result):
        result = await result
    return result
