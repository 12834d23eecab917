"""
Plugin context handed to PluginBase.register().

The registry (or the multi-tenant runtime) decides what each callable is
bound to; plugins only ever see this object.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from noxion.schemas.post import BlogPost

RouteHandler = Callable[..., Any]
HookHandler = Callable[[Any], Union[Any, Awaitable[Any]]]


@dataclass
class PluginContext:
    register_route: Callable[[str, RouteHandler], None]
    register_component: Callable[[str, Any], None]
    register_hook: Callable[[str, HookHandler], None]
    get_config: Callable[[], dict[str, Any]]
    get_posts: Callable[[], Awaitable[list[BlogPost]]]
    get_post: Callable[[str], Awaitable[Optional[BlogPost]]]
    # Settings for this plugin only (per blog in the multi-tenant runtime)
    plugin_settings: dict[str, Any] = field(default_factory=dict)
    blog_id: Optional[str] = None


def match_route(route_key: str, method: str, path: str) -> Optional[dict[str, str]]:
    """
    Match a registered route key such as "GET /api/comments/:slug" against a
    request. Returns the captured ":name" parameters, or None on mismatch.
    """
    route_method, _, pattern = route_key.partition(" ")
    if not pattern:
        route_method, pattern = "GET", route_key
    if route_method.upper() != method.upper():
        return None

    pattern_parts = pattern.strip("/").split("/")
    path_parts = path.strip("/").split("/")
    if len(pattern_parts) != len(path_parts):
        return None

    params: dict[str, str] = {}
    for expected, actual in zip(pattern_parts, path_parts):
        if expected.startswith(":") and actual:
            params[expected[1:]] = actual
        elif expected != actual:
            return None
    return params
