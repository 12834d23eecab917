"""
Analytics Plugin

Page-view and list-query tracking for blog posts.

Hook subscriptions:
  - afterPostRender → count a page view for the post (when enable_page_views)
  - afterPostsQuery → count a posts-list query

Routes:
  - POST /api/analytics/events → count a named event (when enable_events)

Components:
  - AnalyticsScript    → script descriptor carrying the tracking id
  - AnalyticsDashboard → summary descriptor of the current settings and counters

Counters are kept per blog, so one instance can be shared by every blog in
the multi-tenant runtime. Both hooks return their input unchanged.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Optional

from noxion.plugins.base import PluginBase, PluginMeta
from noxion.plugins.context import PluginContext
from noxion.plugins.hooks import HOOK_AFTER_POST_RENDER, HOOK_AFTER_POSTS_QUERY

logger = logging.getLogger(__name__)

DEFAULT_BLOG_ID = "default"

_DEFAULT_CONFIG: dict[str, Any] = {
    "tracking_id": "GA-DEMO-123",
    "enable_page_views": True,
    "enable_events": False,
    "debug_mode": False,
}


class AnalyticsPlugin(PluginBase):
    """Analytics plugin: counts page views and list queries, exposes script/dashboard components."""

    def __init__(self, config: Optional[dict[str, Any]] = None):
        self._meta = PluginMeta(
            name="analytics",
            version="1.0.0",
            description="Page view and posts-list tracking for blog posts",
            config={**_DEFAULT_CONFIG, **(config or {})},
            config_schema={
                "tracking_id": {"type": "string", "default": "GA-DEMO-123"},
                "enable_page_views": {"type": "boolean", "default": True},
                "enable_events": {"type": "boolean", "default": False},
                "debug_mode": {"type": "boolean", "default": False},
            },
        )
        self._page_views: Counter[tuple[str, str]] = Counter()
        self._list_queries: Counter[str] = Counter()
        self._events: Counter[tuple[str, str]] = Counter()

    @property
    def meta(self) -> PluginMeta:
        return self._meta

    async def register(self, context: PluginContext) -> None:
        blog_id = context.blog_id or DEFAULT_BLOG_ID

        def settings() -> dict[str, Any]:
            return {**self._meta.config, **context.plugin_settings}

        async def track_page_view(post: Any) -> Any:
            current = settings()
            slug = getattr(post, "slug", None)
            if current["enable_page_views"] and slug:
                self._page_views[(blog_id, slug)] += 1
                if current["debug_mode"]:
                    logger.info("Page view tracked: blog=%s slug=%s", blog_id, slug)
            return post

        async def track_posts_query(posts: Any) -> Any:
            self._list_queries[blog_id] += 1
            if settings()["debug_mode"]:
                logger.info("Posts list queried: blog=%s count=%d", blog_id, len(posts or []))
            return posts

        def track_event(payload: Any, params: dict[str, str]) -> dict[str, Any]:
            if not settings()["enable_events"]:
                return {"success": False, "error": "Event tracking is disabled"}
            name = payload.get("name") if isinstance(payload, dict) else None
            if not isinstance(name, str) or not name.strip():
                return {"success": False, "error": "Event name is required"}
            key = (blog_id, name.strip())
            self._events[key] += 1
            return {"success": True, "count": self._events[key]}

        def analytics_script() -> dict[str, Any]:
            return {
                "type": "script",
                "props": {"id": "analytics-script", "data-tracking-id": settings()["tracking_id"]},
            }

        def analytics_dashboard() -> dict[str, Any]:
            current = settings()
            return {
                "type": "analytics-dashboard",
                "tracking_id": current["tracking_id"],
                "page_views_enabled": current["enable_page_views"],
                "events_enabled": current["enable_events"],
                "page_views": self.total_page_views(blog_id),
                "list_queries": self.list_queries(blog_id),
                "events": self.total_events(blog_id),
            }

        context.register_hook(HOOK_AFTER_POST_RENDER, track_page_view)
        context.register_hook(HOOK_AFTER_POSTS_QUERY, track_posts_query)
        context.register_route("POST /api/analytics/events", track_event)
        context.register_component("AnalyticsScript", analytics_script)
        context.register_component("AnalyticsDashboard", analytics_dashboard)
        logger.debug("AnalyticsPlugin registered for blog %s (tracking_id=%s)", blog_id, settings()["tracking_id"])

    # ── Counters ──────────────────────────────────────────────────────────────

    def page_views(self, blog_id: str, slug: str) -> int:
        return self._page_views[(blog_id, slug)]

    def total_page_views(self, blog_id: str) -> int:
        return sum(count for (owner, _), count in self._page_views.items() if owner == blog_id)

    def list_queries(self, blog_id: str) -> int:
        return self._list_queries[blog_id]

    def events(self, blog_id: str, name: str) -> int:
        return self._events[(blog_id, name)]

    def total_events(self, blog_id: str) -> int:
        return sum(count for (owner, _), count in self._events.items() if owner == blog_id)

    async def on_unload(self) -> None:
        self._page_views.clear()
        self._list_queries.clear()
        self._events.clear()
