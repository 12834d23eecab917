"""
Multi-Tenant Plugin Runtime

MultiTenantRuntime hosts many blogs in one process. Each blog gets its own
NotionClient (and therefore its own caches) and its own plugin set. Every
route, component and hook a plugin registers for a blog is stored under a
"{blog_id}:" prefixed key, so the same plugin instance can be registered for
any number of blogs without one blog's hooks ever seeing another blog's data.

Plugins are registered sequentially per blog, so a plugin's dependency check
can rely on every earlier plugin of that blog having finished registering.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Optional

from noxion.exceptions import (
    BlogConfigurationError,
    BlogNotFoundError,
    PluginDependencyError,
    PluginNotFoundError,
    log_error,
)
from noxion.plugins.base import PluginBase
from noxion.plugins.context import HookHandler, PluginContext, RouteHandler, match_route
from noxion.plugins.hooks import HOOK_AFTER_POST_RENDER, HOOK_AFTER_POSTS_QUERY
from noxion.plugins.registry import HookRegistry, PluginStatus, now_iso
from noxion.schemas.post import BlogPost
from noxion.services.content_service import NotionClient

logger = logging.getLogger(__name__)


@dataclass
class BlogPluginConfig:
    plugin: PluginBase
    enabled: bool = True
    settings: dict[str, Any] = field(default_factory=dict)
    installed_version: Optional[str] = None

    def __post_init__(self) -> None:
        if self.installed_version is None:
            self.installed_version = self.plugin.meta.version


@dataclass
class BlogConfig:
    blog_id: str
    notion_token: str
    notion_database_id: str
    plugins: list[BlogPluginConfig] = field(default_factory=list)
    settings: dict[str, Any] = field(default_factory=dict)

    def find_plugin(self, name: str) -> Optional[BlogPluginConfig]:
        for plugin_config in self.plugins:
            if plugin_config.plugin.meta.name == name:
                return plugin_config
        return None


def blog_key(blog_id: str, key: str) -> str:
    return f"{blog_id}:{key}"


def default_client_factory(config: BlogConfig) -> NotionClient:
    return NotionClient(config.notion_token, config.notion_database_id)


class MultiTenantRuntime:
    """Per-blog plugin runtime. All state lives on the instance."""

    def __init__(self, client_factory: Callable[[BlogConfig], NotionClient] = default_client_factory) -> None:
        self._client_factory = client_factory
        self._plugins: dict[str, PluginBase] = {}
        self._blog_configs: dict[str, BlogConfig] = {}
        self._content_clients: dict[str, NotionClient] = {}
        self._statuses: dict[str, dict[str, PluginStatus]] = {}
        self._routes: dict[str, tuple[str, RouteHandler]] = {}
        self._components: dict[str, tuple[str, Any]] = {}
        self.hooks = HookRegistry()

    # ── Blog lifecycle ────────────────────────────────────────────────────────

    async def initialize_blog(self, config: BlogConfig) -> None:
        """
        Set up (or rebuild) a blog: content client plus every enabled plugin.

        Re-initializing first sweeps the blog's namespaced keys, so running
        this twice leaves exactly one registration per enabled plugin.

        Raises:
            BlogConfigurationError: the blog id is empty or contains ":" (the key
                separator), or the blog has no Notion token or database id.
        """
        blog_id = config.blog_id
        if not blog_id or ":" in blog_id:
            raise BlogConfigurationError(blog_id, f"Invalid blog id: {blog_id!r}")
        if not config.notion_token or not config.notion_database_id:
            raise BlogConfigurationError(blog_id)

        previous = self._blog_configs.get(blog_id)
        client = self._content_clients.get(blog_id)
        if (
            client is None
            or previous is None
            or (previous.notion_token, previous.notion_database_id)
            != (config.notion_token, config.notion_database_id)
        ):
            if client is not None:
                await client.aclose()
            client = self._client_factory(config)

        self._blog_configs[blog_id] = config
        self._content_clients[blog_id] = client
        self._sweep_blog_keys(blog_id)
        self._statuses[blog_id] = {}

        await self._load_blog_plugins(config, client)
        logger.info("Blog %s initialized with %d plugins", blog_id, len(self.get_blog_plugins(blog_id)))

    async def _load_blog_plugins(self, config: BlogConfig, client: NotionClient) -> None:
        blog_id = config.blog_id
        loaded: set[str] = set()

        for plugin_config in config.plugins:
            if not plugin_config.enabled:
                continue

            plugin = plugin_config.plugin
            name = plugin.meta.name
            status = PluginStatus(enabled=True)
            self._statuses[blog_id][name] = status

            if name not in self._plugins:
                self._plugins[name] = plugin

            try:
                for dependency in plugin.meta.dependencies:
                    if dependency not in loaded:
                        raise PluginDependencyError(name, dependency)

                context = self._create_blog_context(config, plugin_config, client)
                await plugin.register(context)
                loaded.add(name)
            except Exception as exc:
                log_error(exc, "load_blog_plugins", blog_id=blog_id, plugin=name)
                self._remove_owner(blog_key(blog_id, name))
                status.errors.append(str(exc))

    def _create_blog_context(
        self,
        config: BlogConfig,
        plugin_config: BlogPluginConfig,
        client: NotionClient,
    ) -> PluginContext:
        blog_id = config.blog_id
        owner = blog_key(blog_id, plugin_config.plugin.meta.name)

        def register_route(path: str, handler: RouteHandler) -> None:
            self._routes[blog_key(blog_id, path)] = (owner, handler)

        def register_component(name: str, component: Any) -> None:
            self._components[blog_key(blog_id, name)] = (owner, component)

        def register_hook(hook_name: str, handler: HookHandler) -> None:
            self.hooks.register(blog_key(blog_id, hook_name), handler, owner=owner)

        def get_config() -> dict[str, Any]:
            return {
                "notion": {"token": config.notion_token, "database_id": config.notion_database_id},
                "plugins": [p.plugin.meta.name for p in config.plugins],
                "cache": config.settings.get("cache", {"enabled": True, "ttl": 300}),
            }

        return PluginContext(
            register_route=register_route,
            register_component=register_component,
            register_hook=register_hook,
            get_config=get_config,
            get_posts=client.get_database_pages,
            get_post=client.get_page_by_slug,
            plugin_settings=plugin_config.settings,
            blog_id=blog_id,
        )

    def _remove_owner(self, owner: str) -> None:
        for registry in (self._routes, self._components):
            for key in [k for k, (entry_owner, _) in registry.items() if entry_owner == owner]:
                del registry[key]
        self.hooks.remove_owner(owner)

    def _sweep_blog_keys(self, blog_id: str) -> None:
        prefix = blog_key(blog_id, "")
        for registry in (self._routes, self._components):
            for key in [k for k in registry if k.startswith(prefix)]:
                del registry[key]
        self.hooks.remove_prefix(prefix)

    async def remove_blog(self, blog_id: str) -> None:
        """Forget a blog and every route, component and hook registered for it."""
        self._blog_configs.pop(blog_id, None)
        self._statuses.pop(blog_id, None)
        client = self._content_clients.pop(blog_id, None)
        self._sweep_blog_keys(blog_id)
        if client is not None:
            await client.aclose()
        logger.info("Blog removed from runtime: %s", blog_id)

    async def aclose(self) -> None:
        for blog_id in list(self._blog_configs):
            await self.remove_blog(blog_id)

    # ── Config ────────────────────────────────────────────────────────────────

    def get_blog_config(self, blog_id: str) -> Optional[BlogConfig]:
        return self._blog_configs.get(blog_id)

    def blog_ids(self) -> list[str]:
        return list(self._blog_configs)

    def content_clients(self) -> list[NotionClient]:
        return list(self._content_clients.values())

    def _require_config(self, blog_id: str) -> BlogConfig:
        config = self._blog_configs.get(blog_id)
        if config is None:
            raise BlogNotFoundError(blog_id)
        return config

    def _require_client(self, blog_id: str) -> NotionClient:
        self._require_config(blog_id)
        client = self._content_clients.get(blog_id)
        if client is None:
            raise BlogConfigurationError(blog_id)
        return client

    async def update_blog_config(self, blog_id: str, **updates: Any) -> BlogConfig:
        """Replace fields of a blog's config; credentials changes re-initialize the blog."""
        current = self._require_config(blog_id)
        new_config = dataclasses.replace(current, **updates)

        if "notion_token" in updates or "notion_database_id" in updates:
            await self.initialize_blog(new_config)
        else:
            self._blog_configs[blog_id] = new_config
        return new_config

    def get_blog_plugins(self, blog_id: str) -> list[BlogPluginConfig]:
        """Enabled plugin configs of a blog (empty for unknown blogs)."""
        config = self._blog_configs.get(blog_id)
        if config is None:
            return []
        return [p for p in config.plugins if p.enabled]

    def get_blog_plugin_statuses(self, blog_id: str) -> dict[str, PluginStatus]:
        return dict(self._statuses.get(blog_id, {}))

    def get_plugins(self) -> list[PluginBase]:
        """Every plugin known to the runtime, across blogs."""
        return list(self._plugins.values())

    def get_plugin(self, name: str) -> Optional[PluginBase]:
        return self._plugins.get(name)

    async def toggle_blog_plugin(self, blog_id: str, plugin_name: str, enabled: bool) -> None:
        """
        Enable or disable a plugin for one blog.

        The blog is re-initialized so the plugin's registrations appear or
        disappear immediately.
        """
        config = self._require_config(blog_id)
        plugin_config = config.find_plugin(plugin_name)
        if plugin_config is None:
            raise PluginNotFoundError(plugin_name, blog_id=blog_id)

        plugin_config.enabled = enabled
        await self.initialize_blog(config)
        status = self._statuses[blog_id].get(plugin_name)
        if status is None:
            self._statuses[blog_id][plugin_name] = PluginStatus(enabled=enabled)
        logger.info("Blog %s plugin %s %s", blog_id, plugin_name, "enabled" if enabled else "disabled")

    def update_blog_plugin_settings(self, blog_id: str, plugin_name: str, settings: dict[str, Any]) -> dict[str, Any]:
        """Merge settings into a blog's plugin settings, visible to the plugin immediately."""
        config = self._require_config(blog_id)
        plugin_config = config.find_plugin(plugin_name)
        if plugin_config is None:
            raise PluginNotFoundError(plugin_name, blog_id=blog_id)

        plugin_config.settings.update(settings)
        status = self._statuses.get(blog_id, {}).get(plugin_name)
        if status is not None:
            status.last_updated = now_iso()
        return plugin_config.settings

    # ── Lookup ────────────────────────────────────────────────────────────────

    def get_route(self, blog_id: str, path: str) -> Optional[RouteHandler]:
        entry = self._routes.get(blog_key(blog_id, path))
        return entry[1] if entry is not None else None

    def get_component(self, blog_id: str, name: str) -> Any:
        entry = self._components.get(blog_key(blog_id, name))
        return entry[1] if entry is not None else None

    def resolve_route(self, blog_id: str, method: str, path: str) -> Optional[tuple[RouteHandler, dict[str, str]]]:
        """Find the blog route matching method and path, with its captured params."""
        prefix = blog_key(blog_id, "")
        for key, (_, handler) in list(self._routes.items()):
            if not key.startswith(prefix):
                continue
            params = match_route(key[len(prefix):], method, path)
            if params is not None:
                return handler, params
        return None

    def registered_keys(self, blog_id: str) -> dict[str, list[str]]:
        """Namespaced keys currently held for a blog, grouped by kind."""
        prefix = blog_key(blog_id, "")
        return {
            "routes": [k for k in self._routes if k.startswith(prefix)],
            "components": [k for k in self._components if k.startswith(prefix)],
            "hooks": [k for k in self.hooks.hook_names() if k.startswith(prefix)],
        }

    # ── Hooks & content ───────────────────────────────────────────────────────

    async def execute_hook(self, blog_id: str, hook_name: str, data: Any) -> Any:
        """Run only the handlers registered for this blog."""
        return await self.hooks.execute(blog_key(blog_id, hook_name), data)

    async def get_enhanced_posts(self, blog_id: str) -> list[BlogPost]:
        client = self._require_client(blog_id)
        posts = await client.get_database_pages()
        return await self.execute_hook(blog_id, HOOK_AFTER_POSTS_QUERY, posts)

    async def get_enhanced_post(self, blog_id: str, slug: str) -> Optional[BlogPost]:
        client = self._require_client(blog_id)
        post = await client.get_page_by_slug(slug)
        if post is None:
            return None
        return await self.execute_hook(blog_id, HOOK_AFTER_POST_RENDER, post)

    async def get_all_slugs(self, blog_id: str) -> list[str]:
        return await self._require_client(blog_id).get_all_slugs()
