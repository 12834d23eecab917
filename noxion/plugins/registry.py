"""
Plugin Registry

HookRegistry: ordered hook handlers executed as an async left fold.
PluginRegistry: single-blog registry that owns plugins, their status, and
the routes/components/hooks they register.

Hook handlers run in registration order; each receives the value produced by
the previous one. A handler that raises is logged and skipped, and the next
handler receives the last successfully produced value.
"""

from __future__ import annotations

import inspect
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from noxion.config import settings
from noxion.exceptions import PluginAlreadyRegisteredError, PluginDependencyError, PluginNotFoundError, log_error
from noxion.plugins.context import HookHandler, PluginContext, RouteHandler, match_route
from noxion.plugins.hooks import HOOK_AFTER_POST_RENDER, HOOK_AFTER_POSTS_QUERY
from noxion.services.content_service import NotionClient

if TYPE_CHECKING:
    from noxion.plugins.base import PluginBase
    from noxion.schemas.post import BlogPost

logger = logging.getLogger(__name__)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class HookRegistration:
    handler: HookHandler
    owner: Optional[str] = None


class HookRegistry:
    """Ordered lists of hook handlers keyed by hook name."""

    def __init__(self) -> None:
        self._hooks: dict[str, list[HookRegistration]] = defaultdict(list)

    def register(self, hook_name: str, handler: HookHandler, owner: Optional[str] = None) -> None:
        self._hooks[hook_name].append(HookRegistration(handler=handler, owner=owner))

    def handlers(self, hook_name: str) -> list[HookHandler]:
        return [registration.handler for registration in self._hooks.get(hook_name, [])]

    def hook_names(self) -> list[str]:
        return [name for name, registrations in self._hooks.items() if registrations]

    async def execute(self, hook_name: str, data: Any, skip_owners: frozenset[str] = frozenset()) -> Any:
        """
        Fold every handler registered under hook_name over data.

        Args:
            hook_name:   Key the handlers were registered under.
            data:        Initial value.
            skip_owners: Plugin names whose handlers are currently disabled.

        Returns:
            The value produced by the last handler that succeeded.
        """
        result = data
        # Snapshot so handlers registered mid-fold run on the next execution
        for index, registration in enumerate(list(self._hooks.get(hook_name, []))):
            if registration.owner is not None and registration.owner in skip_owners:
                continue
            try:
                value = registration.handler(result)
                if inspect.isawaitable(value):
                    value = await value
                result = value
            except Exception as exc:
                log_error(exc, "execute_hook", hook_name=hook_name, handler_index=index, plugin=registration.owner)
        return result

    def remove_owner(self, owner: str) -> int:
        """Drop every handler registered by owner. Returns the number removed."""
        removed = 0
        for hook_name in list(self._hooks):
            kept = [r for r in self._hooks[hook_name] if r.owner != owner]
            removed += len(self._hooks[hook_name]) - len(kept)
            if kept:
                self._hooks[hook_name] = kept
            else:
                del self._hooks[hook_name]
        return removed

    def remove_prefix(self, prefix: str) -> int:
        """Drop every hook name starting with prefix. Returns the number of names removed."""
        doomed = [name for name in self._hooks if name.startswith(prefix)]
        for name in doomed:
            del self._hooks[name]
        return len(doomed)

    def clear(self) -> None:
        self._hooks.clear()


@dataclass
class PluginStatus:
    enabled: bool = True
    last_updated: str = field(default_factory=now_iso)
    errors: list[str] = field(default_factory=list)


@dataclass
class _Registrations:
    """Keys a plugin registered, so unregister can remove them."""

    routes: set[str] = field(default_factory=set)
    components: set[str] = field(default_factory=set)


class PluginRegistry:
    """
    In-process registry for a single blog.

    Lifecycle per plugin:
        unregistered → registered(enabled) ⇄ registered(disabled) → unregistered

    Dependencies must be registered before their dependents; no ordering is
    resolved on the caller's behalf.
    """

    def __init__(
        self,
        content_client: Optional[NotionClient] = None,
        config: Optional[dict[str, Any]] = None,
    ) -> None:
        self.content_client = content_client or NotionClient(settings.notion_token, settings.notion_database_id)
        self._config: dict[str, Any] = config or {
            "notion": {"token": settings.notion_token, "database_id": settings.notion_database_id},
            "cache": {"enabled": True, "ttl": settings.cache_ttl_posts},
        }
        self._plugins: dict[str, PluginBase] = {}
        self._statuses: dict[str, PluginStatus] = {}
        self._plugin_configs: dict[str, dict[str, Any]] = {}
        self._registrations: dict[str, _Registrations] = {}
        self._routes: dict[str, tuple[str, RouteHandler]] = {}
        self._components: dict[str, tuple[str, Any]] = {}
        self.hooks = HookRegistry()

    # ── Registration ──────────────────────────────────────────────────────────

    def _create_context(self, plugin: PluginBase) -> PluginContext:
        name = plugin.meta.name
        owned = self._registrations.setdefault(name, _Registrations())

        def register_route(path: str, handler: RouteHandler) -> None:
            self._routes[path] = (name, handler)
            owned.routes.add(path)

        def register_component(component_name: str, component: Any) -> None:
            self._components[component_name] = (name, component)
            owned.components.add(component_name)

        def register_hook(hook_name: str, handler: HookHandler) -> None:
            self.hooks.register(hook_name, handler, owner=name)

        return PluginContext(
            register_route=register_route,
            register_component=register_component,
            register_hook=register_hook,
            get_config=lambda: {**self._config, "plugins": list(self._plugins)},
            get_posts=self.content_client.get_database_pages,
            get_post=self.content_client.get_page_by_slug,
            plugin_settings=self._plugin_configs[name],
        )

    async def register_plugin(self, plugin: PluginBase) -> None:
        """
        Register a plugin and run its register() hook.

        Raises:
            PluginAlreadyRegisteredError: a plugin with the same name is registered.
            PluginDependencyError: a declared dependency is not registered yet.
        """
        name = plugin.meta.name
        if name in self._plugins:
            raise PluginAlreadyRegisteredError(name)

        for dependency in plugin.meta.dependencies:
            if dependency not in self._plugins:
                raise PluginDependencyError(name, dependency)

        self._plugin_configs[name] = dict(plugin.meta.config)
        context = self._create_context(plugin)
        try:
            await plugin.register(context)
        except Exception as exc:
            log_error(exc, "register_plugin", plugin=name)
            self._remove_registrations(name)
            self._plugin_configs.pop(name, None)
            raise

        self._plugins[name] = plugin
        self._statuses[name] = PluginStatus(enabled=True)
        logger.info("Plugin registered: %s v%s", name, plugin.meta.version)

    async def initialize_plugins(self, plugins: list[PluginBase]) -> None:
        """Register plugins one at a time, in the given order."""
        for plugin in plugins:
            await self.register_plugin(plugin)
        logger.info("Plugin initialisation complete: %d plugins loaded", len(self._plugins))

    def _remove_registrations(self, name: str) -> None:
        owned = self._registrations.pop(name, _Registrations())
        for path in owned.routes:
            if self._routes.get(path, (None,))[0] == name:
                del self._routes[path]
        for component_name in owned.components:
            if self._components.get(component_name, (None,))[0] == name:
                del self._components[component_name]
        self.hooks.remove_owner(name)

    async def unregister_plugin(self, name: str) -> None:
        """Remove a plugin with every route, component and hook it registered."""
        plugin = self._plugins.pop(name, None)
        if plugin is None:
            raise PluginNotFoundError(name)

        self._remove_registrations(name)
        self._statuses.pop(name, None)
        self._plugin_configs.pop(name, None)
        try:
            await plugin.on_unload()
        except Exception as exc:
            log_error(exc, "unregister_plugin", plugin=name)
        logger.info("Plugin unregistered: %s", name)

    # ── Status & config ───────────────────────────────────────────────────────

    def set_plugin_enabled(self, name: str, enabled: bool) -> PluginStatus:
        """Enable or disable a plugin without re-running its register()."""
        status = self._get_status(name)
        status.enabled = enabled
        status.last_updated = now_iso()
        logger.info("Plugin %s: %s", "enabled" if enabled else "disabled", name)
        return status

    def update_plugin_config(self, name: str, config: dict[str, Any]) -> dict[str, Any]:
        """Merge config into the plugin's settings without re-running its register()."""
        status = self._get_status(name)
        plugin_config = self._plugin_configs[name]
        plugin_config.update(config)
        status.last_updated = now_iso()
        logger.info("Plugin config updated: %s", name)
        return plugin_config

    def _get_status(self, name: str) -> PluginStatus:
        status = self._statuses.get(name)
        if status is None:
            raise PluginNotFoundError(name)
        return status

    def _disabled(self) -> frozenset[str]:
        return frozenset(name for name, status in self._statuses.items() if not status.enabled)

    def _is_active(self, owner: str) -> bool:
        status = self._statuses.get(owner)
        return status is not None and status.enabled

    # ── Lookup ────────────────────────────────────────────────────────────────

    def get_plugin(self, name: str) -> Optional[PluginBase]:
        return self._plugins.get(name)

    def get_plugins(self) -> list[PluginBase]:
        """Return all registered plugins in registration order."""
        return list(self._plugins.values())

    def is_registered(self, name: str) -> bool:
        return name in self._plugins

    def get_plugin_status(self, name: str) -> Optional[PluginStatus]:
        return self._statuses.get(name)

    def get_all_plugin_statuses(self) -> dict[str, PluginStatus]:
        return dict(self._statuses)

    def get_plugin_config(self, name: str) -> dict[str, Any]:
        return dict(self._plugin_configs.get(name, {}))

    def get_route(self, path: str) -> Optional[RouteHandler]:
        """Route handler for path, or None if missing or its plugin is disabled."""
        entry = self._routes.get(path)
        if entry is None or not self._is_active(entry[0]):
            return None
        return entry[1]

    def get_component(self, name: str) -> Any:
        entry = self._components.get(name)
        if entry is None or not self._is_active(entry[0]):
            return None
        return entry[1]

    def resolve_route(self, method: str, path: str) -> Optional[tuple[RouteHandler, dict[str, str]]]:
        """Find the active route matching method and path, with its captured params."""
        for key, (owner, handler) in list(self._routes.items()):
            params = match_route(key, method, path)
            if params is not None and self._is_active(owner):
                return handler, params
        return None

    # ── Hooks ─────────────────────────────────────────────────────────────────

    async def execute_hook(self, hook_name: str, data: Any) -> Any:
        return await self.hooks.execute(hook_name, data, skip_owners=self._disabled())

    async def get_enhanced_posts(self) -> list[BlogPost]:
        posts = await self.content_client.get_database_pages()
        return await self.execute_hook(HOOK_AFTER_POSTS_QUERY, posts)

    async def get_enhanced_post(self, slug: str) -> Optional[BlogPost]:
        post = await self.content_client.get_page_by_slug(slug)
        if post is None:
            return None
        return await self.execute_hook(HOOK_AFTER_POST_RENDER, post)
