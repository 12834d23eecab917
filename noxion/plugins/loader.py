"""
Plugin Loader

Maps plugin names to factories, reads/writes the plugin configuration file
(`settings.plugins_config_file`, JSON) and registers the built-in plugins at
application startup.

Config file shape:
    {"analytics": {"enabled": true, "settings": {"tracking_id": "G-123"}}, ...}
"""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Union

from noxion.config import settings
from noxion.exceptions import PluginNotFoundError
from noxion.plugins.analytics_plugin import AnalyticsPlugin
from noxion.plugins.base import PluginBase
from noxion.plugins.comments_plugin import CommentsPlugin

if TYPE_CHECKING:
    from noxion.plugins.registry import PluginRegistry

logger = logging.getLogger(__name__)

PluginFactory = Callable[[dict[str, Any]], PluginBase]

# ── Factory table ─────────────────────────────────────────────────────────────
PLUGIN_FACTORIES: dict[str, PluginFactory] = {
    "analytics": lambda config: AnalyticsPlugin(config=config),
    "comments": lambda config: CommentsPlugin(config=config),
}

# ── Default plugin config (all built-in plugins enabled) ─────────────────────
_DEFAULT_CONFIG: dict[str, dict[str, Any]] = {
    "analytics": {"enabled": True, "settings": {}},
    "comments": {"enabled": True, "settings": {}},
}


def create_plugin(name: str, plugin_settings: Optional[dict[str, Any]] = None) -> PluginBase:
    """
    Build a plugin instance by name.

    Raises:
        PluginNotFoundError: no factory is registered under name.
    """
    factory = PLUGIN_FACTORIES.get(name)
    if factory is None:
        raise PluginNotFoundError(name)
    return factory(dict(plugin_settings or {}))


# ── Config I/O ────────────────────────────────────────────────────────────────


def _config_path(path: Union[str, Path, None]) -> Path:
    return Path(path if path is not None else settings.plugins_config_file)


def load_plugins_config(path: Union[str, Path, None] = None) -> dict[str, dict[str, Any]]:
    """
    Load plugin configuration from disk.

    Returns defaults if the file does not exist or cannot be parsed.
    """
    config_file = _config_path(path)
    if config_file.exists():
        try:
            return json.loads(config_file.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Failed to read plugins config %s: %s", config_file, exc)
    return copy.deepcopy(_DEFAULT_CONFIG)


def save_plugins_config(config: dict[str, dict[str, Any]], path: Union[str, Path, None] = None) -> None:
    """Persist plugin configuration to disk."""
    config_file = _config_path(path)
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(
        json.dumps(config, indent=2, ensure_ascii=False),
        encoding="utf-8",
    )


# ── Startup initialisation ────────────────────────────────────────────────────


async def initialize_plugins(
    registry: PluginRegistry,
    config: Optional[dict[str, dict[str, Any]]] = None,
) -> list[str]:
    """
    Register every plugin named in the config, in file order.

    Entries with "enabled": false are registered and then disabled, so they
    stay manageable through the admin API. Unknown names are logged and
    skipped. Returns the names that were registered.
    """
    config = config if config is not None else load_plugins_config()
    loaded: list[str] = []

    for name, entry in config.items():
        try:
            plugin = create_plugin(name, entry.get("settings"))
        except PluginNotFoundError:
            logger.warning("Unknown plugin in config, skipping: %s", name)
            continue

        await registry.register_plugin(plugin)
        if not entry.get("enabled", True):
            registry.set_plugin_enabled(name, False)
        loaded.append(name)

    logger.info("Plugin initialisation complete: %d plugins loaded", len(loaded))
    return loaded
