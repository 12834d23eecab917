"""
Noxion Plugin System

Public API:
    PluginMeta          plugin metadata dataclass
    PluginBase          abstract base class for all plugins
    PluginContext       what a plugin's register() receives
    PluginRegistry      single-blog registry + hook dispatcher
    MultiTenantRuntime  per-blog plugin runtime
"""

from .base import PluginBase, PluginMeta
from .context import PluginContext
from .registry import HookRegistry, PluginRegistry, PluginStatus
from .runtime import BlogConfig, BlogPluginConfig, MultiTenantRuntime

__all__ = [
    "BlogConfig",
    "BlogPluginConfig",
    "HookRegistry",
    "MultiTenantRuntime",
    "PluginBase",
    "PluginContext",
    "PluginMeta",
    "PluginRegistry",
    "PluginStatus",
]
