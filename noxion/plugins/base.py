"""
Plugin Base Classes

PluginMeta: declarative metadata for a plugin (name, version, dependencies, config).
PluginBase: abstract base class all plugins must subclass.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from noxion.plugins.context import PluginContext


@dataclass
class PluginMeta:
    """
    Declarative metadata describing a plugin.

    Attributes:
        name:          Machine-readable name, unique within a registry, e.g. "comments".
        version:       Semver string, e.g. "1.0.0".
        description:   Human-readable description shown in the admin API.
        author:        Plugin author (defaults to "Noxion Team").
        dependencies:  Names of plugins that must be registered before this one.
        config:        Default configuration values.
        config_schema: JSON Schema fragments describing configurable options.
    """

    name: str
    version: str
    description: str = ""
    author: str = "Noxion Team"
    dependencies: list[str] = field(default_factory=list)
    config: dict[str, Any] = field(default_factory=dict)
    config_schema: dict[str, Any] = field(default_factory=dict)


class PluginBase(ABC):
    """
    Abstract base class for all Noxion plugins.

    Subclasses implement `meta` and `register`. register() receives a context
    bound to one registry (or one blog, in the multi-tenant runtime) and uses
    it to add routes, components and hooks.
    """

    @property
    @abstractmethod
    def meta(self) -> PluginMeta:
        """Return the plugin's metadata."""
        ...

    @property
    def name(self) -> str:
        return self.meta.name

    @property
    def version(self) -> str:
        return self.meta.version

    @abstractmethod
    async def register(self, context: PluginContext) -> None:
        """Attach the plugin's routes, components and hooks through context."""
        ...

    async def on_unload(self) -> None:  # noqa: B027
        """
        Called when the plugin is unregistered.

        Override to release resources (e.g. close connections).
        """
