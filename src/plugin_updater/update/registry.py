"""
Registry of update sources and managed plugins.

Names are case-insensitive for both sources and plugins. The registry is
built once at startup and then handed to the pipeline.
"""

from typing import Dict, List, Optional

from plugin_updater.exceptions import ConfigurationError
from plugin_updater.log_utils import logger

from .interfaces import PluginConfig
from .sources import BUILTIN_SOURCE_TYPES, SourceContext, SourceType, UpdateSource, create_source


class Registry:
    """Named sources and the plugins bound to them."""

    def __init__(self) -> None:
        self._sources: Dict[str, UpdateSource] = {}
        self._plugins: Dict[str, PluginConfig] = {}
        self.errors: List[ConfigurationError] = []
        """Plugin registration errors collected while building from configuration"""

    @classmethod
    def with_builtin_sources(cls, context: SourceContext) -> "Registry":
        """Create a registry holding one source per built-in type, named after the type."""
        registry = cls()
        for source_type in BUILTIN_SOURCE_TYPES:
            registry.add_source(create_source(source_type, context, source_type.name))
        return registry

    # Sources

    def add_source(self, source: UpdateSource) -> None:
        """
        Register a source under its name.

        Raises:
            ConfigurationError: If a source with the same name (ignoring case) exists.
        """
        key = source.name.upper()
        if key in self._sources:
            existing = self._sources[key]
            raise ConfigurationError(
                f"Duplicate source name {source.name}",
                details=f"already registered as {existing.type.name} source {existing.name}",
            )
        self._sources[key] = source
        logger.debug(f"Added {source.type.name} source {source.name}")

    def get_source(self, name: str) -> Optional[UpdateSource]:
        return self._sources.get(name.upper())

    @property
    def sources(self) -> List[UpdateSource]:
        return list(self._sources.values())

    # Plugins

    def add_plugin(self, plugin: PluginConfig) -> None:
        """
        Register a plugin after checking its parameters against its source.

        Raises:
            ConfigurationError: If the plugin lacks parameters its source
                requires, or its name is already taken.
        """
        source = plugin.source
        missing = [
            parameter
            for parameter in source.required_parameters
            if parameter not in plugin.parameters
        ]
        if missing:
            raise ConfigurationError(
                f"Plugin {plugin.name} does not specify all parameters required by "
                f"{source.type.name} source {source.name}",
                details=f"missing: {', '.join(missing)}",
            )
        key = plugin.name.upper()
        if key in self._plugins:
            raise ConfigurationError(f"Duplicate plugin name {plugin.name}")

        if source.type is SourceType.SPIGOT:
            logger.warning(
                "Automatic downloading from SpigotMC.org will most likely fail due to Cloudflare. "
                "If the plugin has a GitHub release it will be used though."
            )

        self._plugins[key] = plugin
        logger.debug(
            f"Added plugin {plugin.name} from {source.type.name} source {source.name}"
        )

    def get_plugin(self, name: str) -> Optional[PluginConfig]:
        return self._plugins.get(name.upper())

    @property
    def plugins(self) -> List[PluginConfig]:
        return list(self._plugins.values())

    def __len__(self) -> int:
        return len(self._plugins)
