"""
Configuration loading for plugin-updater.

The configuration is a YAML file with two sections:

    sources:
      my-ci:
        type: teamcity
        url: https://ci.example.com
    plugins:
      MyPlugin:
        source: my-ci
        file-name-format: "%name%-%version%.jar"
        parameters:
          buildtype: MyPlugin_Build

Sources listed here are added to the built-in ones (GitHub, GitLab, Hangar,
Modrinth, Spigot and Bukkit), which plugins reference by type name.
"""

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import platformdirs
import yaml

from plugin_updater.constants import (
    APP_NAME,
    CONFIG_FILE_NAME,
    CONFIG_PATH_ENV_VAR,
    DEFAULT_FILE_NAME_FORMAT,
)
from plugin_updater.exceptions import ConfigurationError
from plugin_updater.log_utils import logger
from plugin_updater.update.interfaces import PluginConfig
from plugin_updater.update.registry import Registry
from plugin_updater.update.sources import (
    BUILTIN_SOURCE_TYPES,
    SourceContext,
    SourceType,
    create_source,
)


def get_config_path(explicit: Optional[str] = None) -> Path:
    """
    Determine which configuration file to use.

    Precedence: an explicit path, then the PLUGIN_UPDATER_CONFIG environment
    variable, then `config.yaml` in the user config directory.
    """
    if explicit:
        return Path(explicit).expanduser()
    from_env = os.environ.get(CONFIG_PATH_ENV_VAR)
    if from_env:
        return Path(from_env).expanduser()
    return Path(platformdirs.user_config_dir(APP_NAME)) / CONFIG_FILE_NAME


def load_config(path: Path) -> Dict[str, Any]:
    """
    Read the YAML configuration at `path`.

    A missing file is not an error: an empty configuration is returned, which
    leaves only the built-in sources and no plugins.

    Raises:
        ConfigurationError: If the file cannot be read or is not a YAML mapping.
    """
    if not path.exists():
        logger.warning(f"No configuration file found at {path}")
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Could not read {path}", details=str(e)) from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}", details=str(e)) from e

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigurationError(f"Configuration in {path} must be a mapping")
    logger.debug(f"Loaded configuration from {path}")
    return config


def _section(config: Mapping[str, Any], key: str) -> Dict[str, Any]:
    section = config.get(key) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Configuration section '{key}' must be a mapping")
    return section


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        # sources expect lowercase "true"/"false"
        return "true" if value else "false"
    return str(value)


def _stringify_parameters(raw: Any, plugin_name: str) -> Dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Parameters of plugin {plugin_name} must be a mapping")
    return {str(key): _stringify(value) for key, value in raw.items()}


def _register_configured_sources(
    registry: Registry, sources: Mapping[str, Any], context: SourceContext
) -> None:
    builtin_types = set(BUILTIN_SOURCE_TYPES)
    for name, settings in sources.items():
        name = str(name)
        if not isinstance(settings, dict):
            logger.error(f"Settings of source {name} must be a mapping; skipping it")
            continue
        try:
            source_type = SourceType.from_name(str(settings.get("type", "")))
        except ValueError:
            logger.error(
                f"Source {name} has unknown type '{settings.get('type')}'; skipping it"
            )
            continue
        if source_type in builtin_types:
            logger.error(
                f"Source {name} has type {source_type.name}, which is built in and cannot be configured; skipping it"
            )
            continue
        try:
            source = create_source(source_type, context, name, settings)
        except ConfigurationError as e:
            logger.error(f"{e}; skipping source {name}")
            continue
        # Duplicate names are fatal
        registry.add_source(source)


def _register_plugins(registry: Registry, plugins: Mapping[str, Any]) -> None:
    for name, settings in plugins.items():
        name = str(name)
        try:
            registry.add_plugin(_plugin_from_settings(registry, name, settings))
        except ConfigurationError as e:
            logger.error(f"Excluding plugin {name}: {e}")
            registry.errors.append(e)


def _plugin_from_settings(registry: Registry, name: str, settings: Any) -> PluginConfig:
    if not isinstance(settings, dict):
        raise ConfigurationError(f"Settings of plugin {name} must be a mapping")
    source_name = settings.get("source")
    if not source_name:
        raise ConfigurationError(f"Plugin {name} does not specify a source")
    source = registry.get_source(str(source_name))
    if source is None:
        raise ConfigurationError(f"Plugin {name} references unknown source {source_name}")

    raw_parameters = settings.get("parameters")
    if raw_parameters is None:
        raw_parameters = settings.get("placeholders")
    return PluginConfig(
        name=name,
        source=source,
        file_name_format=str(settings.get("file-name-format") or DEFAULT_FILE_NAME_FORMAT),
        parameters=_stringify_parameters(raw_parameters, name),
    )


def build_registry(config: Mapping[str, Any], context: SourceContext) -> Registry:
    """
    Build the registry from a loaded configuration.

    Built-in sources are registered first, then the configured ones, then the
    plugins. Sources with an unknown type or missing settings are logged and
    skipped. Plugins with missing parameters or unknown sources are logged,
    excluded and collected in `registry.errors`.

    Raises:
        ConfigurationError: If two sources share a name, or a section is malformed.
    """
    registry = Registry.with_builtin_sources(context)
    _register_configured_sources(registry, _section(config, "sources"), context)
    _register_plugins(registry, _section(config, "plugins"))
    logger.debug(
        f"Registry holds {len(registry.sources)} source(s) and {len(registry)} plugin(s)"
    )
    return registry
