"""
Update sources.

Each SourceType has exactly one factory in SOURCE_FACTORIES. A factory takes
the shared SourceContext, the source name and the source's configuration
settings, and returns the source instance; invalid settings raise
ConfigurationError.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional

from plugin_updater.exceptions import ConfigurationError

from .base import SourceContext, SourceType, UpdateSource
from .bukkit import BukkitSource
from .direct import DirectSource
from .file import FileSource
from .github import GitHubSource
from .gitlab import GitLabSource
from .hangar import HangarSource
from .modrinth import ModrinthSource
from .spigot import SpigotSource
from .teamcity import TeamCitySource

SourceFactory = Callable[[SourceContext, str, Mapping[str, Any]], UpdateSource]

# Sources that need no configuration and are registered under their type name
BUILTIN_SOURCE_TYPES = (
    SourceType.BUKKIT,
    SourceType.GITHUB,
    SourceType.GITLAB,
    SourceType.HANGAR,
    SourceType.MODRINTH,
    SourceType.SPIGOT,
)


def _require(settings: Mapping[str, Any], key: str, source_name: str) -> str:
    value = settings.get(key)
    if value is None or str(value).strip() == "":
        raise ConfigurationError(
            f"Source {source_name} is missing required setting '{key}'"
        )
    return str(value)


def _optional(settings: Mapping[str, Any], key: str) -> Any:
    value = settings.get(key)
    return None if value is None else str(value)


def required_parameters_setting(settings: Mapping[str, Any]) -> List[str]:
    """Read `required-parameters`, accepting the older `required-placeholders` key."""
    value = settings.get("required-parameters")
    if value is None:
        value = settings.get("required-placeholders")
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value]


def _file_source(context: SourceContext, name: str, settings: Mapping[str, Any]) -> UpdateSource:
    return FileSource(
        context,
        name,
        latest_version=_require(settings, "latest-version", name),
        download=_require(settings, "download", name),
        required_parameters=required_parameters_setting(settings),
    )


def _direct_source(context: SourceContext, name: str, settings: Mapping[str, Any]) -> UpdateSource:
    return DirectSource(
        context,
        name,
        latest_version=_require(settings, "latest-version", name),
        download=_require(settings, "download", name),
        version_json_path=_optional(settings, "version-json-path"),
        version_regex=_optional(settings, "version-regex-pattern"),
        download_json_path=_optional(settings, "download-json-path"),
        download_regex=_optional(settings, "download-regex-pattern"),
        required_parameters=required_parameters_setting(settings),
    )


def _teamcity_source(context: SourceContext, name: str, settings: Mapping[str, Any]) -> UpdateSource:
    return TeamCitySource(
        context,
        name,
        url=_require(settings, "url", name),
        token=_optional(settings, "token"),
    )


SOURCE_FACTORIES: Dict[SourceType, SourceFactory] = {
    SourceType.FILE: _file_source,
    SourceType.DIRECT: _direct_source,
    SourceType.GITHUB: lambda context, name, settings: GitHubSource(context, name),
    SourceType.GITLAB: lambda context, name, settings: GitLabSource(context, name),
    SourceType.HANGAR: lambda context, name, settings: HangarSource(context, name),
    SourceType.MODRINTH: lambda context, name, settings: ModrinthSource(context, name),
    SourceType.SPIGOT: lambda context, name, settings: SpigotSource(context, name),
    SourceType.TEAMCITY: _teamcity_source,
    SourceType.BUKKIT: lambda context, name, settings: BukkitSource(context, name),
}


def create_source(
    source_type: SourceType,
    context: SourceContext,
    name: str,
    settings: Optional[Mapping[str, Any]] = None,
) -> UpdateSource:
    """Construct a source of `source_type` through its factory."""
    return SOURCE_FACTORIES[source_type](context, name, settings or {})


__all__ = [
    "BUILTIN_SOURCE_TYPES",
    "SOURCE_FACTORIES",
    "BukkitSource",
    "DirectSource",
    "FileSource",
    "GitHubSource",
    "GitLabSource",
    "HangarSource",
    "ModrinthSource",
    "SourceContext",
    "SourceType",
    "SpigotSource",
    "TeamCitySource",
    "UpdateSource",
    "create_source",
    "required_parameters_setting",
]
