"""
Core data structures for the plugin update subsystem.

This module defines the values exchanged between the registry, the sources
and the update pipeline.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional

from plugin_updater.constants import DEFAULT_FILE_NAME_FORMAT
from plugin_updater.templates import file_name_placeholders, replace_placeholders

from .files import safe_file_name

if TYPE_CHECKING:
    from .sources.base import UpdateSource


@dataclass(frozen=True)
class PluginConfig:
    """A managed plugin and the source it is updated from."""

    name: str
    """Plugin name; unique within the registry, compared case-insensitively"""

    source: "UpdateSource"
    """Source the plugin's releases are resolved from (shared between plugins)"""

    file_name_format: str = DEFAULT_FILE_NAME_FORMAT
    """Template for stored artifact names (`%name%`, `%version%`, `%rawversion%`)"""

    parameters: Mapping[str, str] = field(default_factory=dict)
    """Source parameters; always contains `name` unless explicitly set"""

    def __post_init__(self) -> None:
        parameters = dict(self.parameters)
        parameters.setdefault("name", self.name)
        object.__setattr__(self, "parameters", MappingProxyType(parameters))

    @property
    def key(self) -> str:
        """Lower-cased name used for registry and version record lookups."""
        return self.name.lower()

    def get_parameters(self, name_fallback: Optional[str] = None) -> Dict[str, str]:
        """
        Return a mutable copy of the plugin parameters.

        Parameters:
            name_fallback (Optional[str]): Parameter key that defaults to the
                plugin name when it is not configured (for example the GitHub
                `repository`).

        Returns:
            Dict[str, str]: A new dictionary the caller may modify.
        """
        parameters = dict(self.parameters)
        if name_fallback is not None:
            parameters.setdefault(name_fallback, self.name)
        return parameters

    def get_file_name(self, version: str) -> str:
        """
        Expand the file name format for the given raw version.

        Raises:
            ResolutionError: If the expanded name is not a plain file name.
        """
        return safe_file_name(
            replace_placeholders(
                self.file_name_format, file_name_placeholders(self.name, version)
            )
        )

    def derive(self, **overrides: str) -> "PluginConfig":
        """Return a copy whose parameters are this plugin's plus `overrides`."""
        parameters = dict(self.parameters)
        parameters.update(overrides)
        return replace(self, parameters=parameters)


@dataclass(frozen=True)
class Checksum:
    """A published digest for a release artifact."""

    algorithm: str
    """hashlib algorithm name (e.g. 'md5', 'sha1')"""

    digest: str
    """Hex digest as reported by the source"""


@dataclass(frozen=True)
class ReleaseInfo:
    """The latest release a source resolved for a plugin."""

    version: str
    """Raw version string as reported by the source"""

    download_url: str
    """URL of the artifact to download"""

    checksum: Optional[Checksum] = None
    """Published checksum of the artifact, if the source provides one"""

    file_name: Optional[str] = None
    """Artifact name as reported by the source"""


class UpdateStatus(Enum):
    """Outcome of one plugin's update cycle."""

    SUCCESS = "success"
    NO_UPDATE = "no_update"
    FAILED = "failed"
    AVAILABLE = "available"


@dataclass
class UpdateResult:
    """Result of checking and possibly updating a single plugin."""

    plugin: str
    """Name of the plugin"""

    status: UpdateStatus
    """What happened to the plugin"""

    version: Optional[str] = None
    """Resolved latest version, if any"""

    installed_version: Optional[str] = None
    """Version recorded before this run"""

    file_path: Optional[Path] = None
    """Stored artifact (on success)"""

    message: Optional[str] = None
    """Human-readable reason for NO_UPDATE and FAILED results"""

    @property
    def changed(self) -> bool:
        return self.status is UpdateStatus.SUCCESS


@dataclass
class RunSummary:
    """Results of one updater run."""

    results: List[UpdateResult] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        """True if at least one plugin was updated."""
        return any(result.changed for result in self.results)

    def by_status(self, status: UpdateStatus) -> List[UpdateResult]:
        return [result for result in self.results if result.status is status]
