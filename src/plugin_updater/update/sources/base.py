"""
Base class and shared plumbing for update sources.

A source knows how to find the latest release of a plugin on one kind of
backend and how to fetch its artifact into temporary storage. Most backends
answer a single JSON query with both the version and the download URL, so
subclasses usually only implement `resolve_release`; sources whose lookup is
split over several steps override the individual operations instead.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Tuple
from urllib.parse import urlsplit

from plugin_updater.exceptions import NotFoundError, ResolutionError, UpdaterError
from plugin_updater.log_utils import logger
from plugin_updater.templates import replace_placeholders
from plugin_updater.utils import download_file, verify_checksum

from ..cache import QueryCache
from ..files import TempStorage, safe_file_name
from ..interfaces import PluginConfig, ReleaseInfo


class SourceType(Enum):
    """Every kind of backend a plugin can be updated from."""

    FILE = "file"
    DIRECT = "direct"
    GITHUB = "github"
    GITLAB = "gitlab"
    HANGAR = "hangar"
    MODRINTH = "modrinth"
    SPIGOT = "spigot"
    TEAMCITY = "teamcity"
    BUKKIT = "bukkit"

    @classmethod
    def from_name(cls, value: str) -> "SourceType":
        """Look up a type by case-insensitive name; raises ValueError if unknown."""
        try:
            return cls[value.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown source type: {value}") from None


@dataclass
class SourceContext:
    """Services shared by all sources of one run."""

    query_cache: QueryCache
    """Cached JSON/text queries against source APIs"""

    temp_storage: TempStorage = field(default_factory=TempStorage)
    """Where downloads land before they are installed"""

    downloader: Callable[..., Path] = download_file
    """Streams a URL to a file; raises DownloadError/HTTPError on failure"""


class UpdateSource(ABC):
    """
    A backend that publishes plugin releases.

    Subclasses set `source_type` and `required_parameters`, and implement
    `resolve_release` or override the three public operations.
    """

    source_type: SourceType
    required_parameters: Tuple[str, ...] = ()

    def __init__(self, context: SourceContext, name: Optional[str] = None):
        self.context = context
        self._name = name or self.source_type.name

    @property
    def name(self) -> str:
        return self._name

    @property
    def type(self) -> SourceType:
        return self.source_type

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"

    # ------------------------------------------------------------------
    # Source protocol
    # ------------------------------------------------------------------

    def resolve_latest_version(self, plugin: PluginConfig) -> Optional[str]:
        """Return the raw latest version string, or None if it cannot be determined."""
        release = self._safe_resolve(plugin, "getting latest version")
        return release.version if release else None

    def resolve_download_url(self, plugin: PluginConfig) -> str:
        """
        Return the download URL of the latest release.

        Raises:
            NotFoundError: If the source has no downloadable artifact.
            ResolutionError: If the URL cannot be built or parsed.
        """
        release = self._resolve(plugin)
        if release is None:
            raise NotFoundError(
                f"No download found for {plugin.name} from source {self.name}"
            )
        return release.download_url

    def acquire(self, plugin: PluginConfig) -> Optional[Path]:
        """
        Download the latest release into temporary storage.

        Returns:
            Optional[Path]: The downloaded file, or None on failure (already logged).
        """
        release = self._safe_resolve(plugin, "downloading update")
        if release is None:
            return None
        logger.debug(
            f"Downloading update file for {plugin.name} {release.version}: {release.download_url}"
        )
        try:
            target = self.temp_target(plugin, release)
            self.fetch(plugin, release, target)
        except UpdaterError as e:
            logger.error(
                f"Error while trying to download update {release.version} for {plugin.name} from source {self.name}: {e}"
            )
            return None
        return target

    # ------------------------------------------------------------------
    # Hooks for subclasses
    # ------------------------------------------------------------------

    @abstractmethod
    def resolve_release(self, plugin: PluginConfig) -> Optional[ReleaseInfo]:
        """
        Look up the latest release of `plugin`.

        Returns None when the backend has no matching release (after logging
        why). May raise ResolutionError for malformed URLs or responses.
        """

    def request_headers(self, plugin: PluginConfig) -> Dict[str, str]:
        """Headers sent with API queries."""
        return {}

    def download_headers(self, plugin: PluginConfig) -> Dict[str, str]:
        """Headers sent with the artifact download."""
        return self.request_headers(plugin)

    def temp_file_name(self, plugin: PluginConfig, release: ReleaseInfo) -> str:
        if release.file_name:
            return f"{plugin.name}-{release.version}-{release.file_name}"
        return f"{plugin.name}-{release.version}.jar"

    def temp_target(self, plugin: PluginConfig, release: ReleaseInfo) -> Path:
        """
        Path in temporary storage that `release` is downloaded to.

        Raises:
            ResolutionError: If the version or file name published by the
                backend would place the file outside temporary storage.
        """
        file_name = safe_file_name(self.temp_file_name(plugin, release))
        return self.context.temp_storage.temp_dir() / file_name

    def fetch(self, plugin: PluginConfig, release: ReleaseInfo, target: Path) -> Path:
        """Download `release` to `target` and verify its checksum if one was published."""
        self.context.downloader(
            release.download_url, target, headers=self.download_headers(plugin)
        )
        if release.checksum is not None:
            verify_checksum(
                target,
                release.checksum.algorithm,
                release.checksum.digest,
                url=release.download_url,
            )
        return target

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve(self, plugin: PluginConfig) -> Optional[ReleaseInfo]:
        try:
            return self.resolve_release(plugin)
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise ResolutionError(
                f"Unexpected response structure from source {self.name}",
                details=f"{type(e).__name__}: {e}",
            ) from e

    def _safe_resolve(self, plugin: PluginConfig, action: str) -> Optional[ReleaseInfo]:
        try:
            return self._resolve(plugin)
        except ResolutionError as e:
            logger.error(
                f"Error while {action} for {plugin.name} from source {self.name}: {e}"
            )
            return None

    def build_url(self, template: str, parameters: Mapping[str, str]) -> str:
        """
        Expand a URL template and check that the result is an HTTP(S) URL.

        Raises:
            ResolutionError: If the expanded string is not a usable URL.
        """
        url = replace_placeholders(template, parameters)
        parts = urlsplit(url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ResolutionError(f"Invalid URL {url}")
        return url

    def query_json(
        self,
        plugin: PluginConfig,
        url: str,
        headers: Optional[Dict[str, str]] = None,
    ) -> Optional[Any]:
        """
        Query `url` through the cache and decode the JSON body.

        Returns None if the query failed or the body is not valid JSON; both
        cases are logged.
        """
        body = self.context.query_cache.query(url, headers)
        if body is None:
            logger.warning(
                f"Query didn't return anything for {plugin.name} from source {self.name}!"
            )
            return None
        try:
            return json.loads(body)
        except ValueError as e:
            logger.error(
                f"Invalid JSON returned for {plugin.name} from source {self.name}: {body[:200]}. Error: {e}"
            )
            return None
