"""SpigotMC source backed by the Spiget API."""

import re
from pathlib import Path
from typing import Any, Optional

from plugin_updater.constants import (
    GITHUB_LINK_PATTERN,
    HTTP_STATUS_SERVICE_UNAVAILABLE,
    SPIGET_DETAILS_URL,
    SPIGET_DOWNLOAD_URL,
    SPIGET_LATEST_VERSION_URL,
)
from plugin_updater.exceptions import HTTPError, ResolutionError, UpdaterError
from plugin_updater.log_utils import logger

from ..interfaces import PluginConfig, ReleaseInfo
from .base import SourceContext, SourceType, UpdateSource
from .github import GitHubSource

_GITHUB_LINK_RX = re.compile(GITHUB_LINK_PATTERN)


class SpigotSource(UpdateSource):
    """
    Resolves plugins from SpigotMC resources through Spiget.

    SpigotMC downloads are frequently blocked by Cloudflare, which Spiget
    reports as HTTP 503. In that case the resource page's links are searched
    for a GitHub repository; when its latest release has the same version as
    the Spigot resource, the artifact is downloaded from GitHub instead.
    """

    source_type = SourceType.SPIGOT
    required_parameters = ("resourceid",)

    def __init__(
        self,
        context: SourceContext,
        name: Optional[str] = None,
        github: Optional[GitHubSource] = None,
    ):
        super().__init__(context, name)
        self.github = github if github is not None else GitHubSource(context)

    def resolve_release(self, plugin: PluginConfig) -> Optional[ReleaseInfo]:
        parameters = plugin.get_parameters()
        url = self.build_url(SPIGET_LATEST_VERSION_URL, parameters)
        latest = self.query_json(plugin, url)
        if not isinstance(latest, dict) or "name" not in latest or "id" not in latest:
            return None
        parameters["versionid"] = str(latest["id"])
        return ReleaseInfo(
            version=latest["name"],
            download_url=self.build_url(SPIGET_DOWNLOAD_URL, parameters),
        )

    def temp_file_name(self, plugin: PluginConfig, release: ReleaseInfo) -> str:
        # Spiget serves jars and zips from the same endpoint; leave the type to probing
        return f"{plugin.name}-{release.version}"

    def acquire(self, plugin: PluginConfig) -> Optional[Path]:
        release = self._safe_resolve(plugin, "downloading update")
        if release is None:
            return None
        try:
            return self.fetch(plugin, release, self.temp_target(plugin, release))
        except HTTPError as e:
            logger.error(
                f"Unable to download {release.version} for {plugin.name} from source {self.name}! {e}"
            )
            if e.status_code == HTTP_STATUS_SERVICE_UNAVAILABLE:
                return self._acquire_from_github(plugin, release)
        except UpdaterError as e:
            logger.error(
                f"Error while trying to download update {release.version} for {plugin.name} from source {self.name}! {e}"
            )
        return None

    def _find_github_link(self, details: Any) -> Optional[re.Match]:
        if not isinstance(details, dict) or not isinstance(details.get("links"), dict):
            return None
        for link in details["links"].values():
            if isinstance(link, str) and "github.com/" in link:
                match = _GITHUB_LINK_RX.fullmatch(link)
                if match:
                    return match
        return None

    def _acquire_from_github(
        self, plugin: PluginConfig, release: ReleaseInfo
    ) -> Optional[Path]:
        try:
            details_url = self.build_url(SPIGET_DETAILS_URL, plugin.get_parameters())
        except ResolutionError as e:
            logger.error(f"Could not build resource details URL for {plugin.name}: {e}")
            return None
        match = self._find_github_link(self.query_json(plugin, details_url))
        if match is None:
            return None

        user, repository = match.group("user"), match.group("repo")
        logger.info(
            f"Found GitHub repository at {user}/{repository}. Checking if it has releases!"
        )
        github_plugin = plugin.derive(user=user, repository=repository)
        github_version = self.github.resolve_latest_version(github_plugin)
        if github_version is None:
            logger.warning(
                f"Unable to find release on GitHub. Here is the URL to manually download it from Spigot: {release.download_url}"
            )
            return None
        if github_version.lower() != release.version.lower():
            logger.warning(
                f"Found non-matching release on GitHub: {github_version}. Spigot version was {release.version}. "
                "If you would like to download the update from GitHub instead then please adjust your plugins config!"
            )
            return None

        logger.info(f"Found matching release on GitHub: {github_version}. Downloading it...")
        return self.github.acquire(github_plugin)
