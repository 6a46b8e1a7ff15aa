"""GitHub releases source."""

import base64
import re
from typing import Any, Dict, Optional

from plugin_updater.constants import GITHUB_API_ACCEPT, GITHUB_RELEASES_URL
from plugin_updater.log_utils import logger

from ..files import ContentType
from ..interfaces import PluginConfig, ReleaseInfo
from .base import SourceType, UpdateSource

RELEASE_CHANNELS = ("release", "prerelease")


def github_auth_header(parameters: Dict[str, str]) -> Optional[str]:
    """
    Build the Authorization header value for GitHub requests.

    A `token` parameter wins over `username`/`password` basic credentials.
    """
    token = parameters.get("token")
    if token:
        return f"token {token}"
    username = parameters.get("username")
    password = parameters.get("password")
    if username and password:
        credentials = base64.b64encode(f"{username}:{password}".encode()).decode()
        return f"Basic {credentials}"
    return None


class GitHubSource(UpdateSource):
    """
    Resolves plugins from GitHub release assets.

    Parameters:
        user: Repository owner (required).
        repository: Repository name, defaults to the plugin name.
        channel: `release` or `prerelease` to only consider that kind of release.
        draft: `true` to also consider draft releases.
        author: Only consider releases published by this login.
        file-pattern: Regular expression the asset name must fully match.
        token / username + password: Credentials for private repositories.
    """

    source_type = SourceType.GITHUB
    required_parameters = ("user",)

    def request_headers(self, plugin: PluginConfig) -> Dict[str, str]:
        headers = {"Accept": GITHUB_API_ACCEPT}
        authorization = github_auth_header(plugin.get_parameters())
        if authorization:
            headers["Authorization"] = authorization
        return headers

    def download_headers(self, plugin: PluginConfig) -> Dict[str, str]:
        headers = self.request_headers(plugin)
        headers["Accept"] = "application/octet-stream"
        return headers

    def resolve_release(self, plugin: PluginConfig) -> Optional[ReleaseInfo]:
        parameters = plugin.get_parameters("repository")
        channel = parameters.get("channel")
        if channel is not None and channel not in RELEASE_CHANNELS:
            logger.error(
                f"Invalid channel '{channel}' for {plugin.name} from source {self.name}! Must be 'release' or 'prerelease'."
            )
            return None

        url = self.build_url(GITHUB_RELEASES_URL, parameters)
        releases = self.query_json(plugin, url, self.request_headers(plugin))
        if releases is None:
            return None

        file_pattern = self._compile_file_pattern(plugin, parameters.get("file-pattern"))
        if file_pattern is False:
            return None

        include_drafts = str(parameters.get("draft", "")).lower() == "true"
        author = parameters.get("author")

        if isinstance(releases, list):
            for release in releases:
                if not self._is_candidate(release):
                    continue
                if release.get("draft") and not include_drafts:
                    continue
                is_prerelease = bool(release.get("prerelease"))
                if channel == "release" and is_prerelease:
                    continue
                if channel == "prerelease" and not is_prerelease:
                    continue
                if author and isinstance(release.get("author"), dict):
                    login = release["author"].get("login") or ""
                    if author.lower() != login.lower():
                        continue

                for asset in release["assets"]:
                    if self._asset_matches(asset, file_pattern):
                        return ReleaseInfo(
                            version=release["tag_name"],
                            download_url=asset["browser_download_url"],
                            file_name=asset["name"],
                        )

        logger.warning(
            f"No matching release found for {plugin.name} from source {self.name}"
        )
        return None

    @staticmethod
    def _is_candidate(release: Any) -> bool:
        return (
            isinstance(release, dict)
            and "tag_name" in release
            and isinstance(release.get("assets"), list)
        )

    def _compile_file_pattern(self, plugin: PluginConfig, pattern: Optional[str]):
        if pattern is None:
            return None
        try:
            return re.compile(pattern)
        except re.error as e:
            logger.error(
                f"Could not compile file-pattern regex {pattern} for {plugin.name}: {e}"
            )
            return False

    @staticmethod
    def _asset_matches(asset: Any, file_pattern) -> bool:
        if not isinstance(asset, dict):
            return False
        if not all(
            key in asset for key in ("browser_download_url", "content_type", "name")
        ):
            return False
        content_type = asset["content_type"]
        if not (ContentType.JAR.matches(content_type) or ContentType.ZIP.matches(content_type)):
            return False
        if file_pattern is None:
            return True
        return file_pattern.fullmatch(asset["name"]) is not None
