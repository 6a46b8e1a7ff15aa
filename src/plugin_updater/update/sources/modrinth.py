"""Modrinth source."""

from typing import Any, Dict, Optional

from plugin_updater.constants import JSON_ACCEPT, MODRINTH_VERSIONS_URL
from plugin_updater.log_utils import logger

from ..interfaces import Checksum, PluginConfig, ReleaseInfo
from .base import SourceType, UpdateSource


class ModrinthSource(UpdateSource):
    """
    Resolves plugins from the Modrinth v2 API.

    `project` defaults to the plugin name, `featured` to `true`. `platform`
    and `platform-version` filter by loader and game version.
    """

    source_type = SourceType.MODRINTH

    def request_headers(self, plugin: PluginConfig) -> Dict[str, str]:
        return {"Accept": JSON_ACCEPT}

    def download_headers(self, plugin: PluginConfig) -> Dict[str, str]:
        return {}

    def resolve_release(self, plugin: PluginConfig) -> Optional[ReleaseInfo]:
        parameters = plugin.get_parameters("project")
        parameters.setdefault("featured", "true")

        template = MODRINTH_VERSIONS_URL
        if "platform" in parameters:
            template += '&loaders=["%platform%"]'
        if "platform-version" in parameters:
            template += '&game_versions=["%platform-version%"]'
        url = self.build_url(template, parameters)

        versions = self.query_json(plugin, url, self.request_headers(plugin))
        if not isinstance(versions, list) or not versions:
            logger.warning(f"No versions found for {plugin.name} from source {self.name}")
            return None

        latest = versions[0]
        if not isinstance(latest, dict) or not isinstance(latest.get("files"), list):
            return None
        version = latest.get("version_number")
        if version is None:
            return None

        usable = [file for file in latest["files"] if self._is_usable(file)]
        primary = [file for file in usable if file.get("primary") is True]
        candidates = primary or usable
        if not candidates:
            logger.error(f"Unable to get download for {plugin.name} from source {self.name}!")
            return None

        file = candidates[0]
        checksum = None
        hashes = file.get("hashes")
        if isinstance(hashes, dict) and isinstance(hashes.get("sha1"), str):
            checksum = Checksum("sha1", hashes["sha1"])
        return ReleaseInfo(
            version=str(version),
            download_url=self.build_url(file["url"], {}),
            checksum=checksum,
            file_name=file.get("filename"),
        )

    @staticmethod
    def _is_usable(file: Any) -> bool:
        if not isinstance(file, dict):
            return False
        if file.get("primary") is False:
            return False
        return isinstance(file.get("url"), str)

    def temp_file_name(self, plugin: PluginConfig, release: ReleaseInfo) -> str:
        return f"{plugin.name}-{release.version}.jar"
