"""Hangar (hangar.papermc.io) source."""

from typing import Any, Dict, Optional

from plugin_updater.constants import HANGAR_VERSIONS_URL, JSON_ACCEPT
from plugin_updater.exceptions import ResolutionError
from plugin_updater.log_utils import logger

from ..interfaces import Checksum, PluginConfig, ReleaseInfo
from .base import SourceType, UpdateSource


class HangarSource(UpdateSource):
    """
    Resolves plugins from the Hangar versions API.

    `project` defaults to the plugin name. The optional `channel`, `platform`
    and `versiontag` parameters narrow down the queried versions; `platform`
    also selects which download of the version is used.
    """

    source_type = SourceType.HANGAR
    required_parameters = ("user",)

    def request_headers(self, plugin: PluginConfig) -> Dict[str, str]:
        return {"Accept": JSON_ACCEPT}

    def download_headers(self, plugin: PluginConfig) -> Dict[str, str]:
        return {}

    def _versions_url(self, parameters: Dict[str, str]) -> str:
        template = HANGAR_VERSIONS_URL
        if "channel" in parameters:
            template += "&channel=%channel%"
        if "platform" in parameters:
            template += "&platform=%platform%"
        if "versiontag" in parameters:
            template += "&vTag=%versiontag%"
        return self.build_url(template, parameters)

    def _latest_version_entry(self, plugin: PluginConfig) -> Optional[Dict[str, Any]]:
        parameters = plugin.get_parameters("project")
        data = self.query_json(
            plugin, self._versions_url(parameters), self.request_headers(plugin)
        )
        if not isinstance(data, dict):
            return None
        result = data.get("result")
        if isinstance(result, list) and result and isinstance(result[0], dict):
            return result[0]
        logger.warning(f"No versions found for {plugin.name} from source {self.name}")
        return None

    @staticmethod
    def _version_of(entry: Optional[Dict[str, Any]]) -> Optional[str]:
        if entry is None:
            return None
        name = entry.get("name")
        return name if isinstance(name, str) else None

    def resolve_latest_version(self, plugin: PluginConfig) -> Optional[str]:
        try:
            return self._version_of(self._latest_version_entry(plugin))
        except ResolutionError as e:
            logger.error(
                f"Error while getting latest version for {plugin.name} from source {self.name}: {e}"
            )
            return None

    def resolve_release(self, plugin: PluginConfig) -> Optional[ReleaseInfo]:
        entry = self._latest_version_entry(plugin)
        version = self._version_of(entry)
        if version is None:
            return None

        download = self._select_download(plugin, entry.get("downloads"))
        if download is None:
            logger.error(
                f"Unable to find download URL for latest version of {plugin.name} from source {self.name}!"
            )
            return None

        file_info = download.get("fileInfo")
        if isinstance(file_info, dict) and isinstance(download.get("downloadUrl"), str):
            url = download["downloadUrl"]
        elif isinstance(download.get("externalUrl"), str):
            url = download["externalUrl"]
        else:
            logger.error(
                f"Unable to find download URL for latest version of {plugin.name} from source {self.name}!"
            )
            return None

        checksum = None
        if isinstance(file_info, dict) and isinstance(file_info.get("md5Hash"), str):
            checksum = Checksum("md5", file_info["md5Hash"])

        return ReleaseInfo(
            version=version,
            download_url=self.build_url(url, {}),
            checksum=checksum,
            file_name=file_info.get("name") if isinstance(file_info, dict) else None,
        )

    @staticmethod
    def _select_download(plugin: PluginConfig, downloads: Any) -> Optional[Dict[str, Any]]:
        if not isinstance(downloads, dict) or not downloads:
            return None
        platform = plugin.parameters.get("platform")
        if platform:
            download = downloads.get(platform.upper())
        else:
            download = next(iter(downloads.values()))
        return download if isinstance(download, dict) else None

    def temp_file_name(self, plugin: PluginConfig, release: ReleaseInfo) -> str:
        return f"{plugin.name}-{release.version}.jar"
