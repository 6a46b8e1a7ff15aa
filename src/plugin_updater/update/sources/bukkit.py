"""Legacy BukkitDev (CurseForge servermods) source."""

from typing import Dict, Optional

from plugin_updater.constants import BUKKIT_FILES_URL
from plugin_updater.log_utils import logger

from ..interfaces import Checksum, PluginConfig, ReleaseInfo
from .base import SourceType, UpdateSource


class BukkitSource(UpdateSource):
    """Resolves plugins from the CurseForge servermods files API; the last file is the latest."""

    source_type = SourceType.BUKKIT
    required_parameters = ("pluginid",)

    def request_headers(self, plugin: PluginConfig) -> Dict[str, str]:
        api_key = plugin.parameters.get("apikey")
        return {"X-API-Key": api_key} if api_key else {}

    def resolve_release(self, plugin: PluginConfig) -> Optional[ReleaseInfo]:
        url = self.build_url(BUKKIT_FILES_URL, plugin.get_parameters())
        files = self.query_json(plugin, url, self.request_headers(plugin))
        if not isinstance(files, list) or not files:
            logger.warning(f"No files found for {plugin.name} from source {self.name}")
            return None

        latest = files[-1]
        md5 = latest.get("md5")
        return ReleaseInfo(
            version=latest["name"],
            download_url=self.build_url(latest["fileUrl"], {}),
            checksum=Checksum("md5", md5) if md5 else None,
            file_name=latest.get("fileName"),
        )

    def temp_file_name(self, plugin: PluginConfig, release: ReleaseInfo) -> str:
        if release.file_name:
            return f"{plugin.name}-{release.file_name}"
        return f"{plugin.name}-{release.version}.jar"
