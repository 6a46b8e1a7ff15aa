"""GitLab releases source."""

from pathlib import PurePosixPath
from typing import Any, Dict, Optional

from plugin_updater.constants import GITLAB_API_URL, GITLAB_RELEASES_URL, JAR_EXTENSION
from plugin_updater.log_utils import logger

from ..interfaces import PluginConfig, ReleaseInfo
from .base import SourceType, UpdateSource


class GitLabSource(UpdateSource):
    """
    Resolves plugins from GitLab release asset links.

    The first release carrying a link whose name or URL ends in `.jar` wins.
    `apiurl` points at a self-hosted instance (default gitlab.com), `repository`
    defaults to the plugin name and `token` is sent as a Private-Token.
    """

    source_type = SourceType.GITLAB
    required_parameters = ("user",)

    def request_headers(self, plugin: PluginConfig) -> Dict[str, str]:
        token = plugin.parameters.get("token")
        return {"Private-Token": token} if token else {}

    def temp_file_name(self, plugin: PluginConfig, release: ReleaseInfo) -> str:
        # Link names are free text and may contain slashes
        return f"{plugin.name}-{PurePosixPath(release.file_name).name}"

    def resolve_release(self, plugin: PluginConfig) -> Optional[ReleaseInfo]:
        parameters = {"apiurl": GITLAB_API_URL}
        parameters.update(plugin.get_parameters("repository"))
        url = self.build_url(GITLAB_RELEASES_URL, parameters)

        releases = self.query_json(plugin, url, self.request_headers(plugin))
        if not isinstance(releases, list):
            return None

        for release in releases:
            if not isinstance(release, dict) or "tag_name" not in release:
                continue
            assets = release.get("assets")
            if not isinstance(assets, dict) or not isinstance(assets.get("links"), list):
                continue
            for link in assets["links"]:
                if self._is_jar_link(link):
                    return ReleaseInfo(
                        version=release["tag_name"],
                        download_url=link["url"],
                        file_name=link.get("name") or link["url"].rsplit("/", 1)[-1],
                    )

        logger.warning(
            f"No release with a jar asset found for {plugin.name} from source {self.name}"
        )
        return None

    @staticmethod
    def _is_jar_link(link: Any) -> bool:
        if not isinstance(link, dict) or not link.get("url"):
            return False
        return str(link.get("name", "")).endswith(JAR_EXTENSION) or str(
            link["url"]
        ).endswith(JAR_EXTENSION)
