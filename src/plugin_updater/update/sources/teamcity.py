"""TeamCity build server source."""

from typing import Any, Dict, Optional

from plugin_updater.constants import (
    JAR_EXTENSION,
    JSON_ACCEPT,
    TEAMCITY_ARTIFACT_DOWNLOAD_URL,
    TEAMCITY_ARTIFACTS_URL,
    TEAMCITY_BUILD_URL,
    TEAMCITY_DEFAULT_BRANCH,
)
from plugin_updater.exceptions import ResolutionError
from plugin_updater.log_utils import logger

from ..interfaces import PluginConfig, ReleaseInfo
from .base import SourceContext, SourceType, UpdateSource


class TeamCitySource(UpdateSource):
    """
    Resolves plugins from the latest successful build of a TeamCity build type.

    Configured per server with `url` and an optional `token`. Without a token
    the guest account is used. The build number is the version and the first
    `.jar` artifact is downloaded.
    """

    source_type = SourceType.TEAMCITY
    required_parameters = ("buildtype",)

    def __init__(
        self,
        context: SourceContext,
        name: str,
        url: str,
        token: Optional[str] = None,
    ):
        super().__init__(context, name)
        self.url = url.rstrip("/")
        self.token = token or None

    def _with_guest(self, url: str) -> str:
        if self.token is None and "guest=1" not in url:
            url += "&" if "?" in url else "?"
            url += "guest=1"
        return url

    def request_headers(self, plugin: PluginConfig) -> Dict[str, str]:
        headers = {"Accept": JSON_ACCEPT}
        if self.token is not None:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def download_headers(self, plugin: PluginConfig) -> Dict[str, str]:
        if self.token is not None:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    def _parameters(self, plugin: PluginConfig, **extra: str) -> Dict[str, str]:
        parameters = {"apiurl": self.url, "branch": TEAMCITY_DEFAULT_BRANCH}
        parameters.update(extra)
        parameters.update(plugin.get_parameters("project"))
        return parameters

    def _latest_build(self, plugin: PluginConfig) -> Optional[Dict[str, Any]]:
        url = self.build_url(self._with_guest(TEAMCITY_BUILD_URL), self._parameters(plugin))
        build = self.query_json(plugin, url, self.request_headers(plugin))
        if isinstance(build, dict) and "number" in build:
            return build
        return None

    def resolve_latest_version(self, plugin: PluginConfig) -> Optional[str]:
        try:
            build = self._latest_build(plugin)
        except ResolutionError as e:
            logger.error(
                f"Error while getting latest version for {plugin.name} from source {self.name}: {e}"
            )
            return None
        return str(build["number"]) if build else None

    def resolve_release(self, plugin: PluginConfig) -> Optional[ReleaseInfo]:
        build = self._latest_build(plugin)
        if build is None:
            return None
        build_id = str(build["id"])

        artifacts_url = self.build_url(
            self._with_guest(TEAMCITY_ARTIFACTS_URL),
            self._parameters(plugin, buildid=build_id),
        )
        artifacts = self.query_json(plugin, artifacts_url, self.request_headers(plugin))
        file_name = self._first_jar(artifacts)
        if file_name is None:
            logger.warning(
                f"Build {build['number']} of {plugin.name} from source {self.name} has no jar artifact"
            )
            return None

        download_url = self.build_url(
            self._with_guest(TEAMCITY_ARTIFACT_DOWNLOAD_URL),
            self._parameters(plugin, buildid=build_id, filename=file_name),
        )
        return ReleaseInfo(
            version=str(build["number"]), download_url=download_url, file_name=file_name
        )

    @staticmethod
    def _first_jar(artifacts: Any) -> Optional[str]:
        if not isinstance(artifacts, dict) or not isinstance(artifacts.get("file"), list):
            return None
        for file in artifacts["file"]:
            if isinstance(file, dict) and str(file.get("name", "")).endswith(JAR_EXTENSION):
                return file["name"]
        return None

    def temp_file_name(self, plugin: PluginConfig, release: ReleaseInfo) -> str:
        return f"{plugin.name}-{release.file_name}"
