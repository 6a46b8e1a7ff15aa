"""Direct URL source for plugins published outside of any release platform."""

import json
import re
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, Optional
from urllib.parse import urlsplit

from jsonpath_ng.exceptions import JSONPathError
from jsonpath_ng.ext import parse as parse_json_path

from plugin_updater.exceptions import ResolutionError
from plugin_updater.log_utils import logger
from plugin_updater.templates import replace_placeholders

from ..interfaces import PluginConfig, ReleaseInfo
from .base import SourceContext, SourceType, UpdateSource


def _looks_like_json(value: str) -> bool:
    return (value.startswith("[") and value.endswith("]")) or (
        value.startswith("{") and value.endswith("}")
    )


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


class DirectSource(UpdateSource):
    """
    Reads the latest version and download location from arbitrary URLs.

    `latest_version` is queried for the version. When the response is JSON a
    `version_json_path` selects the value; a `version_regex` must then match
    the whole value, and its first group (if any) is the result. `download`
    is either the artifact URL itself or, when a download path or regex is
    configured, a URL whose response is parsed the same way. All settings may
    contain plugin parameter placeholders; the download settings may also use
    `%version%`.
    """

    source_type = SourceType.DIRECT

    def __init__(
        self,
        context: SourceContext,
        name: str,
        latest_version: str,
        download: str,
        version_json_path: Optional[str] = None,
        version_regex: Optional[str] = None,
        download_json_path: Optional[str] = None,
        download_regex: Optional[str] = None,
        required_parameters: Iterable[str] = (),
    ):
        super().__init__(context, name)
        self.latest_version = latest_version
        self.download = download
        self.version_json_path = version_json_path
        self.version_regex = version_regex
        self.download_json_path = download_json_path
        self.download_regex = download_regex
        self.required_parameters = tuple(required_parameters)

    def resolve_latest_version(self, plugin: PluginConfig) -> Optional[str]:
        try:
            return self._resolve_version(plugin)
        except ResolutionError as e:
            logger.error(
                f"Error while getting latest version for {plugin.name} from source {self.name}: {e}"
            )
            return None

    def _resolve_version(self, plugin: PluginConfig) -> Optional[str]:
        parameters = plugin.get_parameters()
        url = self.build_url(self.latest_version, parameters)
        body = self.context.query_cache.query(url)
        if not body or not body.strip():
            return None
        return self._parse_value(
            plugin, body.strip(), self.version_json_path, self.version_regex, parameters
        )

    def resolve_release(self, plugin: PluginConfig) -> Optional[ReleaseInfo]:
        version = self._resolve_version(plugin)
        if version is None:
            return None

        parameters = plugin.get_parameters()
        parameters["version"] = version
        url = self.build_url(self.download, parameters)
        if self.download_json_path is None and self.download_regex is None:
            return ReleaseInfo(version=version, download_url=url)

        body = self.context.query_cache.query(url)
        if not body or not body.strip():
            return None
        download_url = self._parse_value(
            plugin, body.strip(), self.download_json_path, self.download_regex, parameters
        )
        if download_url is None:
            return None
        return ReleaseInfo(version=version, download_url=self.build_url(download_url, {}))

    def temp_file_name(self, plugin: PluginConfig, release: ReleaseInfo) -> str:
        file_name = PurePosixPath(urlsplit(release.download_url).path).name
        return f"{plugin.name}-{file_name}"

    def _parse_value(
        self,
        plugin: PluginConfig,
        value: str,
        json_path: Optional[str],
        regex: Optional[str],
        parameters: Dict[str, str],
    ) -> Optional[str]:
        """
        Extract a value from a query response using a JSON path and/or a regex.

        Raises:
            ResolutionError: If the JSON is invalid or an expression does not compile.
        """
        if _looks_like_json(value):
            if json_path is not None:
                expression = replace_placeholders(json_path, parameters)
                try:
                    document = json.loads(value)
                except ValueError as e:
                    raise ResolutionError(
                        f"Invalid JSON returned for {plugin.name}", details=str(e)
                    ) from e
                try:
                    matches = parse_json_path(expression).find(document)
                except JSONPathError as e:
                    raise ResolutionError(
                        f"Invalid JSON path {json_path}", details=str(e)
                    ) from e
                if not matches or matches[0].value is None:
                    logger.error(
                        f"No value found for JSON path '{json_path}' for {plugin.name} from source {self.name}!"
                    )
                    return None
                if len(matches) == 1:
                    value = _stringify(matches[0].value)
                else:
                    value = json.dumps([match.value for match in matches])
            elif regex is None:
                logger.error(
                    f"No regex nor JSON path specified for {plugin.name} from source {self.name}!"
                )
                return None

        if regex is not None:
            pattern = replace_placeholders(regex, parameters)
            try:
                match = re.fullmatch(pattern, value)
            except re.error as e:
                raise ResolutionError(f"Invalid regex pattern '{regex}'", details=str(e)) from e
            if match is None:
                logger.error(
                    f"Return value '{value}' does not match regex pattern '{regex}' for {plugin.name} from source {self.name}!"
                )
                return None
            value = match.group(1) if match.re.groups > 0 else match.group(0)
        return value
