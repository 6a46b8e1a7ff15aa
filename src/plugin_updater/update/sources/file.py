"""Local filesystem source, for artifacts produced on the same machine."""

import os
import shutil
from pathlib import Path
from typing import Iterable, Optional

from plugin_updater.exceptions import NotFoundError, ResolutionError
from plugin_updater.log_utils import logger
from plugin_updater.templates import replace_placeholders

from ..files import safe_file_name
from ..interfaces import PluginConfig, ReleaseInfo
from .base import SourceContext, SourceType, UpdateSource


class FileSource(UpdateSource):
    """
    Reads versions and artifacts from local paths.

    `latest_version` names either a symbolic link to a directory, whose
    target directory name is the version, or a file whose first line is the
    version. `download` is the artifact path. Both may contain plugin
    parameter placeholders.
    """

    source_type = SourceType.FILE

    def __init__(
        self,
        context: SourceContext,
        name: str,
        latest_version: str,
        download: str,
        required_parameters: Iterable[str] = (),
    ):
        super().__init__(context, name)
        self.latest_version = latest_version
        self.download = download
        self.required_parameters = tuple(required_parameters)

    def _path(self, template: str, plugin: PluginConfig) -> Path:
        return Path(replace_placeholders(template, plugin.get_parameters()))

    def resolve_latest_version(self, plugin: PluginConfig) -> Optional[str]:
        path = self._path(self.latest_version, plugin)
        try:
            if path.is_symlink():
                linked = Path(os.readlink(path))
                if not linked.is_absolute():
                    linked = path.parent / linked
                if linked.is_dir():
                    return linked.name
            if path.is_file():
                with open(path, "r", encoding="utf-8") as f:
                    first_line = f.readline().rstrip("\r\n")
                return first_line or None
        except (OSError, ValueError) as e:
            logger.error(
                f"Error while trying to get latest version for {plugin.name} from source {self.name}! {e}"
            )
        return None

    def resolve_release(self, plugin: PluginConfig) -> Optional[ReleaseInfo]:
        version = self.resolve_latest_version(plugin)
        path = self._path(self.download, plugin)
        if version is None or not path.exists():
            return None
        return ReleaseInfo(version=version, download_url=path.resolve().as_uri())

    def resolve_download_url(self, plugin: PluginConfig) -> str:
        path = self._path(self.download, plugin)
        if not path.exists():
            raise NotFoundError(f"File {path} for {plugin.name} does not exist")
        return path.resolve().as_uri()

    def acquire(self, plugin: PluginConfig) -> Optional[Path]:
        version = self.resolve_latest_version(plugin)
        if version is None:
            return None
        source = self._path(self.download, plugin)
        try:
            target = self.context.temp_storage.temp_dir() / safe_file_name(
                f"{plugin.get_file_name(version)}-{source.name}"
            )
            shutil.copyfile(source, target)
        except (OSError, ResolutionError) as e:
            logger.error(
                f"Error while trying to copy update {version} for {plugin.name} from source {self.name}! {e}"
            )
            return None
        return target
