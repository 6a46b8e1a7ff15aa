"""
Update Pipeline

This module drives the update cycle of each plugin: resolve the latest
version, decide whether it is newer than the installed one, download it,
unpack it if it arrived as a zip archive, store it under its versioned name
in the target directory and point the plugin's link at it.
"""

import zipfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, List, Optional

import requests

from plugin_updater.constants import DEFAULT_WORKERS, JAR_EXTENSION, ZIP_ENTRY_PATTERN_PARAMETER
from plugin_updater.exceptions import ResolutionError, UpdaterError
from plugin_updater.log_utils import logger

from .files import (
    ContentType,
    TempStorage,
    extract_jar_from_zip,
    link_artifact,
    probe_content_type,
    remove_file,
    store_artifact,
)
from .installed import InstalledVersions
from .interfaces import PluginConfig, RunSummary, UpdateResult, UpdateStatus
from .registry import Registry
from .version import is_newer


class UpdatePipeline:
    """
    Runs update checks for the plugins of a registry against a target directory.

    Each plugin is handled in isolation: any failure is logged and reported
    as a FAILED result for that plugin only, and the run continues.
    """

    def __init__(
        self,
        registry: Registry,
        target_dir: Path,
        installed: InstalledVersions,
        temp_storage: TempStorage,
        check_only: bool = False,
        dont_link: bool = False,
        workers: int = DEFAULT_WORKERS,
    ):
        self.registry = registry
        self.target_dir = target_dir
        self.installed = installed
        self.temp_storage = temp_storage
        self.check_only = check_only
        self.dont_link = dont_link
        self.workers = max(1, workers)

    def run(self, plugins: Optional[Iterable[PluginConfig]] = None) -> RunSummary:
        """
        Check all registered plugins, or only `plugins` when given.

        Returns:
            RunSummary: Per-plugin results in input order.
        """
        selected: List[PluginConfig] = (
            list(plugins) if plugins is not None else self.registry.plugins
        )
        if self.workers > 1 and len(selected) > 1:
            with ThreadPoolExecutor(
                max_workers=min(self.workers, len(selected))
            ) as executor:
                results = list(executor.map(self.check, selected))
        else:
            results = [self.check(plugin) for plugin in selected]

        summary = RunSummary(results)
        logger.info(
            f"Checked {len(results)} plugin(s): "
            f"{len(summary.by_status(UpdateStatus.SUCCESS))} updated, "
            f"{len(summary.by_status(UpdateStatus.AVAILABLE))} available, "
            f"{len(summary.by_status(UpdateStatus.FAILED))} failed"
        )
        return summary

    def check(self, plugin: PluginConfig) -> UpdateResult:
        """
        Run the update cycle for a single plugin.

        Errors raised by the plugin's source are logged and reported as a
        FAILED result so that they never stop the remaining plugins.
        """
        try:
            return self._check(plugin)
        except (requests.RequestException, OSError, ValueError, TypeError, UpdaterError) as e:
            logger.error(f"Error while checking {plugin.name}: {e}", exc_info=True)
            return UpdateResult(
                plugin.name,
                UpdateStatus.FAILED,
                installed_version=self.installed.get(plugin.name),
                message=str(e),
            )

    def _check(self, plugin: PluginConfig) -> UpdateResult:
        source = plugin.source
        installed_version = self.installed.get(plugin.name)
        logger.debug(
            f"Checking {plugin.name} against {source.type.name} source {source.name} (installed: {installed_version})"
        )

        latest_version = source.resolve_latest_version(plugin)
        if latest_version is None:
            logger.info(
                f"No version found for {plugin.name} from {source.type.name} source {source.name}"
            )
            return UpdateResult(
                plugin.name,
                UpdateStatus.NO_UPDATE,
                installed_version=installed_version,
                message="source has no version",
            )

        if not is_newer(installed_version, latest_version):
            logger.info(
                f"No new version for {plugin.name} found from {source.type.name} source {source.name} (got {latest_version})"
            )
            return UpdateResult(
                plugin.name,
                UpdateStatus.NO_UPDATE,
                version=latest_version,
                installed_version=installed_version,
                message="already up to date",
            )

        logger.info(
            f"Found new version of {plugin.name} on {source.type.name} source {source.name}: "
            f"{latest_version} (installed: {installed_version})"
        )

        if self.check_only:
            self._report_download_url(plugin)
            return UpdateResult(
                plugin.name,
                UpdateStatus.AVAILABLE,
                version=latest_version,
                installed_version=installed_version,
            )

        return self._install(plugin, latest_version, installed_version)

    def _report_download_url(self, plugin: PluginConfig) -> None:
        try:
            logger.info(f"Get update from {plugin.source.resolve_download_url(plugin)}")
        except ResolutionError as e:
            logger.error(f"Error while trying to get download URL: {e}")

    def _install(
        self, plugin: PluginConfig, latest_version: str, installed_version: Optional[str]
    ) -> UpdateResult:
        downloaded: Optional[Path] = None
        extracted: Optional[Path] = None
        try:
            downloaded = plugin.source.acquire(plugin)
            if downloaded is None:
                return self._failed(plugin, latest_version, installed_version, "download failed")

            artifact = downloaded
            content_type = probe_content_type(downloaded)
            if ContentType.JAR.matches(content_type):
                logger.info(f"Successfully downloaded plugin jar file for {plugin.name}")
            elif ContentType.ZIP.matches(content_type):
                logger.info(
                    f"Downloaded a zip archive for {plugin.name}. Trying to unpack it..."
                )
                extract_dir = self.temp_storage.temp_dir() / plugin.key
                extract_dir.mkdir(parents=True, exist_ok=True)
                extracted = extract_jar_from_zip(
                    downloaded,
                    extract_dir,
                    plugin.parameters.get(ZIP_ENTRY_PATTERN_PARAMETER),
                    plugin.name,
                )
                if extracted is None:
                    logger.error(
                        f"Unable to find jar file in zip archive {downloaded.name} for {plugin.name}. Aborting!"
                    )
                    return self._failed(
                        plugin, latest_version, installed_version, "no jar in archive"
                    )
                artifact = extracted
            elif content_type is not None:
                logger.warning(
                    f"Downloaded a {content_type} file for {plugin.name} which isn't supported. Trying to link it anyways..."
                )
            else:
                logger.warning(
                    f"Unable to detect content type of {downloaded.name} for {plugin.name}. Installing it anyways."
                )

            versioned_file = store_artifact(
                artifact, self.target_dir, plugin.get_file_name(latest_version)
            )
            logger.info(f"Stored {plugin.name} {latest_version} as {versioned_file}")

            if not self.dont_link:
                link_artifact(self.target_dir, f"{plugin.name}{JAR_EXTENSION}", versioned_file)

            self.installed.set(plugin.name, latest_version)
            return UpdateResult(
                plugin.name,
                UpdateStatus.SUCCESS,
                version=latest_version,
                installed_version=installed_version,
                file_path=versioned_file,
            )
        except (OSError, zipfile.BadZipFile, UpdaterError) as e:
            path = getattr(e, "path", None) or getattr(e, "filename", None) or downloaded
            logger.error(f"Failed to update {plugin.name} ({path}): {e}")
            return self._failed(plugin, latest_version, installed_version, str(e))
        finally:
            remove_file(downloaded)
            remove_file(extracted)

    @staticmethod
    def _failed(
        plugin: PluginConfig,
        latest_version: str,
        installed_version: Optional[str],
        message: str,
    ) -> UpdateResult:
        return UpdateResult(
            plugin.name,
            UpdateStatus.FAILED,
            version=latest_version,
            installed_version=installed_version,
            message=message,
        )
