"""
Record of the plugin versions installed in a target directory.

The record lives in `versions.yaml` next to the plugins:

    plugins:
      myplugin: 1.4.2

It is read once when a run starts, updated in memory as plugins are
installed, and written back atomically at the end of the run.
"""

import threading
from pathlib import Path
from typing import Dict, Optional

import yaml

from plugin_updater.constants import VERSIONS_FILE_NAME, VERSIONS_SECTION
from plugin_updater.log_utils import logger

from .files import _atomic_write


class InstalledVersions:
    """Lower-cased plugin name to last installed version, backed by a YAML file."""

    def __init__(self, path: Path, versions: Optional[Dict[str, str]] = None):
        self.path = path
        self._versions: Dict[str, str] = {}
        for name, version in (versions or {}).items():
            self._versions[str(name).lower()] = str(version)
        self._dirty = False
        self._lock = threading.Lock()

    @classmethod
    def for_target(cls, target_dir: Path) -> "InstalledVersions":
        return cls.load(target_dir / VERSIONS_FILE_NAME)

    @classmethod
    def load(cls, path: Path) -> "InstalledVersions":
        """
        Read the record from `path`.

        A missing file yields an empty record. An unreadable or malformed file
        is logged and also yields an empty record, which makes every plugin
        look new on the next run rather than aborting it.
        """
        if not path.exists():
            logger.debug(f"No installed versions file at {path}")
            return cls(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                # BaseLoader keeps unquoted values such as 1.10 as written
                data = yaml.load(f, Loader=yaml.BaseLoader) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Could not read installed versions from {path}: {e}")
            return cls(path)

        section = data.get(VERSIONS_SECTION) if isinstance(data, dict) else None
        if not isinstance(section, dict):
            if data:
                logger.warning(
                    f"Ignoring malformed installed versions file {path}: missing '{VERSIONS_SECTION}' mapping"
                )
            return cls(path)
        versions = {
            name: version
            for name, version in section.items()
            if isinstance(version, str) and version
        }
        return cls(path, versions)

    def get(self, name: str) -> Optional[str]:
        return self._versions.get(name.lower())

    def set(self, name: str, version: str) -> None:
        with self._lock:
            key = name.lower()
            if self._versions.get(key) != version:
                self._versions[key] = version
                self._dirty = True

    @property
    def dirty(self) -> bool:
        return self._dirty

    def as_dict(self) -> Dict[str, str]:
        return dict(self._versions)

    def flush(self) -> bool:
        """
        Write the record to disk if it changed since it was loaded.

        Returns:
            bool: True if the file is up to date afterwards, False if writing failed.
        """
        with self._lock:
            if not self._dirty:
                return True
            data = {VERSIONS_SECTION: dict(sorted(self._versions.items()))}
            self.path.parent.mkdir(parents=True, exist_ok=True)
            written = _atomic_write(
                self.path,
                lambda f: yaml.safe_dump(data, f, default_flow_style=False),
                suffix=".yaml",
            )
            if written:
                self._dirty = False
                logger.debug(f"Saved installed versions to {self.path}")
            return written
