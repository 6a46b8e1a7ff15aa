"""
Suggests configuration for plugin jars that are not managed yet.

Plugin description files frequently link to the project page. When such a
link points at Hangar, SpigotMC or GitHub, a ready-to-paste YAML snippet is
logged so the plugin can be added to the configuration.
"""

import io
import re
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from plugin_updater.constants import (
    GITHUB_LINK_PATTERN,
    HANGAR_LINK_PATTERN,
    JAR_EXTENSION,
    PLUGIN_DESCRIPTION_FILES,
    SPIGOT_LINK_PATTERN,
)
from plugin_updater.log_utils import logger
from plugin_updater.update.registry import Registry
from plugin_updater.update.sources import SourceType

_HANGAR_RX = re.compile(HANGAR_LINK_PATTERN)
_SPIGOT_RX = re.compile(SPIGOT_LINK_PATTERN)
_GITHUB_RX = re.compile(GITHUB_LINK_PATTERN)


@dataclass
class Suggestion:
    """A configuration snippet proposed for an unmanaged jar."""

    plugin: str
    source: SourceType
    parameters: Dict[str, str] = field(default_factory=dict)
    jar: Optional[Path] = None

    def to_yaml(self) -> str:
        snippet = {
            "plugins": {
                self.plugin: {
                    "source": self.source.name.lower(),
                    "parameters": dict(self.parameters),
                }
            }
        }
        return yaml.safe_dump(snippet, default_flow_style=False, sort_keys=False)


def _suggestions_for_line(plugin_name: str, line: str) -> List[Suggestion]:
    suggestions = []
    match = _HANGAR_RX.fullmatch(line)
    if match:
        suggestions.append(
            Suggestion(
                plugin_name,
                SourceType.HANGAR,
                {"user": match.group("author"), "project": match.group("project")},
            )
        )
    match = _SPIGOT_RX.fullmatch(line)
    if match:
        suggestions.append(
            Suggestion(plugin_name, SourceType.SPIGOT, {"resourceid": match.group("id")})
        )
    match = _GITHUB_RX.fullmatch(line)
    if match:
        suggestions.append(
            Suggestion(
                plugin_name,
                SourceType.GITHUB,
                {"user": match.group("user"), "repository": match.group("repo")},
            )
        )
    return suggestions


def read_plugin_description(jar_path: Path) -> Optional[str]:
    """Return the text of the first plugin description file found in a jar, if any."""
    with zipfile.ZipFile(jar_path) as jar:
        names = set(jar.namelist())
        for description in PLUGIN_DESCRIPTION_FILES:
            if description in names:
                with jar.open(description) as f:
                    return io.TextIOWrapper(f, encoding="utf-8", errors="replace").read()
    return None


def scan_existing_jars(target_dir: Path, registry: Registry) -> List[Suggestion]:
    """
    Look for project links in the description files of unmanaged jars.

    Jars whose base name matches a configured plugin are skipped. Every
    suggestion found is logged at INFO as a YAML snippet and returned.
    Unreadable jars are logged and skipped.
    """
    suggestions: List[Suggestion] = []
    for jar_path in sorted(target_dir.iterdir()):
        if not jar_path.name.lower().endswith(JAR_EXTENSION):
            continue
        plugin_name = jar_path.name[: -len(JAR_EXTENSION)]
        if registry.get_plugin(plugin_name) is not None:
            continue
        try:
            description = read_plugin_description(jar_path)
        except (OSError, zipfile.BadZipFile) as e:
            logger.error(f"Error while trying to check content of {jar_path.name}: {e}")
            continue
        if description is None:
            continue

        for line in description.splitlines():
            for suggestion in _suggestions_for_line(plugin_name, line):
                suggestion.jar = jar_path
                suggestions.append(suggestion)
                logger.info(
                    f"Found link to a {suggestion.source.name.title()} project in {jar_path.name}! "
                    f"If you want to update from there add the following to your configuration:\n\n"
                    f"{suggestion.to_yaml()}"
                )
    return suggestions
