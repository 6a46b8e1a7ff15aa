"""
File Operations for the Plugin Update Subsystem

This module provides the filesystem side of an update: temporary storage for
downloads, content type probing, jar selection from zip archives, moving
artifacts into the target directory, linking, and atomic writes.
"""

import mimetypes
import os
import re
import shutil
import tempfile
import threading
import zipfile
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

from plugin_updater.constants import (
    APPLICATION_PREFIX,
    EXCLUDED_JAR_SUFFIXES,
    JAR_CONTENT_SUBTYPES,
    JAR_EXTENSION,
    JAR_MANIFEST_ENTRY,
    TEMP_DIR_PREFIX,
    ZIP_CONTENT_SUBTYPES,
)
from plugin_updater.exceptions import FileOperationError, ResolutionError
from plugin_updater.log_utils import logger


class ContentType(Enum):
    """Archive content types the updater knows how to install."""

    JAR = JAR_CONTENT_SUBTYPES
    ZIP = ZIP_CONTENT_SUBTYPES

    def matches(self, content_type: Optional[str]) -> bool:
        """Return True if the MIME type is one of this kind's `application/*` types."""
        if not content_type:
            return False
        content_type = content_type.split(";", 1)[0].strip().lower()
        if not content_type.startswith(APPLICATION_PREFIX):
            return False
        return content_type[len(APPLICATION_PREFIX) :] in self.value


def _sanitize_path_component(component: Optional[str]) -> Optional[str]:
    """
    Validate a single file name taken from remote or configured data.

    Returns the trimmed component, or None when it is empty, "." or "..",
    absolute, or contains a null byte or a path separator.
    """
    if component is None:
        return None

    sanitized = component.strip()
    if not sanitized or sanitized in {".", ".."}:
        return None

    if os.path.isabs(sanitized):
        return None

    if "\x00" in sanitized:
        return None

    for separator in (os.sep, os.altsep, "/"):
        if separator and separator in sanitized:
            return None

    return sanitized


def safe_file_name(name: str) -> str:
    """
    Return `name` if it is usable as a plain file name inside a directory.

    Raises:
        ResolutionError: If the name could resolve outside its directory.
    """
    if _sanitize_path_component(name) is None:
        raise ResolutionError(f"Unsafe file name {name!r}")
    return name


def probe_content_type(file_path: Path) -> Optional[str]:
    """
    Guess the MIME type of a downloaded file.

    The extension decides for `.jar` and `.zip` files. Other names go through
    `mimetypes`; files that are still unknown but are valid zip archives are
    reported as jars when they carry a manifest or a plugin description, and
    as zips otherwise.

    Returns:
        Optional[str]: The MIME type, or None if it cannot be determined.
    """
    suffix = file_path.suffix.lower()
    if suffix == ".jar":
        return "application/java-archive"
    if suffix == ".zip":
        return "application/zip"

    guessed, _ = mimetypes.guess_type(file_path.name)
    if guessed:
        return guessed

    if zipfile.is_zipfile(file_path):
        with zipfile.ZipFile(file_path) as archive:
            names = set(archive.namelist())
        if JAR_MANIFEST_ENTRY in names or "plugin.yml" in names:
            return "application/java-archive"
        return "application/zip"
    return None


def _compile_entry_pattern(pattern: Optional[str], plugin_name: str):
    if not pattern:
        return None
    try:
        return re.compile(pattern)
    except re.error as e:
        logger.error(
            f"Could not compile zip entry pattern {pattern} for {plugin_name}: {e}"
        )
        return None


def select_zip_entry(
    archive: zipfile.ZipFile,
    entry_pattern: Optional[str] = None,
    plugin_name: str = "",
) -> Optional[zipfile.ZipInfo]:
    """
    Choose the plugin jar inside a zip archive.

    Candidates are entries whose full name matches `entry_pattern`, or, when no
    valid pattern is given, entries ending in `.jar`. Source and javadoc jars
    are never chosen. The largest remaining entry by uncompressed size wins.

    Parameters:
        archive (zipfile.ZipFile): The opened archive.
        entry_pattern (Optional[str]): Regular expression an entry name must fully match.
        plugin_name (str): Plugin name for log messages.

    Returns:
        Optional[zipfile.ZipInfo]: The chosen entry, or None if nothing matches.
    """
    compiled = _compile_entry_pattern(entry_pattern, plugin_name)
    candidates = []
    for info in archive.infolist():
        if info.is_dir():
            continue
        if compiled is not None:
            if not compiled.fullmatch(info.filename):
                continue
        elif not info.filename.endswith(JAR_EXTENSION):
            continue
        if info.filename.endswith(EXCLUDED_JAR_SUFFIXES):
            continue
        candidates.append(info)

    if not candidates:
        return None
    return max(candidates, key=lambda info: info.file_size)


def extract_jar_from_zip(
    zip_path: Path,
    extract_dir: Path,
    entry_pattern: Optional[str] = None,
    plugin_name: str = "",
) -> Optional[Path]:
    """
    Extract the plugin jar chosen by `select_zip_entry` into `extract_dir`.

    Only the base name of the entry is used for the extracted file, so nested
    archive paths cannot escape the directory.

    Returns:
        Optional[Path]: The extracted jar, or None if the archive has no suitable entry.

    Raises:
        zipfile.BadZipFile: If the archive is corrupt.
        ResolutionError: If the entry has no usable file name.
        OSError: If the entry cannot be written.
    """
    with zipfile.ZipFile(zip_path) as archive:
        entry = select_zip_entry(archive, entry_pattern, plugin_name)
        if entry is None:
            return None
        target = extract_dir / safe_file_name(os.path.basename(entry.filename))
        with archive.open(entry) as source, open(target, "wb") as destination:
            shutil.copyfileobj(source, destination)
    logger.debug(f"Extracted {entry.filename} from {zip_path.name} to {target}")
    return target


def store_artifact(source_path: Path, target_dir: Path, file_name: str) -> Path:
    """
    Move a downloaded artifact to `target_dir / file_name`, replacing an existing file.

    Raises:
        FileOperationError: If the move fails.
    """
    target = target_dir / file_name
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        shutil.move(str(source_path), str(target))
    except OSError as e:
        raise FileOperationError(
            f"Failed to move {source_path} to {target}", path=target, details=str(e)
        ) from e
    return target


def link_artifact(target_dir: Path, link_name: str, versioned_file: Path) -> Path:
    """
    Point `target_dir / link_name` at a stored artifact.

    Any existing file or link of that name is removed first, dangling links
    included. A relative symbolic link is created; where symbolic links are
    not available a hard link is used instead.

    Returns:
        Path: The link path.

    Raises:
        FileOperationError: If neither link type can be created.
    """
    link_path = target_dir / link_name
    try:
        if link_path.is_symlink() or link_path.exists():
            link_path.unlink()
    except OSError as e:
        raise FileOperationError(
            f"Could not remove existing {link_path}", path=link_path, details=str(e)
        ) from e

    relative_target = os.path.relpath(versioned_file, target_dir)
    try:
        link_path.symlink_to(relative_target)
        logger.info(f"Linked {link_path} to {relative_target}")
        return link_path
    except OSError as e:
        logger.warning(
            f"Failed to create symbolic link from {link_path} to {versioned_file} ({e}). Creating hard link."
        )

    try:
        os.link(versioned_file, link_path)
    except OSError as e:
        raise FileOperationError(
            f"Error while linking {link_path} to {versioned_file}",
            path=link_path,
            details=str(e),
        ) from e
    logger.info(f"Hard linked {link_path} to {versioned_file}")
    return link_path


def _atomic_write(
    file_path: Path, writer_func: Callable[[Any], None], suffix: str = ".tmp"
) -> bool:
    """
    Write data to a file atomically by writing to a temporary file and atomically replacing the target on success.

    Parameters:
        file_path (Path): Destination file path to be written.
        writer_func (Callable[[Any], None]): Callable that receives an open text file-like object and writes the desired content to it.
        suffix (str): Suffix to use for the temporary file name (default ".tmp").

    Returns:
        bool: `True` if the temporary write and atomic replace succeeded, `False` on any error.
    """
    try:
        temp_fd, temp_path = tempfile.mkstemp(
            dir=os.path.dirname(file_path), prefix="tmp-", suffix=suffix
        )
    except OSError as e:
        logger.error(f"Could not create temporary file for {file_path}: {e}")
        return False

    try:
        with os.fdopen(temp_fd, "w", encoding="utf-8") as temp_f:
            writer_func(temp_f)
        os.replace(temp_path, file_path)
    except (UnicodeEncodeError, OSError) as e:
        logger.error(f"Could not write to {file_path}: {e}")
        return False
    finally:
        if os.path.exists(temp_path):
            try:
                os.remove(temp_path)
            except OSError:
                pass
    return True


class TempStorage:
    """
    Provides a per-run temporary directory for downloads and extraction.

    The directory is created on first use under the system temp directory and
    removed by `cleanup()`.
    """

    def __init__(self, base_dir: Optional[Path] = None):
        self.base_dir = base_dir
        self._path: Optional[Path] = None
        self._lock = threading.Lock()

    def temp_dir(self) -> Path:
        with self._lock:
            if self._path is None or not self._path.exists():
                self._path = Path(
                    tempfile.mkdtemp(
                        prefix=TEMP_DIR_PREFIX,
                        dir=str(self.base_dir) if self.base_dir else None,
                    )
                )
                logger.debug(f"Created temporary directory {self._path}")
            return self._path

    def cleanup(self) -> None:
        if self._path is not None and self._path.exists():
            shutil.rmtree(self._path, ignore_errors=True)
            logger.debug(f"Removed temporary directory {self._path}")
        self._path = None


def remove_file(path: Optional[Path]) -> None:
    """Delete a temporary file if it exists, logging failures at debug level."""
    if path is None:
        return
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.debug(f"Could not remove temporary file {path}: {e}")
