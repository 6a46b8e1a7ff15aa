# src/plugin_updater/utils.py
import hashlib
import importlib.metadata
import os
import time
from pathlib import Path
from typing import Dict, Optional

import requests

from plugin_updater.constants import (
    APP_NAME,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_REQUEST_TIMEOUT,
    HTTP_STATUS_OK,
)
from plugin_updater.exceptions import DownloadError, HTTPError, IntegrityError
from plugin_updater.log_utils import logger

# Cache for the User-Agent string to avoid repeated metadata lookups
_USER_AGENT_CACHE: Optional[str] = None


def get_user_agent() -> str:
    """
    Get the User-Agent string used for HTTP requests.

    Returns:
        The string `plugin-updater/{version}`, where `{version}` is the installed package version or `unknown` if the version cannot be determined.
    """
    global _USER_AGENT_CACHE

    if _USER_AGENT_CACHE is None:
        try:
            app_version = importlib.metadata.version(APP_NAME)
        except importlib.metadata.PackageNotFoundError:
            app_version = "unknown"

        _USER_AGENT_CACHE = f"{APP_NAME}/{app_version}"

    return _USER_AGENT_CACHE


def calculate_digest(file_path: Path, algorithm: str) -> Optional[str]:
    """
    Compute the hex digest of a file with the given hashlib algorithm.

    Streams the file in chunks. Returns the lowercase hex digest, or None if
    the file cannot be read or the algorithm is unknown.
    """
    try:
        digest = hashlib.new(algorithm.lower())
    except ValueError as e:
        logger.error(f"Unsupported checksum algorithm {algorithm}: {e}")
        return None
    try:
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(DEFAULT_CHUNK_SIZE), b""):
                digest.update(chunk)
        return digest.hexdigest()
    except OSError as e:
        logger.debug(f"Error calculating {algorithm} for {file_path}: {e}")
        return None


def verify_checksum(
    file_path: Path, algorithm: str, expected: str, url: Optional[str] = None
) -> None:
    """
    Check a downloaded file against its published digest.

    Digests are compared case-insensitively. On mismatch the file is removed
    and IntegrityError is raised.
    """
    actual = calculate_digest(file_path, algorithm)
    if actual is not None and actual == expected.strip().lower():
        logger.debug(f"{algorithm} checksum verified for {file_path.name}")
        return
    _remove_quietly(file_path)
    raise IntegrityError(
        f"{algorithm} checksum mismatch for {file_path.name}",
        expected=expected,
        actual=actual,
        url=url,
    )


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.debug(f"Could not remove {path}: {e}")


def download_file(
    url: str,
    destination: Path,
    headers: Optional[Dict[str, str]] = None,
    session: Optional[requests.Session] = None,
) -> Path:
    """
    Stream a remote file to `destination`, replacing any file already there.

    The body is written to a temporary sibling file which is moved into place
    with `os.replace` once the transfer completes. Partially written files are
    removed on failure. No retries are attempted.

    Parameters:
        url (str): HTTP(S) URL to download.
        destination (Path): Final path of the downloaded file.
        headers (Optional[Dict[str, str]]): Extra request headers; the User-Agent is always sent.
        session (Optional[requests.Session]): Session to use instead of a fresh one.

    Returns:
        Path: `destination`, once it holds the complete body.

    Raises:
        HTTPError: If the server answers with a status other than 200.
        DownloadError: If the request fails or the file cannot be written.
    """
    request_headers = {"User-Agent": get_user_agent()}
    if headers:
        request_headers.update(headers)

    temp_path = destination.with_name(
        f"{destination.name}.tmp.{os.getpid()}.{int(time.time() * 1000)}"
    )
    owns_session = session is None
    http = session if session is not None else requests.Session()
    response = None
    logger.debug(f"Downloading {url} to {destination}")
    try:
        destination.parent.mkdir(exist_ok=True)
        response = http.get(
            url,
            headers=request_headers,
            stream=True,
            timeout=DEFAULT_REQUEST_TIMEOUT,
        )
        if response.status_code != HTTP_STATUS_OK:
            raise HTTPError(
                f"Download failed with HTTP {response.status_code}",
                status_code=response.status_code,
                url=url,
            )
        downloaded_bytes = 0
        with open(temp_path, "wb") as file:
            for chunk in response.iter_content(chunk_size=DEFAULT_CHUNK_SIZE):
                if chunk:
                    file.write(chunk)
                    downloaded_bytes += len(chunk)
        os.replace(temp_path, destination)
    except requests.RequestException as e:
        raise DownloadError("Download request failed", url=url, details=str(e)) from e
    except OSError as e:
        raise DownloadError(
            f"Could not write {destination}", url=url, details=str(e)
        ) from e
    finally:
        if response is not None:
            response.close()
        if temp_path.exists():
            _remove_quietly(temp_path)
        if owns_session:
            http.close()

    logger.debug(f"Downloaded {destination.name} ({downloaded_bytes} bytes)")
    return destination
