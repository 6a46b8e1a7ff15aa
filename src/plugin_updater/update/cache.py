"""
Short-lived HTTP response cache for source queries.

Several plugins frequently share a backend endpoint (for example multiple
plugins resolved through the same TeamCity build, or a Spigot lookup that
falls back to GitHub). The QueryCache memoizes successful GET responses by
exact URL for a short window so a single run does not repeat identical calls.
"""

import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, Optional

import requests

from plugin_updater.constants import (
    DEFAULT_REQUEST_TIMEOUT,
    HTTP_STATUS_OK,
    QUERY_CACHE_EXPIRY_SECONDS,
)
from plugin_updater.log_utils import logger
from plugin_updater.utils import get_user_agent


@dataclass
class _CacheEntry:
    body: str
    fetched_at: float


@dataclass
class _UrlLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class QueryCache:
    """
    Memoizes successful HTTP GET response bodies keyed by URL.

    Entries are reused for `expiry_seconds` after they were fetched, regardless
    of the request headers of later lookups. Only HTTP 200 responses are
    cached. Concurrent lookups of the same URL are serialized so that only one
    request is in flight per URL.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
        expiry_seconds: float = QUERY_CACHE_EXPIRY_SECONDS,
        timeout=DEFAULT_REQUEST_TIMEOUT,
    ):
        self.session = session if session is not None else requests.Session()
        self._clock = clock
        self.expiry_seconds = expiry_seconds
        self.timeout = timeout
        self._entries: Dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()
        self._url_locks: Dict[str, _UrlLock] = {}

    @contextmanager
    def _locked(self, url: str) -> Iterator[None]:
        # Locks only live while a lookup of their URL is pending
        with self._lock:
            url_lock = self._url_locks.setdefault(url, _UrlLock())
            url_lock.users += 1
        try:
            with url_lock.lock:
                yield
        finally:
            with self._lock:
                url_lock.users -= 1
                if url_lock.users == 0 and self._url_locks.get(url) is url_lock:
                    del self._url_locks[url]

    def _is_fresh(self, entry: _CacheEntry, now: float) -> bool:
        return now - entry.fetched_at < self.expiry_seconds

    def _get_fresh(self, url: str) -> Optional[str]:
        now = self._clock()
        with self._lock:
            expired = [
                key
                for key, entry in self._entries.items()
                if not self._is_fresh(entry, now)
            ]
            for key in expired:
                del self._entries[key]
            entry = self._entries.get(url)
        return entry.body if entry is not None else None

    def query(self, url: str, headers: Optional[Dict[str, str]] = None) -> Optional[str]:
        """
        Fetch `url` and return the response body, using the cache when fresh.

        Parameters:
            url (str): The URL to GET.
            headers (Optional[Dict[str, str]]): Extra request headers. The
                User-Agent header is always sent.

        Returns:
            Optional[str]: The response body, or None if the request failed or
            answered with a status other than 200. Failures are logged and
            not cached.
        """
        with self._locked(url):
            body = self._get_fresh(url)
            if body is not None:
                logger.debug(f"Query cache hit for {url}")
                return body

            request_headers = {"User-Agent": get_user_agent()}
            if headers:
                request_headers.update(headers)

            logger.debug(f"Querying {url}")
            try:
                response = self.session.get(
                    url, headers=request_headers, timeout=self.timeout
                )
            except requests.RequestException as e:
                logger.error(f"Error while querying {url}: {e}")
                return None

            if response.status_code != HTTP_STATUS_OK:
                logger.warning(
                    f"Unable to query {url}: HTTP {response.status_code} {response.reason}"
                )
                return None

            body = response.text
            with self._lock:
                self._entries[url] = _CacheEntry(body=body, fetched_at=self._clock())
            return body

    def clear(self) -> None:
        """Drop all cached responses."""
        with self._lock:
            self._entries.clear()
