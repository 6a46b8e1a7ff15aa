import json
import logging
from pathlib import Path
from unittest.mock import MagicMock

import platformdirs
import pytest
import requests

from plugin_updater.update.cache import QueryCache
from plugin_updater.update.files import TempStorage
from plugin_updater.update.sources import SourceContext

_NETWORK_BLOCK_MSG = (
    "Network access is blocked during tests. Mock requests.* or Session.request."
)


def _block_network(*_args, **_kwargs):
    """
    Prevent network calls in tests by raising a RuntimeError.

    Raises:
        RuntimeError: with `_NETWORK_BLOCK_MSG` indicating that network access is blocked during tests.
    """
    raise RuntimeError(_NETWORK_BLOCK_MSG)


def pytest_configure(config):
    """
    Register the markers used to group the test suite.

    Parameters:
        config: pytest.Config
            The pytest configuration object used to register markers.
    """
    for marker, description in (
        ("unit", "fast tests of a single component"),
        ("core_downloads", "source resolution, downloading and installing"),
        ("configuration", "configuration loading and registry construction"),
        ("infrastructure", "caching, logging, files and utilities"),
        ("integration", "end-to-end runs over a real target directory"),
    ):
        config.addinivalue_line("markers", f"{marker}: {description}")


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Point platformdirs and the configuration environment variables at a temporary layout.

    Tests never see the real user configuration or log directories.
    """
    base = tmp_path_factory.mktemp("plugin-updater")
    config_dir = base / "config"
    log_dir = base / "log"
    for path in (config_dir, log_dir):
        path.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_dir))
    monkeypatch.delenv("PLUGIN_UPDATER_CONFIG", raising=False)
    monkeypatch.setattr(
        platformdirs, "user_config_dir", lambda *_args, **_kwargs: str(config_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_log_dir", lambda *_args, **_kwargs: str(log_dir)
    )


def pytest_runtest_setup():
    """Prevent real network requests by replacing the requests entry points with a blocker."""
    requests.get = _block_network
    requests.post = _block_network
    requests.head = _block_network
    requests.Session.request = _block_network


# =============================================================================
# Fakes
# =============================================================================


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_response(status_code=200, text="", content=b"", reason="OK"):
    """Build a MagicMock standing in for a requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.reason = reason
    response.text = text
    response.iter_content.return_value = [content] if content else []
    return response


class FakeDownloader:
    """
    Records downloads and writes canned payloads to their destination.

    A payload that is an exception instance is raised instead.
    """

    def __init__(self):
        self.payloads = {}
        self.calls = []
        self.default = b"PK-jar"

    def __call__(self, url, destination, headers=None, session=None):
        self.calls.append({"url": url, "destination": destination, "headers": headers})
        payload = self.payloads.get(url, self.default)
        if isinstance(payload, Exception):
            raise payload
        destination.parent.mkdir(parents=True, exist_ok=True)
        Path(destination).write_bytes(payload)
        return destination


class FakeQueries:
    """Canned query responses by exact URL; unknown URLs answer None."""

    def __init__(self):
        self.responses = {}
        self.calls = []

    def add(self, url, body):
        self.responses[url] = body if isinstance(body, str) or body is None else json.dumps(body)

    def __call__(self, url, headers=None):
        self.calls.append({"url": url, "headers": headers})
        return self.responses.get(url)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fake_session(mocker):
    """A MagicMock with the requests.Session interface."""
    return mocker.MagicMock(spec=requests.Session)


@pytest.fixture
def temp_storage(tmp_path):
    storage = TempStorage(base_dir=tmp_path)
    yield storage
    storage.cleanup()


@pytest.fixture
def fake_queries():
    return FakeQueries()


@pytest.fixture
def fake_downloader():
    return FakeDownloader()


@pytest.fixture
def source_context(mocker, temp_storage, fake_queries, fake_downloader):
    """
    SourceContext whose query cache answers from `fake_queries` and whose
    downloader is `fake_downloader`.
    """
    query_cache = mocker.MagicMock(spec=QueryCache)
    query_cache.query.side_effect = fake_queries
    return SourceContext(
        query_cache=query_cache,
        temp_storage=temp_storage,
        downloader=fake_downloader,
    )


@pytest.fixture
def plugin_log(caplog):
    """caplog wired to the plugin_updater logger, which does not propagate."""
    logger = logging.getLogger("plugin_updater")
    logger.addHandler(caplog.handler)
    caplog.set_level(logging.DEBUG, logger="plugin_updater")
    yield caplog
    logger.removeHandler(caplog.handler)


@pytest.fixture
def target_dir(tmp_path):
    path = tmp_path / "plugins"
    path.mkdir()
    return path
