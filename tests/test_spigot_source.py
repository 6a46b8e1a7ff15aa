"""
Tests for the SpigotMC source and its GitHub fallback.
"""

import functools

import pytest
from conftest import make_response

from plugin_updater.exceptions import HTTPError
from plugin_updater.update.interfaces import PluginConfig
from plugin_updater.update.sources import GitHubSource, SpigotSource
from plugin_updater.utils import download_file

pytestmark = [pytest.mark.unit, pytest.mark.core_downloads]

LATEST = "https://api.spiget.org/v2/resources/123/versions/latest"
DOWNLOAD = "https://api.spiget.org/v2/resources/123/versions/456/download"
DETAILS = "https://api.spiget.org/v2/resources/123"
GITHUB = "https://api.github.com/repos/me/Repo/releases"
GITHUB_ASSET = "https://github.com/me/Repo/releases/download/1.0/Repo.jar"


@pytest.fixture
def source(source_context):
    return SpigotSource(source_context)


@pytest.fixture
def plugin(source):
    return PluginConfig("MyPlugin", source, parameters={"resourceid": "123"})


@pytest.fixture
def spigot_release(fake_queries):
    fake_queries.add(LATEST, {"id": 456, "name": "1.0"})


def _github_release(fake_queries, tag="1.0"):
    fake_queries.add(
        GITHUB,
        [
            {
                "tag_name": tag,
                "assets": [
                    {
                        "name": "Repo.jar",
                        "content_type": "application/java-archive",
                        "browser_download_url": GITHUB_ASSET,
                    }
                ],
            }
        ],
    )


class TestSpigotSource:
    """Test SpigotSource resolution and downloads."""

    def test_resolve(self, source, plugin, spigot_release):
        assert source.resolve_latest_version(plugin) == "1.0"
        assert source.resolve_download_url(plugin) == DOWNLOAD

    def test_download_has_no_extension(self, source, plugin, spigot_release, fake_downloader):
        path = source.acquire(plugin)
        assert path.name == "MyPlugin-1.0"
        assert fake_downloader.calls[0]["url"] == DOWNLOAD

    def test_uses_own_github_source_by_default(self, source):
        assert isinstance(source.github, GitHubSource)

    def test_missing_latest_version(self, source, plugin, fake_queries):
        fake_queries.add(LATEST, {"message": "not found"})
        assert source.resolve_latest_version(plugin) is None

    def test_version_cannot_escape_temp_storage(
        self, source, plugin, fake_queries, fake_session, tmp_path, plugin_log
    ):
        """A version name with path segments is refused before anything is written."""
        victim = tmp_path / "victim"
        victim.write_bytes(b"keep me")
        fake_queries.add(LATEST, {"id": 456, "name": "x/../../victim"})
        fake_session.get.return_value = make_response(content=b"payload")
        source.context.downloader = functools.partial(download_file, session=fake_session)

        assert source.acquire(plugin) is None
        assert victim.read_bytes() == b"keep me"
        fake_session.get.assert_not_called()
        assert "Unsafe file name" in plugin_log.text


class TestGitHubFallback:
    """Test the fallback to GitHub when Spiget answers 503."""

    @pytest.fixture(autouse=True)
    def blocked(self, fake_downloader, spigot_release):
        fake_downloader.payloads[DOWNLOAD] = HTTPError(
            "Download failed with HTTP 503", status_code=503, url=DOWNLOAD
        )

    def test_downloads_matching_github_release(
        self, source, plugin, fake_queries, fake_downloader
    ):
        fake_queries.add(
            DETAILS,
            {"links": {"discord": "https://discord.gg/x", "sourceCodeLink": "https://github.com/me/Repo"}},
        )
        _github_release(fake_queries)

        path = source.acquire(plugin)

        assert path is not None
        assert path.read_bytes() == b"PK-jar"
        assert fake_downloader.calls[-1]["url"] == GITHUB_ASSET

    def test_version_mismatch(self, source, plugin, fake_queries, plugin_log):
        fake_queries.add(DETAILS, {"links": {"source": "https://github.com/me/Repo/issues"}})
        _github_release(fake_queries, tag="0.9")

        assert source.acquire(plugin) is None
        assert "Found non-matching release on GitHub: 0.9" in plugin_log.text

    def test_version_match_ignores_case(self, source, plugin, fake_queries, fake_downloader):
        fake_queries.add(LATEST, {"id": 456, "name": "V1.0"})
        fake_queries.add(DETAILS, {"links": {"source": "https://github.com/me/Repo"}})
        _github_release(fake_queries, tag="v1.0")

        assert source.acquire(plugin) is not None

    def test_no_github_link(self, source, plugin, fake_queries):
        fake_queries.add(DETAILS, {"links": {"discord": "https://discord.gg/x"}})
        assert source.acquire(plugin) is None

    def test_no_github_release(self, source, plugin, fake_queries, plugin_log):
        fake_queries.add(DETAILS, {"links": {"source": "https://github.com/me/Repo"}})
        fake_queries.add(GITHUB, [])

        assert source.acquire(plugin) is None
        assert f"manually download it from Spigot: {DOWNLOAD}" in plugin_log.text

    def test_other_status_does_not_fall_back(self, source, plugin, fake_downloader, fake_queries):
        fake_downloader.payloads[DOWNLOAD] = HTTPError("nope", status_code=404, url=DOWNLOAD)

        assert source.acquire(plugin) is None
        assert all(call["url"] != DETAILS for call in fake_queries.calls)
