import hashlib

import pytest
import requests
from conftest import make_response

from plugin_updater import utils
from plugin_updater.exceptions import DownloadError, HTTPError, IntegrityError

pytestmark = [pytest.mark.unit, pytest.mark.infrastructure]


class TestGetUserAgent:
    """Test get_user_agent function."""

    def setup_method(self):
        utils._USER_AGENT_CACHE = None

    def teardown_method(self):
        utils._USER_AGENT_CACHE = None

    def test_includes_installed_version(self, mocker):
        mocker.patch("importlib.metadata.version", return_value="1.2.3")
        assert utils.get_user_agent() == "plugin-updater/1.2.3"

    def test_unknown_when_not_installed(self, mocker):
        import importlib.metadata

        mocker.patch(
            "importlib.metadata.version",
            side_effect=importlib.metadata.PackageNotFoundError,
        )
        assert utils.get_user_agent() == "plugin-updater/unknown"

    def test_is_cached(self, mocker):
        version = mocker.patch("importlib.metadata.version", return_value="1.0")
        utils.get_user_agent()
        utils.get_user_agent()
        assert version.call_count == 1


class TestChecksums:
    """Test calculate_digest and verify_checksum."""

    def test_calculate_digest(self, tmp_path):
        path = tmp_path / "a.jar"
        path.write_bytes(b"content")
        assert utils.calculate_digest(path, "sha1") == hashlib.sha1(b"content").hexdigest()
        assert utils.calculate_digest(path, "MD5") == hashlib.md5(b"content").hexdigest()

    def test_calculate_digest_unknown_algorithm(self, tmp_path):
        path = tmp_path / "a.jar"
        path.write_bytes(b"content")
        assert utils.calculate_digest(path, "nope") is None

    def test_verify_checksum_accepts_uppercase(self, tmp_path):
        path = tmp_path / "a.jar"
        path.write_bytes(b"content")
        utils.verify_checksum(path, "md5", hashlib.md5(b"content").hexdigest().upper())
        assert path.exists()

    def test_verify_checksum_mismatch_removes_file(self, tmp_path):
        path = tmp_path / "a.jar"
        path.write_bytes(b"content")
        with pytest.raises(IntegrityError) as excinfo:
            utils.verify_checksum(path, "sha1", "0" * 40, url="https://x/a.jar")
        assert excinfo.value.expected == "0" * 40
        assert excinfo.value.actual == hashlib.sha1(b"content").hexdigest()
        assert not path.exists()


class TestDownloadFile:
    """Test download_file function."""

    def test_streams_body_to_destination(self, tmp_path, fake_session):
        fake_session.get.return_value = make_response(content=b"jar-bytes")
        destination = tmp_path / "dl" / "Plugin-1.0.jar"

        result = utils.download_file(
            "https://x/p.jar", destination, headers={"Accept": "a"}, session=fake_session
        )

        assert result == destination
        assert destination.read_bytes() == b"jar-bytes"
        _, kwargs = fake_session.get.call_args
        assert kwargs["stream"] is True
        assert kwargs["headers"]["Accept"] == "a"
        assert "User-Agent" in kwargs["headers"]
        assert list(destination.parent.iterdir()) == [destination]

    def test_replaces_existing_file(self, tmp_path, fake_session):
        destination = tmp_path / "Plugin.jar"
        destination.write_bytes(b"old")
        fake_session.get.return_value = make_response(content=b"new")

        utils.download_file("https://x/p.jar", destination, session=fake_session)
        assert destination.read_bytes() == b"new"

    def test_http_error_status(self, tmp_path, fake_session):
        fake_session.get.return_value = make_response(status_code=503)
        destination = tmp_path / "Plugin.jar"

        with pytest.raises(HTTPError) as excinfo:
            utils.download_file("https://x/p.jar", destination, session=fake_session)

        assert excinfo.value.status_code == 503
        assert not destination.exists()
        assert list(tmp_path.iterdir()) == []

    def test_request_exception(self, tmp_path, fake_session):
        fake_session.get.side_effect = requests.Timeout("slow")

        with pytest.raises(DownloadError) as excinfo:
            utils.download_file("https://x/p.jar", tmp_path / "p.jar", session=fake_session)
        assert excinfo.value.url == "https://x/p.jar"

    def test_interrupted_stream_leaves_no_partial_file(self, tmp_path, fake_session):
        response = make_response()
        response.iter_content.side_effect = requests.ConnectionError("reset")
        fake_session.get.return_value = response

        with pytest.raises(DownloadError):
            utils.download_file("https://x/p.jar", tmp_path / "p.jar", session=fake_session)
        assert list(tmp_path.iterdir()) == []
        response.close.assert_called_once()

    def test_does_not_close_passed_session(self, tmp_path, fake_session):
        fake_session.get.return_value = make_response(content=b"x")
        utils.download_file("https://x/p.jar", tmp_path / "p.jar", session=fake_session)
        fake_session.close.assert_not_called()
