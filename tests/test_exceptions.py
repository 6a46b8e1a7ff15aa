"""
Tests for the plugin-updater exception hierarchy.
"""

import pytest

from plugin_updater.exceptions import (
    ConfigurationError,
    DownloadError,
    FileOperationError,
    HTTPError,
    IntegrityError,
    NotFoundError,
    ResolutionError,
    UpdaterError,
)

pytestmark = [pytest.mark.unit, pytest.mark.infrastructure]


class TestUpdaterError:
    """Test base UpdaterError exception."""

    def test_basic_message(self):
        """Test basic error message."""
        error = UpdaterError("Something went wrong")
        assert str(error) == "Something went wrong"
        assert error.message == "Something went wrong"
        assert error.details is None

    def test_message_with_details(self):
        """Test error message with additional details."""
        error = UpdaterError("Operation failed", details="Connection timeout")
        assert str(error) == "Operation failed - Connection timeout"


class TestHierarchy:
    """Every custom error can be caught as UpdaterError."""

    @pytest.mark.parametrize(
        "error",
        [
            ConfigurationError("bad"),
            ResolutionError("bad"),
            NotFoundError("bad"),
            DownloadError("bad"),
            HTTPError("bad"),
            IntegrityError("bad"),
            FileOperationError("bad"),
        ],
    )
    def test_is_updater_error(self, error):
        assert isinstance(error, UpdaterError)

    def test_not_found_is_resolution_error(self):
        assert issubclass(NotFoundError, ResolutionError)

    def test_download_errors(self):
        assert issubclass(HTTPError, DownloadError)
        assert issubclass(IntegrityError, DownloadError)


class TestDownloadErrors:
    """Test attributes of download errors."""

    def test_http_error(self):
        error = HTTPError("Download failed", status_code=503, url="https://x/y")
        assert error.status_code == 503
        assert error.url == "https://x/y"

    def test_integrity_error_details(self):
        error = IntegrityError("mismatch", expected="abc", actual="def")
        assert error.expected == "abc"
        assert error.actual == "def"
        assert str(error) == "mismatch - expected abc, got def"

    def test_file_operation_error_path(self, tmp_path):
        error = FileOperationError("move failed", path=tmp_path, details="denied")
        assert error.path == tmp_path
        assert str(error) == "move failed - denied"
