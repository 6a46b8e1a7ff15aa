"""
Custom exceptions for plugin-updater.

Every error raised on purpose by the updater derives from UpdaterError so the
pipeline can catch a single type per plugin and keep going with the next one.
"""

from pathlib import Path


class UpdaterError(Exception):
    """
    Base exception for all plugin-updater errors.

    All custom exceptions should inherit from this class to allow for easy
    catching of all application-specific errors.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        """
        Initialize the exception.

        Args:
            message: The primary error message.
            details: Optional additional context about the error.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(UpdaterError):
    """
    Exception raised when configuration is invalid or incomplete.

    This includes:
    - Missing required plugin parameters
    - References to unknown sources
    - Duplicate source names
    - Invalid source settings
    """

    pass


# =============================================================================
# Resolution Errors
# =============================================================================


class ResolutionError(UpdaterError):
    """
    Exception raised when a source response cannot be turned into a release.

    This includes malformed URLs, unparsable JSON and invalid regex or
    JSON path expressions.
    """

    pass


class NotFoundError(ResolutionError):
    """Exception raised when a source has no downloadable artifact."""

    pass


# =============================================================================
# Download Errors
# =============================================================================


class DownloadError(UpdaterError):
    """
    Base exception for download-related errors.

    Attributes:
        url: The URL that was being downloaded when the error occurred.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.url = url


class HTTPError(DownloadError):
    """
    Exception raised when a download answers with a non-200 status.

    Attributes:
        status_code: The HTTP status code returned by the server.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        url: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, url=url, details=details)
        self.status_code = status_code


class IntegrityError(DownloadError):
    """
    Exception raised when a downloaded file does not match its published checksum.

    Attributes:
        expected: The digest announced by the source.
        actual: The digest computed from the downloaded file.
    """

    def __init__(
        self,
        message: str,
        expected: str | None = None,
        actual: str | None = None,
        url: str | None = None,
    ) -> None:
        super().__init__(
            message, url=url, details=f"expected {expected}, got {actual}"
        )
        self.expected = expected
        self.actual = actual


# =============================================================================
# File Operation Errors
# =============================================================================


class FileOperationError(UpdaterError):
    """
    Exception raised when moving, linking or extracting a file fails.

    Attributes:
        path: The file path involved in the failed operation.
    """

    def __init__(
        self,
        message: str,
        path: Path | str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.path = path
