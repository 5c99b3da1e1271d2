"""Custom exceptions for the Windows Update log harvester.

This module defines the exception hierarchy used throughout the harvester to
signal platform problems, invalid configuration and failures of the external
conversion and event-log facilities.
"""

from __future__ import annotations

from typing import Optional


class HarvesterError(Exception):
    """Base exception for all harvester errors.

    All custom exceptions in this package inherit from this base class,
    allowing callers to catch every harvester-related error with a single
    except block.
    """

    pass


class PlatformNotSupportedError(HarvesterError):
    """Raised when a Windows-only facility is used on another platform.

    Get-WindowsUpdateLog and the Windows event log only exist on Windows.
    """

    def __init__(self, platform: str) -> None:
        """Initialize the exception with the detected platform.

        Args:
            platform: The name of the detected operating system platform.
        """
        self.platform = platform
        super().__init__(
            f"Windows Update log conversion is only supported on Windows. "
            f"Current platform: {platform}"
        )


class PowerShellNotFoundError(HarvesterError):
    """Raised when neither powershell nor pwsh can be found on PATH."""

    def __init__(self) -> None:
        super().__init__(
            "PowerShell not found. Ensure powershell.exe (or pwsh) is installed "
            "and available in the system PATH."
        )


class ConfigurationError(HarvesterError):
    """Raised when harvester configuration values are invalid."""

    pass


class FileValidationError(HarvesterError):
    """Raised when a source directory or output location is unusable.

    This can occur when:
    - The source directory does not exist or is not a directory
    - The output log's parent directory does not exist
    - The output path points at a directory
    """

    pass


class WatermarkError(HarvesterError):
    """Raised when the watermark store cannot be written.

    Reading is always recoverable: a missing or corrupt store falls back to
    the default lookback and never raises this error.
    """

    def __init__(self, path: str, details: Optional[str] = None) -> None:
        self.path = path
        self.details = details
        message = f"Cannot write watermark file: {path}"
        if details:
            message += f" ({details})"
        super().__init__(message)


class ConversionError(HarvesterError):
    """Raised when the Get-WindowsUpdateLog conversion fails.

    Captures the PowerShell exit code and stderr output when available.
    """

    def __init__(
        self,
        message: str,
        return_code: Optional[int] = None,
        stderr: Optional[str] = None,
    ) -> None:
        """Initialize the conversion error with execution details.

        Args:
            message: Human-readable error description.
            return_code: The exit code returned by PowerShell (if available).
            stderr: Error output from PowerShell (if available).
        """
        self.return_code = return_code
        self.stderr = stderr

        error_parts = [message]
        if return_code is not None:
            error_parts.append(f"Return code: {return_code}")
        if stderr:
            error_parts.append(f"Error output: {stderr}")

        super().__init__(" | ".join(error_parts))


class EventRecorderError(HarvesterError):
    """Raised when an event cannot be appended to the event log."""

    def __init__(self, source: str, event_id: int, details: Optional[str] = None):
        self.source = source
        self.event_id = event_id
        message = f"Failed to write event {event_id} for source '{source}'"
        if details:
            message += f": {details}"
        super().__init__(message)
