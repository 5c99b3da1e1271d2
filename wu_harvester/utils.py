"""Utility functions for platform detection, validation, and file listing.

This module provides helper functions used throughout the harvester for
platform checks, OS build detection and scanning the Windows Update log
directory for candidate trace files.
"""

import logging
import os
import platform
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from .exceptions import (
    FileValidationError,
    PlatformNotSupportedError,
    PowerShellNotFoundError,
)

logger = logging.getLogger(__name__)

POWERSHELL_EXECUTABLES = ("powershell", "pwsh")


@dataclass
class SourceFile:
    """A file found in the source directory.

    Attributes:
        path: Full path to the file.
        modified: Last modification time as a local naive datetime.
    """

    path: Path
    modified: datetime


def check_platform() -> None:
    """Verify that the current platform is Windows.

    Raises:
        PlatformNotSupportedError: If the current platform is not Windows.

    Example:
        >>> check_platform()  # On Windows - no exception
        >>> check_platform()  # On Linux - raises PlatformNotSupportedError
    """
    current_platform = platform.system()
    if current_platform != "Windows":
        raise PlatformNotSupportedError(current_platform)


def find_powershell() -> str:
    """Locate a PowerShell executable on PATH.

    Windows PowerShell is preferred because Get-WindowsUpdateLog ships with it;
    PowerShell 7 (pwsh) is accepted as a fallback.

    Returns:
        The resolved path of the PowerShell executable.

    Raises:
        PowerShellNotFoundError: If no PowerShell executable can be found.
    """
    for name in POWERSHELL_EXECUTABLES:
        resolved = shutil.which(name)
        if resolved is not None:
            return resolved
    raise PowerShellNotFoundError()


def get_os_build() -> int:
    """Return the build number of the running operating system.

    On Windows ``platform.version()`` looks like ``10.0.17763``; the third
    component is the build. Returns 0 when no build can be determined, so a
    configured minimum build always gates an unknown system out.
    """
    parts = platform.version().split(".")
    if len(parts) < 3:
        return 0
    try:
        return int(parts[2])
    except ValueError:
        return 0


def meets_min_build(current: int, minimum: Optional[int]) -> bool:
    """Check whether the current build satisfies an optional minimum."""
    if minimum is None:
        return True
    return current >= minimum


def validate_source_dir(directory: Path) -> None:
    """Validate that the source directory exists and is a directory.

    Raises:
        FileValidationError: If the directory is missing or not a directory.
    """
    if not directory.exists():
        raise FileValidationError(f"Source directory does not exist: {directory}")

    if not directory.is_dir():
        raise FileValidationError(f"Source path is not a directory: {directory}")


def list_source_files(directory: Path) -> List[SourceFile]:
    """List the files directly inside a directory with their modification times.

    Subdirectories are skipped and the listing is not recursive. Files are
    returned in the order the operating system enumerates them. A file deleted
    between enumeration and stat is skipped.

    Args:
        directory: Directory to scan.

    Returns:
        List of SourceFile entries.

    Raises:
        FileValidationError: If the directory does not exist or is not a directory.

    Example:
        >>> list_source_files(Path(r"C:\\Windows\\Logs\\WindowsUpdate"))
        [SourceFile(path=Path('...WindowsUpdate.20240601.etl'), modified=...)]
    """
    validate_source_dir(directory)

    files: List[SourceFile] = []
    with os.scandir(directory) as entries:
        for entry in entries:
            if not entry.is_file():
                continue
            try:
                stat = entry.stat()
            except FileNotFoundError:
                logger.debug("Skipping %s: removed during scan", entry.path)
                continue
            modified = datetime.fromtimestamp(stat.st_mtime)
            files.append(SourceFile(path=Path(entry.path), modified=modified))

    return files


def select_new_files(
    files: Iterable[SourceFile], watermark: datetime
) -> List[SourceFile]:
    """Keep only files modified strictly after the watermark.

    Discovery order is preserved.
    """
    return [f for f in files if f.modified > watermark]
