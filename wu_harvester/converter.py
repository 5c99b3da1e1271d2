"""Conversion of binary Windows Update trace files into a text log.

This module wraps the PowerShell Get-WindowsUpdateLog cmdlet, which decodes
Windows Update ETW trace files (.etl) and writes a single readable log:
    Get-WindowsUpdateLog -ETLPath 'a.etl','b.etl' -LogPath 'WindowsUpdate.log'

The output log is regenerated in full on every call; it is never appended to.
"""

import logging
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from .exceptions import ConversionError, FileValidationError
from .utils import check_platform, find_powershell

logger = logging.getLogger(__name__)

# Callable shape the harvester invokes: (source files, output log) -> anything
Converter = Callable[[Sequence[Path], Path], object]


@dataclass
class ConversionResult:
    """Result of one Get-WindowsUpdateLog invocation.

    Attributes:
        output_file: Path of the regenerated text log.
        source_count: Number of trace files passed to the cmdlet.
        duration_seconds: Time taken by the conversion in seconds.
    """

    output_file: Path
    source_count: int
    duration_seconds: float


def _quote(value: Union[str, Path]) -> str:
    """Quote a value as a PowerShell single-quoted literal."""
    return "'" + str(value).replace("'", "''") + "'"


def build_command(
    powershell: str, files: Sequence[Path], output_path: Path
) -> List[str]:
    """Build the PowerShell command line for a conversion.

    Args:
        powershell: PowerShell executable.
        files: Trace files to decode.
        output_path: Text log to write.

    Returns:
        Argument list suitable for subprocess.run.

    Example:
        >>> build_command("powershell", [Path("a.etl")], Path("out.log"))
        ['powershell', '-NoProfile', '-NonInteractive', '-Command',
         "Get-WindowsUpdateLog -ETLPath 'a.etl' -LogPath 'out.log'"]
    """
    etl_paths = ",".join(_quote(p) for p in files)
    script = (
        f"Get-WindowsUpdateLog -ETLPath {etl_paths} -LogPath {_quote(output_path)}"
    )
    return [powershell, "-NoProfile", "-NonInteractive", "-Command", script]


def validate_output_path(output_path: Path) -> None:
    """Check that the output log can be created.

    Raises:
        FileValidationError: If the parent directory is missing or the path
                             is a directory.
    """
    if not output_path.parent.exists():
        raise FileValidationError(
            f"Output directory does not exist: {output_path.parent}"
        )

    if output_path.exists() and output_path.is_dir():
        raise FileValidationError(f"Output path is a directory: {output_path}")


def convert_update_logs(
    files: Sequence[Union[str, Path]],
    output_path: Union[str, Path],
    timeout: Optional[int] = None,
) -> ConversionResult:
    """Decode Windows Update trace files into a single text log.

    Args:
        files: Trace files to decode. Must not be empty.
        output_path: Text log to (re)generate.
        timeout: Maximum time in seconds to wait for PowerShell. None waits
                 until the cmdlet finishes.

    Returns:
        ConversionResult describing the generated log.

    Raises:
        ValueError: If no files are given.
        PlatformNotSupportedError: If not running on Windows.
        PowerShellNotFoundError: If PowerShell is not available.
        FileValidationError: If the output location is unusable.
        ConversionError: If the cmdlet fails, times out or produces no output.

    Example:
        >>> result = convert_update_logs(
        ...     [Path(r"C:\\Windows\\Logs\\WindowsUpdate\\WindowsUpdate.20240601.etl")],
        ...     Path(r"C:\\Logs\\WindowsUpdate.log"),
        ... )
        >>> print(result.duration_seconds)
    """
    source_paths = [Path(f) for f in files]
    if not source_paths:
        raise ValueError("At least one trace file is required")

    output = Path(output_path)

    check_platform()
    powershell = find_powershell()
    validate_output_path(output)

    command = build_command(powershell, source_paths, output)
    logger.debug("Running %s", command)

    start_time = time.time()
    try:
        subprocess.run(
            command, capture_output=True, text=True, timeout=timeout, check=True
        )
    except subprocess.TimeoutExpired as e:
        raise ConversionError(
            f"Get-WindowsUpdateLog timed out after {timeout} seconds"
        ) from e
    except subprocess.CalledProcessError as e:
        stderr = e.stderr.strip() if e.stderr else None
        raise ConversionError(
            "Get-WindowsUpdateLog failed", return_code=e.returncode, stderr=stderr
        ) from e
    except OSError as e:
        raise ConversionError(f"Could not start PowerShell: {e}") from e

    duration = time.time() - start_time

    if not output.exists():
        raise ConversionError(
            f"Output log was not created by Get-WindowsUpdateLog: {output}"
        )

    logger.info(
        "Converted %d trace file(s) to %s in %.2fs",
        len(source_paths),
        output,
        duration,
    )
    return ConversionResult(
        output_file=output,
        source_count=len(source_paths),
        duration_seconds=duration,
    )
