"""Run configuration for the harvester.

A HarvesterConfig is built once (by the CLI or by library callers) and passed
explicitly into :func:`wu_harvester.harvester.run`. It is never mutated while
a run is in progress.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .exceptions import ConfigurationError

DEFAULT_SOURCE_DIR = Path(r"C:\Windows\Logs\WindowsUpdate")
DEFAULT_LOOKBACK_DAYS = 60
DEFAULT_EVENT_LOG = "Application"


@dataclass(frozen=True)
class HarvesterConfig:
    """Settings for a single harvester run.

    Attributes:
        source_dir: Directory holding the binary Windows Update trace files.
        watermark_path: File storing the time of the last successful run.
        output_path: Text log regenerated by each conversion.
        event_source: Event-log source name that run events are reported under.
        min_build: Optional minimum OS build; older systems skip the run.
        lookback_days: Age of the default watermark when none is stored.
        timeout: Conversion timeout in seconds (None waits indefinitely).
        event_log: Event log the source is registered in.
    """

    source_dir: Path
    watermark_path: Path
    output_path: Path
    event_source: str
    min_build: Optional[int] = None
    lookback_days: int = DEFAULT_LOOKBACK_DAYS
    timeout: Optional[int] = None
    event_log: str = DEFAULT_EVENT_LOG

    @classmethod
    def create(
        cls,
        source_dir: Union[str, Path],
        watermark_path: Union[str, Path],
        output_path: Union[str, Path],
        event_source: str,
        min_build: Optional[int] = None,
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
        timeout: Optional[int] = None,
        event_log: str = DEFAULT_EVENT_LOG,
    ) -> "HarvesterConfig":
        """Build and validate a configuration from plain values.

        Raises:
            ConfigurationError: If any value is invalid.
        """
        config = cls(
            source_dir=Path(source_dir),
            watermark_path=Path(watermark_path),
            output_path=Path(output_path),
            event_source=event_source,
            min_build=min_build,
            lookback_days=lookback_days,
            timeout=timeout,
            event_log=event_log,
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Check value ranges.

        Raises:
            ConfigurationError: If any value is out of range.
        """
        if not self.event_source or not self.event_source.strip():
            raise ConfigurationError("Event source name must not be empty")

        if not self.event_log or not self.event_log.strip():
            raise ConfigurationError("Event log name must not be empty")

        if self.lookback_days <= 0:
            raise ConfigurationError(
                f"Lookback days must be positive. Got: {self.lookback_days}"
            )

        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError(f"Timeout must be positive. Got: {self.timeout}")

        if self.min_build is not None and self.min_build < 0:
            raise ConfigurationError(
                f"Minimum build must not be negative. Got: {self.min_build}"
            )
