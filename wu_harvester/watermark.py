"""Watermark persistence for incremental harvesting.

The watermark is the time of the last successful run. It is stored as a single
line of text in a one-value file; trace files modified after it are the ones
the next run converts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Optional

from .exceptions import WatermarkError

logger = logging.getLogger(__name__)

WATERMARK_FORMAT = "%Y-%m-%d %H:%M:%S"

# Host-default (en-US) rendering written by earlier deployments.
LEGACY_WATERMARK_FORMATS = ("%m/%d/%Y %I:%M:%S %p", "%m/%d/%Y %H:%M:%S")


class WatermarkStatus(Enum):
    """How the watermark for a run was obtained.

    Attributes:
        OK: Parsed from the watermark file.
        MISSING: The file does not exist; the default lookback was used.
        INVALID: The file could not be read or parsed; the default was used.
    """

    OK = "ok"
    MISSING = "missing"
    INVALID = "invalid"


@dataclass
class WatermarkRead:
    """Result of resolving the watermark at the start of a run."""

    value: datetime
    status: WatermarkStatus
    detail: Optional[str] = None

    @property
    def is_default(self) -> bool:
        return self.status != WatermarkStatus.OK


def format_watermark(value: datetime) -> str:
    """Render a watermark the way it is stored on disk."""
    return value.strftime(WATERMARK_FORMAT)


def parse_watermark(text: str) -> datetime:
    """Parse stored watermark text.

    Accepts ``YYYY-MM-DD HH:MM:SS``, the US host format left by earlier
    deployments (``1/1/2024 12:00:00 AM``) and, for hand-edited files, any
    ISO-8601 timestamp. Aware timestamps are converted to local naive time so they
    compare with file modification times.

    Raises:
        ValueError: If the text is empty or not a timestamp.
    """
    value = text.strip()
    if not value:
        raise ValueError("watermark is empty")

    for fmt in (WATERMARK_FORMAT, *LEGACY_WATERMARK_FORMATS):
        try:
            parsed = datetime.strptime(value, fmt)
            break
        except ValueError:
            continue
    else:
        parsed = datetime.fromisoformat(value)

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def default_watermark(now: datetime, lookback_days: int = 60) -> datetime:
    """Watermark used when none is stored: ``now`` minus the lookback."""
    return now - timedelta(days=lookback_days)


def read_watermark(
    path: Path, now: datetime, lookback_days: int = 60
) -> WatermarkRead:
    """Resolve the watermark from its store.

    A missing or corrupt store is not an error: the default lookback is used
    and the returned status says why.

    Args:
        path: Watermark file.
        now: Current time, used for the default.
        lookback_days: Age of the default watermark.

    Returns:
        WatermarkRead with the value and how it was obtained.
    """
    if not path.exists():
        logger.warning(
            "Watermark file %s not found, looking back %d days", path, lookback_days
        )
        return WatermarkRead(
            value=default_watermark(now, lookback_days),
            status=WatermarkStatus.MISSING,
        )

    try:
        value = parse_watermark(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, ValueError) as e:
        logger.warning("Invalid watermark file %s: %s", path, e)
        return WatermarkRead(
            value=default_watermark(now, lookback_days),
            status=WatermarkStatus.INVALID,
            detail=str(e),
        )

    logger.debug("Found watermark %s in %s", format_watermark(value), path)
    return WatermarkRead(value=value, status=WatermarkStatus.OK)


def write_watermark(path: Path, value: datetime) -> None:
    """Overwrite the watermark store with a new value.

    Raises:
        WatermarkError: If the file cannot be written.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(format_watermark(value), encoding="utf-8")
    except OSError as e:
        raise WatermarkError(str(path), str(e)) from e

    logger.info("Saved watermark %s to %s", format_watermark(value), path)
