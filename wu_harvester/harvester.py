"""Incremental harvesting of Windows Update trace logs.

A run converts only the trace files modified since the previous successful
run. The time of that run is kept in the watermark file; it is read at the
start of a run and overwritten once the conversion has succeeded.

Run outline:
    1. skip entirely when the OS build is below the configured minimum
    2. make sure the event source is registered (best effort)
    3. resolve the watermark, falling back to the lookback window
    4. capture the run start time, then select files newer than the watermark
    5. convert the selection in one call (skipped when nothing is new)
    6. store the run start time as the new watermark
    7. report a run summary event

Any error in steps 3-7 is recorded as an error event and re-raised. The
watermark is left untouched, so the next run retries the same window.
"""

from __future__ import annotations

import logging
import traceback
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .config import HarvesterConfig
from .converter import Converter, convert_update_logs
from .events import (
    EVENT_FATAL_ERROR,
    EVENT_INVALID_WATERMARK,
    EVENT_MISSING_WATERMARK,
    EVENT_RUN_SUMMARY,
    EventRecorder,
    get_recorder,
)
from .utils import (
    get_os_build,
    list_source_files,
    meets_min_build,
    select_new_files,
)
from .watermark import (
    WatermarkStatus,
    format_watermark,
    read_watermark,
    write_watermark,
)

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    """Outcome of a harvester run.

    Attributes:
        files_processed: Number of trace files passed to the conversion.
        previous_watermark: Watermark in effect before the run (None if skipped).
        new_watermark: Watermark stored by the run (None if skipped).
        watermark_status: How the previous watermark was obtained.
        files: Trace files passed to the conversion, in discovery order.
        skipped: True when the OS build gate skipped the run.
    """

    files_processed: int
    previous_watermark: Optional[datetime] = None
    new_watermark: Optional[datetime] = None
    watermark_status: Optional[WatermarkStatus] = None
    files: List[Path] = field(default_factory=list)
    skipped: bool = False

    @property
    def message(self) -> str:
        """Text of the run summary event."""
        if self.skipped or self.previous_watermark is None:
            return "Windows Update log harvest skipped."
        return (
            f"Processed {self.files_processed} Windows Update log file(s) "
            f"modified since {format_watermark(self.previous_watermark)}."
        )


def _watermark_warning(
    config: HarvesterConfig, status: WatermarkStatus, detail: Optional[str]
) -> Tuple[int, str]:
    if status == WatermarkStatus.MISSING:
        return EVENT_MISSING_WATERMARK, (
            f"Watermark file {config.watermark_path} not found. "
            f"Processing files from the last {config.lookback_days} days."
        )
    return EVENT_INVALID_WATERMARK, (
        f"Watermark file {config.watermark_path} has invalid content ({detail}). "
        f"Processing files from the last {config.lookback_days} days."
    )


def _default_converter(timeout: Optional[int]) -> Converter:
    def convert(files, output_path):
        return convert_update_logs(files, output_path, timeout=timeout)

    return convert


def run(
    config: HarvesterConfig,
    *,
    recorder: Optional[EventRecorder] = None,
    converter: Optional[Converter] = None,
    build_provider: Optional[Callable[[], int]] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> RunSummary:
    """Convert the trace files modified since the last successful run.

    Args:
        config: Run configuration.
        recorder: Event sink. Defaults to the platform's recorder.
        converter: Called once as ``converter(files, output_path)`` when there
                   are new files. Defaults to Get-WindowsUpdateLog.
        build_provider: Returns the current OS build number.
        clock: Returns the current local time.

    Returns:
        RunSummary for the run.

    Raises:
        HarvesterError: If conversion or the watermark commit fails. The
                        failure is recorded as an error event first.
        Exception: Any other unexpected error, recorded the same way.

    Example:
        >>> config = HarvesterConfig.create(
        ...     r"C:\\Windows\\Logs\\WindowsUpdate",
        ...     r"C:\\ProgramData\\wu_harvester\\watermark.txt",
        ...     r"C:\\Logs\\WindowsUpdate.log",
        ...     "WindowsUpdateHarvester",
        ... )
        >>> summary = run(config)
        >>> print(summary.message)
    """
    build_provider = build_provider or get_os_build
    clock = clock or datetime.now

    if config.min_build is not None:
        current_build = build_provider()
        if not meets_min_build(current_build, config.min_build):
            logger.info(
                "OS build %d is below minimum %d, skipping run",
                current_build,
                config.min_build,
            )
            return RunSummary(files_processed=0, skipped=True)

    if recorder is None:
        recorder = get_recorder("auto", log_type=config.event_log)
    if converter is None:
        converter = _default_converter(config.timeout)

    source = config.event_source
    recorder.ensure_source_registered(source)

    try:
        resolved = read_watermark(
            config.watermark_path, clock(), config.lookback_days
        )
        if resolved.is_default:
            event_id, message = _watermark_warning(
                config, resolved.status, resolved.detail
            )
            recorder.warning(source, event_id, message)

        # Files modified while the conversion runs stay newer than this.
        run_started = clock().replace(microsecond=0)

        candidates = select_new_files(
            list_source_files(config.source_dir), resolved.value
        )
        paths = [c.path for c in candidates]
        logger.info(
            "Found %d file(s) in %s modified since %s",
            len(paths),
            config.source_dir,
            format_watermark(resolved.value),
        )

        if paths:
            converter(paths, config.output_path)
        else:
            logger.info("No new Windows Update trace files, skipping conversion")

        write_watermark(config.watermark_path, run_started)

        summary = RunSummary(
            files_processed=len(paths),
            previous_watermark=resolved.value,
            new_watermark=run_started,
            watermark_status=resolved.status,
            files=paths,
        )
        recorder.info(source, EVENT_RUN_SUMMARY, summary.message)
        return summary

    except Exception as e:
        logger.error("Windows Update log harvest failed: %s", e)
        detail = "".join(traceback.format_exception(type(e), e, e.__traceback__))
        try:
            recorder.error(
                source,
                EVENT_FATAL_ERROR,
                f"Windows Update log harvest failed: {type(e).__name__}: {e}\n"
                f"{detail}",
            )
        except Exception:
            logger.exception("Could not record harvest failure event")
        raise
