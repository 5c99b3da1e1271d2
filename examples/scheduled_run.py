#!/usr/bin/env python3
"""
Scheduled harvest example for `wu_harvester`.

Shows the library call a scheduled task makes, plus a dry run that works on
any platform by supplying the conversion step and logging events instead of
writing them to the Windows event log.

Requirements (real run):
  - Windows 10 / Server 2016 or later
  - Python 3.8+ with pywin32
"""

from __future__ import annotations

import logging
import os
import sys
import time
import tempfile
from pathlib import Path
from typing import Sequence

from wu_harvester import (
    DEFAULT_SOURCE_DIR,
    HarvesterConfig,
    LoggingEventRecorder,
    run,
)
from wu_harvester.exceptions import HarvesterError


def example_1_scheduled_run() -> int:
    """The call a scheduled task makes on a Windows host."""
    config = HarvesterConfig.create(
        source_dir=DEFAULT_SOURCE_DIR,
        watermark_path=r"C:\ProgramData\wu_harvester\watermark.txt",
        output_path=r"C:\Logs\WindowsUpdate.log",
        event_source="WindowsUpdateHarvester",
        min_build=14393,
        timeout=900,
    )

    try:
        summary = run(config)
    except HarvesterError as e:
        print(f"Harvest failed: {e}")
        return 1

    print(summary.message)
    return 0


def example_2_dry_run() -> None:
    """Run against a scratch directory with a stand-in conversion step."""

    def concatenate(files: Sequence[Path], output_path: Path) -> None:
        output_path.write_text(
            "\n".join(f"decoded {f.name}" for f in files), encoding="utf-8"
        )

    with tempfile.TemporaryDirectory() as tmp:
        work = Path(tmp)
        source_dir = work / "WindowsUpdate"
        source_dir.mkdir()
        etl = source_dir / "WindowsUpdate.20240601.etl"
        etl.write_bytes(b"etl")
        an_hour_ago = time.time() - 3600
        os.utime(etl, (an_hour_ago, an_hour_ago))

        config = HarvesterConfig.create(
            source_dir=source_dir,
            watermark_path=work / "watermark.txt",
            output_path=work / "WindowsUpdate.log",
            event_source="WindowsUpdateHarvester",
        )
        recorder = LoggingEventRecorder()

        first = run(config, recorder=recorder, converter=concatenate)
        second = run(config, recorder=recorder, converter=concatenate)

        print(f"First run:  {first.message}")
        print(f"Second run: {second.message}")
        for event in recorder.records:
            print(f"  [{event.event_id}] {event.severity.value}: {event.message}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    if sys.platform == "win32" and "--real" in sys.argv:
        sys.exit(example_1_scheduled_run())
    example_2_dry_run()
