"""Command-line interface for the Windows Update log harvester.

Intended to be launched by a scheduler (for example a Task Scheduler job set
to "do not start a new instance"). A failed run exits non-zero so the
scheduler records the failure.
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from .config import (
    DEFAULT_EVENT_LOG,
    DEFAULT_LOOKBACK_DAYS,
    DEFAULT_SOURCE_DIR,
    HarvesterConfig,
)
from .events import RECORDER_KINDS, get_recorder
from .exceptions import (
    ConfigurationError,
    ConversionError,
    HarvesterError,
    PlatformNotSupportedError,
    PowerShellNotFoundError,
)
from .harvester import run
from . import __version__


# Status symbols
SYMBOL_SUCCESS = "[+]"
SYMBOL_FAILURE = "[X]"
SYMBOL_SKIPPED = "[-]"


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbose: If True, enable DEBUG level logging.
        quiet: If True, suppress all logging except errors.
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level, format="%(levelname)s: %(message)s", stream=sys.stderr
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wu-harvester",
        description=(
            "Convert Windows Update trace logs modified since the last run "
            "into a readable text log"
        ),
        epilog="""
Examples:
  %(prog)s C:\\Windows\\Logs\\WindowsUpdate C:\\ProgramData\\wu\\watermark.txt ^
      C:\\Logs\\WindowsUpdate.log WindowsUpdateHarvester
  %(prog)s SRC WATERMARK OUT SOURCE --min-build 14393 --timeout 600
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    parser.add_argument(
        "source_dir",
        help=f"Directory containing .etl trace files (normally {DEFAULT_SOURCE_DIR})",
    )
    parser.add_argument("watermark_file", help="File storing the last run time")
    parser.add_argument("output_log", help="Text log to regenerate")
    parser.add_argument("event_source", help="Event-log source name for run events")

    parser.add_argument(
        "--min-build",
        type=int,
        metavar="BUILD",
        help="Skip the run on OS builds older than this",
    )

    parser.add_argument(
        "--lookback-days",
        type=int,
        default=DEFAULT_LOOKBACK_DAYS,
        metavar="DAYS",
        help=(
            f"Lookback when no watermark is stored (default: {DEFAULT_LOOKBACK_DAYS})"
        ),
    )

    parser.add_argument(
        "-t",
        "--timeout",
        type=int,
        metavar="SECONDS",
        help="Conversion timeout (default: wait indefinitely)",
    )

    parser.add_argument(
        "--event-log",
        default=DEFAULT_EVENT_LOG,
        metavar="NAME",
        help=f"Event log to register the source in (default: {DEFAULT_EVENT_LOG})",
    )

    parser.add_argument(
        "--recorder",
        choices=RECORDER_KINDS,
        default="auto",
        help="Where run events are written (default: auto)",
    )

    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output"
    )

    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Only log errors"
    )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the CLI tool.

    Args:
        argv: Optional argument list to parse instead of sys.argv.

    Returns:
        Exit code: 0 for success (including a skipped run), 1 for failure.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose and args.quiet:
        print("Error: Cannot use --verbose and --quiet together", file=sys.stderr)
        return 1

    setup_logging(verbose=args.verbose, quiet=args.quiet)
    logger = logging.getLogger(__name__)

    try:
        config = HarvesterConfig.create(
            source_dir=args.source_dir,
            watermark_path=args.watermark_file,
            output_path=args.output_log,
            event_source=args.event_source,
            min_build=args.min_build,
            lookback_days=args.lookback_days,
            timeout=args.timeout,
            event_log=args.event_log,
        )
    except ConfigurationError as e:
        print(f"{SYMBOL_FAILURE} Error: {e}", file=sys.stderr)
        return 1

    try:
        recorder = get_recorder(args.recorder, log_type=config.event_log)
        summary = run(config, recorder=recorder)
    except PlatformNotSupportedError as e:
        print(f"{SYMBOL_FAILURE} Error: {e}", file=sys.stderr)
        logger.error("Platform not supported")
        return 1
    except PowerShellNotFoundError as e:
        print(f"{SYMBOL_FAILURE} Error: {e}", file=sys.stderr)
        logger.error("PowerShell not found")
        return 1
    except ConversionError as e:
        print(f"{SYMBOL_FAILURE} Conversion failed: {e}", file=sys.stderr)
        return 1
    except HarvesterError as e:
        print(f"{SYMBOL_FAILURE} Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"{SYMBOL_FAILURE} Unexpected error: {e}", file=sys.stderr)
        logger.exception("Unexpected error during harvest")
        return 1

    if summary.skipped:
        print(f"{SYMBOL_SKIPPED} Skipped: OS build is below {config.min_build}")
        return 0

    print(f"{SYMBOL_SUCCESS} {summary.message}")
    if args.verbose:
        for path in summary.files:
            logger.debug(f"Converted: {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
