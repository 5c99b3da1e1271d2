"""Windows Update log harvester - incremental conversion of update trace logs.

This library provides functionality to:
- Find Windows Update trace files (.etl) modified since the last run
- Convert them into a readable text log with Get-WindowsUpdateLog
- Persist the last run time (watermark) between scheduled runs
- Report run outcomes to the Windows event log

The library offers:
- A single run() entry point driven by an explicit HarvesterConfig
- Recovery from a missing or corrupt watermark file (60-day lookback)
- An optional minimum OS build gate
- Injectable conversion, event recording, clock and OS build providers

Basic Usage:
    Scheduled run:
        >>> from wu_harvester import HarvesterConfig, run
        >>> config = HarvesterConfig.create(
        ...     r"C:\\Windows\\Logs\\WindowsUpdate",
        ...     r"C:\\ProgramData\\wu_harvester\\watermark.txt",
        ...     r"C:\\Logs\\WindowsUpdate.log",
        ...     "WindowsUpdateHarvester",
        ... )
        >>> summary = run(config)
        >>> print(summary.message)

    Without Windows (events go to logging, conversion is supplied):
        >>> from wu_harvester import LoggingEventRecorder
        >>> summary = run(
        ...     config,
        ...     recorder=LoggingEventRecorder(),
        ...     converter=lambda files, out: out.write_text("converted"),
        ... )

Platform Requirements:
    - Conversion: Windows 10 / Server 2016 or later (Get-WindowsUpdateLog)
    - Event log: Windows with pywin32
    - Everything else: Cross-platform (Python 3.8+)
"""

from .config import (
    DEFAULT_EVENT_LOG,
    DEFAULT_LOOKBACK_DAYS,
    DEFAULT_SOURCE_DIR,
    HarvesterConfig,
)

from .converter import (
    ConversionResult,
    build_command,
    convert_update_logs,
)

from .events import (
    EVENT_FATAL_ERROR,
    EVENT_INVALID_WATERMARK,
    EVENT_MISSING_WATERMARK,
    EVENT_RUN_SUMMARY,
    EventRecorder,
    EventSeverity,
    LoggingEventRecorder,
    RecordedEvent,
    WindowsEventRecorder,
    get_recorder,
)

from .exceptions import (
    HarvesterError,
    PlatformNotSupportedError,
    PowerShellNotFoundError,
    ConfigurationError,
    FileValidationError,
    WatermarkError,
    ConversionError,
    EventRecorderError,
)

from .harvester import RunSummary, run

from .utils import (
    SourceFile,
    check_platform,
    find_powershell,
    get_os_build,
    list_source_files,
    meets_min_build,
    select_new_files,
    validate_source_dir,
)

from .watermark import (
    WATERMARK_FORMAT,
    WatermarkRead,
    WatermarkStatus,
    default_watermark,
    format_watermark,
    parse_watermark,
    read_watermark,
    write_watermark,
)

__version__ = "1.0.0"
__author__ = "moex01"
__license__ = "MIT"

__all__ = [
    # Main entry point
    "run",
    "RunSummary",
    # Configuration
    "HarvesterConfig",
    "DEFAULT_SOURCE_DIR",
    "DEFAULT_LOOKBACK_DAYS",
    "DEFAULT_EVENT_LOG",
    # Conversion
    "ConversionResult",
    "build_command",
    "convert_update_logs",
    # Event recording
    "EventRecorder",
    "EventSeverity",
    "LoggingEventRecorder",
    "RecordedEvent",
    "WindowsEventRecorder",
    "get_recorder",
    "EVENT_RUN_SUMMARY",
    "EVENT_INVALID_WATERMARK",
    "EVENT_MISSING_WATERMARK",
    "EVENT_FATAL_ERROR",
    # Watermark store
    "WATERMARK_FORMAT",
    "WatermarkRead",
    "WatermarkStatus",
    "default_watermark",
    "format_watermark",
    "parse_watermark",
    "read_watermark",
    "write_watermark",
    # Exceptions
    "HarvesterError",
    "PlatformNotSupportedError",
    "PowerShellNotFoundError",
    "ConfigurationError",
    "FileValidationError",
    "WatermarkError",
    "ConversionError",
    "EventRecorderError",
    # Utility functions
    "SourceFile",
    "check_platform",
    "find_powershell",
    "get_os_build",
    "list_source_files",
    "meets_min_build",
    "select_new_files",
    "validate_source_dir",
    # Metadata
    "__version__",
    "__author__",
    "__license__",
]
