#!/usr/bin/env python3
"""
End-to-End Check for the Windows Update Log Harvester

This script exercises the harvester against the real Windows facilities.
Run this on a Windows 10 / Server 2016 (or later) system from an elevated
prompt so the event source can be registered.

Usage:
    python scripts/windows_smoketest.py [source_dir]

If no source directory is given, C:\\Windows\\Logs\\WindowsUpdate is used.
Watermark and output files are written to a temporary directory.
"""

import sys
import platform
import tempfile
from pathlib import Path

# Color codes for terminal output
GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
BLUE = "\033[94m"
RESET = "\033[0m"
BOLD = "\033[1m"

SMOKETEST_SOURCE = "WUHarvesterSmokeTest"


def print_header(text):
    """Print a formatted header."""
    print(f"\n{BOLD}{BLUE}{'=' * 70}{RESET}")
    print(f"{BOLD}{BLUE}{text}{RESET}")
    print(f"{BOLD}{BLUE}{'=' * 70}{RESET}\n")


def print_success(text):
    print(f"{GREEN}✓ {text}{RESET}")


def print_error(text):
    print(f"{RED}✗ {text}{RESET}")


def print_warning(text):
    print(f"{YELLOW}⚠ {text}{RESET}")


def print_info(text):
    print(f"{BLUE}ℹ {text}{RESET}")


def test_platform():
    """Test 1: Verify we're on Windows."""
    print_header("Test 1: Platform Check")

    current_platform = platform.system()
    print_info(f"Detected platform: {current_platform}")

    if current_platform == "Windows":
        print_success("Platform check passed - running on Windows")
        return True

    print_error(f"This tool requires Windows, found {current_platform}")
    return False


def test_imports():
    """Test 2: Verify package and pywin32 can be imported."""
    print_header("Test 2: Package Import Test")

    try:
        import wu_harvester

        print_success(f"Successfully imported wu_harvester v{wu_harvester.__version__}")
    except ImportError as e:
        print_error(f"Import failed: {e}")
        print_warning("Make sure the package is installed:")
        print_warning("  pip install -e .")
        return False

    try:
        import win32evtlogutil  # noqa: F401

        print_success("pywin32 is available")
    except ImportError as e:
        print_error(f"pywin32 import failed: {e}")
        return False

    return True


def test_powershell():
    """Test 3: Check that PowerShell is available."""
    print_header("Test 3: PowerShell Availability Check")

    try:
        from wu_harvester.utils import find_powershell

        print_success(f"Found PowerShell: {find_powershell()}")
        return True
    except Exception as e:
        print_error(f"PowerShell check failed: {e}")
        return False


def test_os_build():
    """Test 4: Report the OS build used by the build gate."""
    print_header("Test 4: OS Build Detection")

    from wu_harvester.utils import get_os_build

    build = get_os_build()
    print_info(f"platform.version(): {platform.version()}")
    if build == 0:
        print_error("Could not determine the OS build")
        return False

    print_success(f"OS build: {build}")
    return True


def test_event_source():
    """Test 5: Register the smoke test event source and write an event."""
    print_header("Test 5: Event Log Source")

    try:
        from wu_harvester.events import WindowsEventRecorder

        recorder = WindowsEventRecorder()
        recorder.ensure_source_registered(SMOKETEST_SOURCE)
        if not recorder.source_exists(SMOKETEST_SOURCE):
            print_warning("Event source not registered (run elevated to register)")
            return None

        recorder.info(SMOKETEST_SOURCE, 11660, "wu_harvester smoke test event")
        print_success(f"Wrote event 11660 under source {SMOKETEST_SOURCE}")
        return True
    except Exception as e:
        print_error(f"Event log test failed: {e}")
        return False


def test_harvest(source_dir):
    """Test 6: Run two harvests; the second should find nothing new."""
    print_header("Test 6: Incremental Harvest")

    try:
        from wu_harvester import HarvesterConfig, get_recorder, run

        if not source_dir.is_dir():
            print_warning(f"Source directory not found: {source_dir}")
            return None

        with tempfile.TemporaryDirectory() as tmp:
            work = Path(tmp)
            config = HarvesterConfig.create(
                source_dir=source_dir,
                watermark_path=work / "watermark.txt",
                output_path=work / "WindowsUpdate.log",
                event_source=SMOKETEST_SOURCE,
                timeout=900,
            )
            recorder = get_recorder("logging")

            print_info("First run (no watermark, 60 day lookback)...")
            first = run(config, recorder=recorder)
            print_success(first.message)
            if first.files_processed and config.output_path.exists():
                size = config.output_path.stat().st_size
                print_success(f"  Output size: {size:,} bytes")

            print_info(f"  Watermark: {config.watermark_path.read_text()}")

            print_info("Second run (should only see files written since)...")
            second = run(config, recorder=recorder)
            print_success(second.message)

            if second.files_processed > first.files_processed:
                print_error("Second run processed more files than the first")
                return False

        return True

    except Exception as e:
        print_error(f"Harvest test failed with exception: {e}")
        import traceback

        print_error(traceback.format_exc())
        return False


def main():
    """Run all checks."""
    print(f"\n{BOLD}Windows Update Log Harvester - Smoke Test{RESET}")
    print(f"{BOLD}Python {platform.python_version()}{RESET}")

    source_dir = Path(
        sys.argv[1] if len(sys.argv) > 1 else r"C:\Windows\Logs\WindowsUpdate"
    )

    results = {}
    results["platform"] = test_platform()
    results["imports"] = test_imports()
    results["powershell"] = test_powershell()
    results["os_build"] = test_os_build()
    results["event_source"] = test_event_source()
    results["harvest"] = test_harvest(source_dir)

    print_header("Test Summary")

    passed = sum(1 for v in results.values() if v is True)
    failed = sum(1 for v in results.values() if v is False)
    skipped = sum(1 for v in results.values() if v is None)
    total = len(results)

    print(f"\n{BOLD}Results:{RESET}")
    print(f"  {GREEN}Passed:  {passed}/{total}{RESET}")
    print(f"  {RED}Failed:  {failed}/{total}{RESET}")
    print(f"  {YELLOW}Skipped: {skipped}/{total}{RESET}")

    if failed == 0:
        print(f"\n{GREEN}{BOLD}All checks passed! ✓{RESET}")
        return 0

    print(f"\n{RED}{BOLD}{failed} check(s) failed! ✗{RESET}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
