import logging
import platform
import sys
import types

import pytest

from wu_harvester.events import (
    EventSeverity,
    LoggingEventRecorder,
    WindowsEventRecorder,
    get_recorder,
)
from wu_harvester.exceptions import EventRecorderError


def _fake_pywin32(monkeypatch: pytest.MonkeyPatch) -> types.SimpleNamespace:
    calls = types.SimpleNamespace(
        registered=[],
        reported=[],
        opened=[],
        closed=[],
        fail_report=False,
        open_error=None,
    )

    evtlog = types.ModuleType("win32evtlog")
    evtlog.EVENTLOG_INFORMATION_TYPE = 4
    evtlog.EVENTLOG_WARNING_TYPE = 2
    evtlog.EVENTLOG_ERROR_TYPE = 1

    evtlogutil = types.ModuleType("win32evtlogutil")

    def add_source(name, eventLogType="Application"):
        calls.registered.append((name, eventLogType))

    def report_event(name, event_id, eventType=None, strings=None):
        if calls.fail_report:
            raise RuntimeError("event log is full")
        calls.reported.append((name, event_id, eventType, strings))

    evtlogutil.AddSourceToRegistry = add_source
    evtlogutil.ReportEvent = report_event

    win32con = types.ModuleType("win32con")
    win32con.HKEY_LOCAL_MACHINE = 0x80000002
    win32con.KEY_READ = 0x20019

    win32api = types.ModuleType("win32api")

    def reg_open_key_ex(root, key, reserved, sam):
        if calls.open_error is not None:
            raise calls.open_error
        calls.opened.append(key)
        return "handle"

    win32api.RegOpenKeyEx = reg_open_key_ex
    win32api.RegCloseKey = calls.closed.append

    monkeypatch.setitem(sys.modules, "win32evtlog", evtlog)
    monkeypatch.setitem(sys.modules, "win32evtlogutil", evtlogutil)
    monkeypatch.setitem(sys.modules, "win32con", win32con)
    monkeypatch.setitem(sys.modules, "win32api", win32api)
    return calls


def test_logging_recorder_keeps_and_logs_events(
    caplog: pytest.LogCaptureFixture,
) -> None:
    recorder = LoggingEventRecorder()
    with caplog.at_level(logging.INFO, logger="wu_harvester.events"):
        recorder.warning("WUHarvester", 11667, "missing watermark")
        recorder.info("WUHarvester", 11660, "Processed 1 file")

    assert [(e.event_id, e.severity) for e in recorder.records] == [
        (11667, EventSeverity.WARNING),
        (11660, EventSeverity.INFORMATION),
    ]
    assert "[WUHarvester:11667] missing watermark" in caplog.text
    assert caplog.records[0].levelno == logging.WARNING


def test_logging_recorder_registration_is_idempotent() -> None:
    recorder = LoggingEventRecorder()
    recorder.ensure_source_registered("WUHarvester")
    recorder.ensure_source_registered("WUHarvester")
    assert recorder.registered == ["WUHarvester"]


def test_windows_recorder_registers_missing_source(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    calls = _fake_pywin32(monkeypatch)
    recorder = WindowsEventRecorder(log_type="Application")
    monkeypatch.setattr(recorder, "source_exists", lambda name: False)

    recorder.ensure_source_registered("WUHarvester")
    assert calls.registered == [("WUHarvester", "Application")]


def test_windows_recorder_skips_existing_source(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    calls = _fake_pywin32(monkeypatch)
    recorder = WindowsEventRecorder()
    monkeypatch.setattr(recorder, "source_exists", lambda name: True)

    recorder.ensure_source_registered("WUHarvester")
    assert calls.registered == []


def test_windows_recorder_registers_when_lookup_is_denied(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    calls = _fake_pywin32(monkeypatch)
    calls.open_error = PermissionError("access denied")
    recorder = WindowsEventRecorder(log_type="Application")

    assert recorder.source_exists("WUHarvester") is False
    recorder.ensure_source_registered("WUHarvester")
    assert calls.registered == [("WUHarvester", "Application")]


def test_windows_recorder_finds_existing_source_in_registry(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    calls = _fake_pywin32(monkeypatch)
    recorder = WindowsEventRecorder(log_type="System")

    recorder.ensure_source_registered("WUHarvester")
    assert calls.opened == [
        r"SYSTEM\CurrentControlSet\Services\EventLog\System\WUHarvester"
    ]
    assert calls.closed == ["handle"]
    assert calls.registered == []


def test_windows_recorder_registration_never_raises(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _fake_pywin32(monkeypatch)
    recorder = WindowsEventRecorder()

    def denied(name):
        raise PermissionError("access denied")

    monkeypatch.setattr(recorder, "source_exists", denied)
    recorder.ensure_source_registered("WUHarvester")


def test_windows_recorder_reports_event_type(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _fake_pywin32(monkeypatch)
    recorder = WindowsEventRecorder()

    recorder.error("WUHarvester", 11668, "boom")
    assert calls.reported == [("WUHarvester", 11668, 1, ["boom"])]


def test_windows_recorder_wraps_report_failures(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    calls = _fake_pywin32(monkeypatch)
    calls.fail_report = True
    recorder = WindowsEventRecorder()

    with pytest.raises(EventRecorderError, match="11660"):
        recorder.info("WUHarvester", 11660, "summary")


def test_get_recorder_by_name() -> None:
    assert isinstance(get_recorder("logging"), LoggingEventRecorder)
    windows = get_recorder("Windows", log_type="System")
    assert isinstance(windows, WindowsEventRecorder)
    assert windows.log_type == "System"


def test_get_recorder_auto_selects_by_platform(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(platform, "system", lambda: "Linux")
    assert isinstance(get_recorder("auto"), LoggingEventRecorder)

    monkeypatch.setattr(platform, "system", lambda: "Windows")
    assert isinstance(get_recorder("auto"), WindowsEventRecorder)


def test_get_recorder_rejects_unknown() -> None:
    with pytest.raises(ValueError):
        get_recorder("syslog")
