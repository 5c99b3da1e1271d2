import contextlib
import os
import platform
import shutil
from datetime import datetime
from pathlib import Path

import pytest

from wu_harvester.exceptions import (
    FileValidationError,
    PlatformNotSupportedError,
    PowerShellNotFoundError,
)
from wu_harvester.utils import (
    SourceFile,
    check_platform,
    find_powershell,
    get_os_build,
    list_source_files,
    meets_min_build,
    select_new_files,
    validate_source_dir,
)


def _touch(path: Path, when: datetime) -> Path:
    path.write_bytes(b"etl")
    ts = when.timestamp()
    os.utime(path, (ts, ts))
    return path


def test_check_platform_raises_on_non_windows(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(platform, "system", lambda: "Darwin")
    with pytest.raises(PlatformNotSupportedError):
        check_platform()


def test_check_platform_allows_windows(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(platform, "system", lambda: "Windows")
    check_platform()


def test_find_powershell_raises_when_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(shutil, "which", lambda _: None)
    with pytest.raises(PowerShellNotFoundError):
        find_powershell()


def test_find_powershell_falls_back_to_pwsh(monkeypatch: pytest.MonkeyPatch) -> None:
    pwsh = "C:\\Program Files\\PowerShell\\7\\pwsh.exe"
    monkeypatch.setattr(shutil, "which", lambda name: pwsh if name == "pwsh" else None)
    assert find_powershell() == pwsh


def test_find_powershell_prefers_windows_powershell(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(shutil, "which", lambda name: f"C:\\bin\\{name}.exe")
    assert find_powershell() == "C:\\bin\\powershell.exe"


def test_get_os_build_reads_third_component(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(platform, "version", lambda: "10.0.17763")
    assert get_os_build() == 17763


@pytest.mark.parametrize("version", ["", "10.0", "#1 SMP PREEMPT", "10.0.beta"])
def test_get_os_build_returns_zero_when_unknown(
    monkeypatch: pytest.MonkeyPatch, version: str
) -> None:
    monkeypatch.setattr(platform, "version", lambda: version)
    assert get_os_build() == 0


def test_meets_min_build() -> None:
    assert meets_min_build(17763, None)
    assert meets_min_build(17763, 17763)
    assert meets_min_build(19045, 17763)
    assert not meets_min_build(14393, 17763)


def test_validate_source_dir_rejects_missing(tmp_path: Path) -> None:
    with pytest.raises(FileValidationError):
        validate_source_dir(tmp_path / "missing")


def test_validate_source_dir_rejects_file(tmp_path: Path) -> None:
    p = tmp_path / "file.etl"
    p.write_bytes(b"x")
    with pytest.raises(FileValidationError):
        validate_source_dir(p)


def test_list_source_files_skips_directories_and_subdirectory_files(
    tmp_path: Path,
) -> None:
    when = datetime(2024, 6, 1, 8, 30, 0)
    _touch(tmp_path / "a.etl", when)
    _touch(tmp_path / "b.etl", when)
    sub = tmp_path / "sub"
    sub.mkdir()
    _touch(sub / "c.etl", when)

    files = list_source_files(tmp_path)
    assert sorted(f.path.name for f in files) == ["a.etl", "b.etl"]
    assert all(f.modified == when for f in files)


class _VanishedEntry:
    def __init__(self, path: Path) -> None:
        self.path = str(path)
        self.name = path.name

    def is_file(self) -> bool:
        return True

    def stat(self):
        raise FileNotFoundError(self.path)


def test_list_source_files_skips_file_removed_during_scan(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    when = datetime(2024, 6, 1, 8, 30, 0)
    _touch(tmp_path / "kept.etl", when)
    real_scandir = os.scandir

    @contextlib.contextmanager
    def scandir_with_rotation(directory):
        with real_scandir(directory) as entries:
            yield [_VanishedEntry(tmp_path / "rotated.etl"), *entries]

    monkeypatch.setattr(os, "scandir", scandir_with_rotation)

    files = list_source_files(tmp_path)
    assert [f.path.name for f in files] == ["kept.etl"]
    assert files[0].modified == when


def test_list_source_files_rejects_missing_directory(tmp_path: Path) -> None:
    with pytest.raises(FileValidationError):
        list_source_files(tmp_path / "missing")


def test_select_new_files_is_strict_and_keeps_order() -> None:
    watermark = datetime(2024, 1, 1)
    files = [
        SourceFile(Path("c.etl"), datetime(2024, 6, 1)),
        SourceFile(Path("a.etl"), datetime(2023, 12, 31)),
        SourceFile(Path("equal.etl"), watermark),
        SourceFile(Path("b.etl"), datetime(2024, 1, 1, 0, 0, 1)),
    ]

    selected = select_new_files(files, watermark)
    assert [f.path.name for f in selected] == ["c.etl", "b.etl"]
