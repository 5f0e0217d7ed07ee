import os
import threading
from datetime import datetime, timezone
from pathlib import Path

import pytest

from audio_catalog import config
from audio_catalog.exceptions import ScanError
from audio_catalog.scanning.filesystem import DiskScanner


def _touch(path: Path, data: bytes = b"audio"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def test_scan_finds_supported_files_at_any_depth(tmp_path):
    _touch(tmp_path / "a.mp3")
    _touch(tmp_path / "cover.jpg")
    _touch(tmp_path / "notes.txt")
    _touch(tmp_path / "Artist" / "Album" / "01.FLAC")
    _touch(tmp_path / "Artist" / "Album" / "folder.png")
    _touch(tmp_path / "Artist" / "Other" / "Deep" / "x.opus")
    _touch(tmp_path / "Artist" / "Other" / "Deep" / "x.cue")

    records = DiskScanner().scan(tmp_path)

    assert len(records) == 3
    assert {r.name for r in records} == {"a.mp3", "01.FLAC", "x.opus"}


def test_scan_non_recursive_only_visits_root(tmp_path):
    _touch(tmp_path / "top.m4a")
    _touch(tmp_path / "sub" / "nested.m4a")

    records = DiskScanner().scan(tmp_path, recursive=False)

    assert [r.name for r in records] == ["top.m4a"]


@pytest.mark.parametrize("root", [None, "", "does/not/exist"])
def test_scan_missing_root_is_empty(root, tmp_path):
    if root:
        root = tmp_path / root
    assert DiskScanner().scan(root) == []
    assert DiskScanner().count(root) == 0


def test_scan_records_carry_filesystem_attributes_only(tmp_path):
    p = _touch(tmp_path / "Song.WAV", b"x" * 123)

    rec = DiskScanner().scan(tmp_path)[0]

    assert rec.path == p
    assert rec.path.is_absolute()
    assert rec.name == "Song.WAV"
    assert rec.ext == ".WAV"
    assert rec.signature.size == 123
    assert rec.signature.modified_at == datetime.fromtimestamp(os.stat(p).st_mtime, tz=timezone.utc)
    assert rec.analyzed is False
    assert rec.artist is None
    assert rec.issues == []


def test_scan_order_is_stable(tmp_path):
    _touch(tmp_path / "b" / "2.mp3")
    _touch(tmp_path / "a" / "1.mp3")
    _touch(tmp_path / "z.mp3")
    _touch(tmp_path / "Y.mp3")

    names = [r.path.relative_to(tmp_path).as_posix() for r in DiskScanner().scan(tmp_path)]

    assert names == ["Y.mp3", "z.mp3", "a/1.mp3", "b/2.mp3"]


def test_count_matches_scan(tmp_path):
    for i in range(5):
        _touch(tmp_path / f"d{i}" / f"{i}.ogg")
    _touch(tmp_path / "ignore.doc")

    scanner = DiskScanner()
    assert scanner.count(tmp_path) == len(scanner.scan(tmp_path)) == 5
    assert scanner.count(tmp_path, recursive=False) == 0


def test_scan_cancel_returns_partial_without_error(tmp_path):
    _touch(tmp_path / "a.mp3")
    _touch(tmp_path / "b.mp3")

    cancel = threading.Event()
    cancel.set()

    assert DiskScanner().scan(tmp_path, cancel_event=cancel) == []


def test_scan_cancel_mid_walk(tmp_path, monkeypatch):
    for name in ("a", "b", "c"):
        _touch(tmp_path / name / "track.mp3")

    cancel = threading.Event()
    real_scandir = os.scandir

    def scandir_then_cancel(path):
        if Path(path).name == "b":
            cancel.set()
        return real_scandir(path)

    monkeypatch.setattr(os, "scandir", scandir_then_cancel)
    records = DiskScanner().scan(tmp_path, cancel_event=cancel)

    assert [r.path.parent.name for r in records] == ["a"]


def test_permission_denied_directory_is_skipped(tmp_path, monkeypatch):
    _touch(tmp_path / "ok" / "a.mp3")
    _touch(tmp_path / "locked" / "b.mp3")

    real_scandir = os.scandir

    def guarded_scandir(path):
        if Path(path).name == "locked":
            raise PermissionError(13, "Permission denied", str(path))
        return real_scandir(path)

    monkeypatch.setattr(os, "scandir", guarded_scandir)
    records = DiskScanner().scan(tmp_path)

    assert [r.name for r in records] == ["a.mp3"]


def test_other_io_errors_surface_as_scan_error(tmp_path, monkeypatch):
    _touch(tmp_path / "broken" / "a.mp3")

    real_scandir = os.scandir

    def failing_scandir(path):
        if Path(path).name == "broken":
            raise OSError(5, "Input/output error", str(path))
        return real_scandir(path)

    monkeypatch.setattr(os, "scandir", failing_scandir)
    with pytest.raises(ScanError):
        DiskScanner().scan(tmp_path)


@pytest.mark.parametrize(
    "name,expected",
    [
        ("track.flac", True),
        ("track.MP3", True),
        ("track.Opus", True),
        ("track.ape", True),
        ("track.wma", True),
        ("track.mp4", False),
        ("cover.jpg", False),
        ("noext", False),
        (".mp3", True),
        ("track.", False),
    ],
)
def test_is_supported(name, expected):
    assert DiskScanner.is_supported(name) is expected


def test_allow_list_is_fixed():
    assert config.SUPPORTED_EXTS == {'.flac', '.mp3', '.m4a', '.aac', '.ogg', '.wav', '.wma', '.ape', '.opus'}


def test_bare_extension_name_is_scanned(tmp_path):
    _touch(tmp_path / ".mp3")
    _touch(tmp_path / ".hidden")

    records = DiskScanner().scan(tmp_path)

    assert [(r.name, r.ext) for r in records] == [(".mp3", ".mp3")]


@pytest.mark.parametrize(
    "name,expected",
    [("Song.FLAC", ".FLAC"), ("a.b.ogg", ".ogg"), (".opus", ".opus"), ("track.", ""), ("noext", "")],
)
def test_extension_of(name, expected):
    assert DiskScanner.extension_of(name) == expected
