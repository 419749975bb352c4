from __future__ import annotations

import os
import stat
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from cache_cleaner.cleanermodel import Classification
from cache_cleaner.cleanermodel import Report
from cache_cleaner.cleanerscan import CacheScanner
from cache_cleaner.cleanerscan import classify

CACHE_NAME = "a94a8fe5ccb19ba61c4c0873d391e987982fbbd3"


def fake_stat(path: str) -> MagicMock:
    return MagicMock(st_mode=stat.S_IFREG | 0o644, st_size=len(path))


@pytest.mark.parametrize(
    "name, is_directory, expected",
    [
        (CACHE_NAME, False, Classification.CACHE_FILE),
        (CACHE_NAME.upper(), False, Classification.CACHE_FILE),
        ("z" * 40, False, Classification.CACHE_FILE),
        (CACHE_NAME[:-1], False, Classification.OTHER),
        (CACHE_NAME + "0", False, Classification.OTHER),
        (CACHE_NAME[:-1] + "-", False, Classification.OTHER),
        (CACHE_NAME[:-1] + ".", False, Classification.OTHER),
        (CACHE_NAME[:-1] + "\n", False, Classification.OTHER),
        ("ab", False, Classification.OTHER),
        (".gitignore", False, Classification.OTHER),
        ("", False, Classification.OTHER),
        ("ab", True, Classification.CACHE_DIRECTORY),
        ("0f", True, Classification.CACHE_DIRECTORY),
        ("AB", True, Classification.CACHE_DIRECTORY),
        ("a", True, Classification.OTHER),
        ("abc", True, Classification.OTHER),
        ("a_", True, Classification.OTHER),
        ("..", True, Classification.OTHER),
        ("\u212ab", True, Classification.OTHER),
        ("éa", True, Classification.OTHER),
        (CACHE_NAME, True, Classification.OTHER),
    ],
)
def test_classify(name: str, is_directory: bool, expected: Classification) -> None:
    assert classify(name, is_directory) is expected


def test_scan_yields_parents_before_children(tmp_path: Path) -> None:
    (tmp_path / "aa" / "bb" / "cc").mkdir(parents=True)
    (tmp_path / "aa" / "bb" / CACHE_NAME).write_text("0000000001")
    (tmp_path / "readme.txt").write_text("hello")

    entries = list(CacheScanner().scan(str(tmp_path), Report()))
    paths = [entry.path for entry in entries]

    aa = os.path.join(tmp_path, "aa")
    bb = os.path.join(aa, "bb")
    cc = os.path.join(bb, "cc")
    cache_file = os.path.join(bb, CACHE_NAME)

    assert len(entries) == 5
    assert paths.index(aa) < paths.index(bb) < paths.index(cc)
    assert paths.index(bb) < paths.index(cache_file)
    assert str(tmp_path) not in paths


def test_scan_marks_directories(tmp_path: Path) -> None:
    (tmp_path / "ab").mkdir()
    (tmp_path / "ab" / "file").write_text("")

    entries = {entry.name: entry for entry in CacheScanner().scan(str(tmp_path), Report())}

    assert entries["ab"].is_directory is True
    assert entries["file"].is_directory is False
    assert entries["file"].path == os.path.join(tmp_path, "ab", "file")
    assert entries["ab"].is_file is False
    assert entries["file"].is_file is True


def test_scan_uses_injected_walk() -> None:
    calls = []

    def fake_walk(root, onerror=None):
        calls.append(root)
        yield "/cache", ["ab"], [CACHE_NAME]
        yield "/cache/ab", [], ["notes.txt"]

    entries = list(CacheScanner(walk=fake_walk, stat_file=fake_stat).scan("/cache", Report()))

    assert calls == ["/cache"]
    assert [entry.path for entry in entries] == [
        "/cache/ab",
        f"/cache/{CACHE_NAME}",
        "/cache/ab/notes.txt",
    ]


def test_scan_counts_listing_errors_and_continues() -> None:
    def fake_walk(root, onerror=None):
        yield "/cache", ["ab", "cd"], []
        onerror(PermissionError(13, "Permission denied", "/cache/ab"))
        yield "/cache/cd", [], [CACHE_NAME]

    report = Report()

    entries = list(CacheScanner(walk=fake_walk, stat_file=fake_stat).scan("/cache", report))

    assert report["errors"] == 1
    assert len(entries) == 3
    assert entries[-1].path == f"/cache/cd/{CACHE_NAME}"


def test_scan_missing_root_reports_error(tmp_path: Path) -> None:
    report = Report()

    entries = list(CacheScanner().scan(str(tmp_path / "missing"), report))

    assert entries == []
    assert report["errors"] == 1


def test_scan_fills_file_size(tmp_path: Path) -> None:
    (tmp_path / CACHE_NAME).write_bytes(b"0000000001payload")

    entries = list(CacheScanner().scan(str(tmp_path), Report()))

    assert len(entries) == 1
    assert entries[0].size == 17
    assert entries[0].is_file is True


@pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="requires os.mkfifo")
def test_scan_marks_fifo_as_not_a_file(tmp_path: Path) -> None:
    os.mkfifo(tmp_path / CACHE_NAME)

    entries = list(CacheScanner().scan(str(tmp_path), Report()))

    assert len(entries) == 1
    assert entries[0].is_directory is False
    assert entries[0].is_file is False


def test_scan_counts_stat_errors_and_continues() -> None:
    def fake_walk(root, onerror=None):
        yield "/cache", [], [CACHE_NAME, "notes.txt"]

    def failing_stat(path: str) -> MagicMock:
        if path.endswith(CACHE_NAME):
            raise FileNotFoundError(2, "No such file or directory", path)
        return fake_stat(path)

    report = Report()
    scanner = CacheScanner(walk=fake_walk, stat_file=failing_stat)

    entries = list(scanner.scan("/cache", report))

    assert report["errors"] == 1
    assert [entry.name for entry in entries] == ["notes.txt"]
