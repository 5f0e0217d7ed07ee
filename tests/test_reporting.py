import csv

import pytest

from audio_catalog import config
from audio_catalog.reporting import (
    ReportGenerator,
    compute_stats,
    format_duration,
    format_size,
    select_records,
)


def _song(make_record, path, **fields):
    fields.setdefault("analyzed", True)
    fields.setdefault("has_album_art", True)
    fields.setdefault("filename_matches_format", True)
    return make_record(path, **fields)


def test_compute_stats_counts_distinct_non_empty(make_record):
    records = [
        _song(make_record, "/m/1.mp3", artist="Low", album="Things We Lost", duration=200.0),
        _song(make_record, "/m/2.mp3", artist="Low", album="Things We Lost", duration=100.5),
        _song(make_record, "/m/3.mp3", artist="Slint", album="", duration=None),
        make_record("/m/4.mp3"),
    ]

    stats = compute_stats(records)

    assert stats.song_count == 4
    assert stats.artist_count == 2
    assert stats.album_count == 1
    assert stats.total_duration == 300.5


def test_compute_stats_empty():
    stats = compute_stats([])
    assert (stats.song_count, stats.artist_count, stats.album_count, stats.total_duration) == (0, 0, 0, 0.0)


@pytest.mark.parametrize(
    "seconds,expected",
    [
        (0, "00:00:00:00"),
        (None, "00:00:00:00"),
        (59.9, "00:00:00:59"),
        (3600, "00:01:00:00"),
        (90061, "01:01:01:01"),
    ],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


@pytest.mark.parametrize(
    "size,expected",
    [
        (None, "0 B"),
        (0, "0 B"),
        (512, "512 B"),
        (1536, "1.5 KB"),
        (1024 * 1024, "1 MB"),
        (int(2.25 * 1024 ** 3), "2.25 GB"),
    ],
)
def test_format_size(size, expected):
    assert format_size(size) == expected


def test_select_records(make_record):
    clean = _song(make_record, "/m/clean.flac", artist="A", album="B", title="C")
    no_art = _song(make_record, "/m/no_art.flac", artist="A", album="B", title="C",
                   has_album_art=False, issues=[config.ISSUE_NO_ALBUM_ART])
    untagged = _song(make_record, "/m/untagged.mp3",
                     issues=[config.ISSUE_MISSING_TITLE, config.ISSUE_MISSING_ARTIST, config.ISSUE_MISSING_ALBUM])
    pending = make_record("/m/pending.flac")
    records = [clean, no_art, untagged, pending]

    assert select_records(records) == records
    assert select_records(records, "issues") == [no_art, untagged]
    assert select_records(records, "missing-art") == [no_art]
    assert select_records(records, "missing-tags") == [untagged]
    assert select_records(records, "mismatch") == []
    assert select_records(records, "all", "flac") == [clean, no_art]
    assert select_records(records, "issues", ".FLAC") == [no_art]


def test_issue_report_writes_only_records_with_issues(tmp_path, make_record):
    records = [
        _song(make_record, "/m/ok.mp3", size=1536, artist="A", album="B", title="C", duration=61.0),
        _song(make_record, "/m/bad.FLAC", size=2048, artist="A", title="D",
              has_album_art=False, issues=[config.ISSUE_NO_ALBUM_ART, config.ISSUE_MISSING_ALBUM]),
    ]
    output_csv = tmp_path / "reports" / "issues.csv"

    written = ReportGenerator(records).write_issue_report(output_csv)

    assert written == 1
    with open(output_csv, newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0] == ReportGenerator.HEADERS
    assert rows[1] == [
        "/m/bad.FLAC", "flac", "2 KB", "A", "", "D", "",
        "No album art found; Missing album tag",
    ]


def test_full_report_includes_clean_records(tmp_path, make_record):
    records = [
        _song(make_record, "/m/ok.mp3", artist="A", album="B", title="C", duration=61.0),
        make_record("/m/pending.mp3"),
    ]
    output_csv = tmp_path / "all.csv"

    written = ReportGenerator(records).write_issue_report(output_csv, only_issues=False)

    assert written == 2
    with open(output_csv, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert rows[0]["Duration"] == "00:00:01:01"
    assert rows[0]["Issues"] == ""
    assert rows[1]["Artist"] == ""
