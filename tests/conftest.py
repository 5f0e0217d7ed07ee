import sqlite3
from datetime import datetime, timezone
from pathlib import Path

import pytest

from audio_catalog.database.ops import CacheOperations
from audio_catalog.database.schema import init_schema
from audio_catalog.metadata.extract import TagInfo
from audio_catalog.models import FileSignature, MediaRecord


@pytest.fixture
def conn():
    """Returns an in-memory SQLite connection with the schema initialized."""
    c = sqlite3.connect(":memory:")
    init_schema(c)
    try:
        yield c
    finally:
        c.close()


@pytest.fixture
def cache_ops(conn):
    """Returns a CacheOperations instance attached to the in-memory DB."""
    return CacheOperations(conn)


@pytest.fixture
def make_record():
    """Factory for unanalyzed records that do not need to exist on disk."""
    def _make(path, size=1000, modified_at=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc), **fields):
        path = Path(path)
        return MediaRecord(
            path=path,
            name=path.name,
            ext=path.suffix,
            signature=FileSignature(size=size, modified_at=modified_at),
            **fields,
        )
    return _make


class StubTagReader:
    """Stands in for mutagen; records which files were parsed."""

    def __init__(self, fail_on=()):
        self.calls = []
        self.fail_on = set(fail_on)

    def __call__(self, path):
        path = Path(path)
        self.calls.append(path.name)
        if path.name in self.fail_on:
            raise ValueError("can't sync to MPEG frame")
        return TagInfo(
            performer=f"Artist {path.stem[0].upper()}",
            album="Album",
            title=path.stem,
            year=2001,
            duration=60.0,
            track=1,
            total_tracks=10,
            mime_type="audio/mpeg",
            picture_count=1,
        )


@pytest.fixture
def tag_reader():
    return StubTagReader()
