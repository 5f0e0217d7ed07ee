import json
import sqlite3
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, Optional

from ..exceptions import CacheError, CacheWriteError
from ..models import CacheEntry, FileSignature, MediaRecord, path_key

COLUMNS = (
    "path", "name", "ext", "size_bytes", "modified_at",
    "artist", "album", "title", "year", "duration_sec",
    "track", "total_tracks", "disc", "total_discs",
    "mime_type", "has_album_art", "filename_matches_format", "issues",
)


def _bool_to_db(value: Optional[bool]) -> Optional[int]:
    return None if value is None else int(value)


def _bool_from_db(value: Optional[int]) -> Optional[bool]:
    return None if value is None else bool(value)


class CacheOperations:
    """
    Library cache queries on an open connection.

    Every write runs in its own transaction so a crash between two upserts
    leaves the cache consistent with everything written so far.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def load_all(self) -> Dict[str, CacheEntry]:
        """
        Materializes the whole cache as {path_key: CacheEntry}.
        Records come back analyzed, with the signature they were computed at.
        """
        try:
            cur = self.conn.cursor()
            cur.execute(f"SELECT {', '.join(COLUMNS)} FROM audio_files")
            rows = cur.fetchall()
        except sqlite3.Error as e:
            raise CacheError(f"Failed to load library cache: {e}") from e

        entries: Dict[str, CacheEntry] = {}
        for row in rows:
            try:
                entry = self._row_to_entry(row)
            except (ValueError, TypeError) as e:
                raise CacheError(f"Corrupt cache row for {row[0]}: {e}") from e
            entries[path_key(entry.record.path)] = entry

        logging.debug(f"Loaded {len(entries)} cached entries")
        return entries

    def upsert(self, record: MediaRecord, signature: FileSignature):
        """Insert-or-replace keyed by path; overwrites every column."""
        row = (
            str(record.path), record.name, record.ext,
            signature.size, signature.modified_at.isoformat(),
            record.artist, record.album, record.title, record.year, record.duration,
            record.track, record.total_tracks, record.disc, record.total_discs,
            record.mime_type,
            _bool_to_db(record.has_album_art),
            _bool_to_db(record.filename_matches_format),
            json.dumps(record.issues) if record.issues else None,
        )
        placeholders = ", ".join("?" for _ in COLUMNS)
        try:
            with self.conn:
                self.conn.execute(
                    f"INSERT OR REPLACE INTO audio_files ({', '.join(COLUMNS)}) VALUES ({placeholders})",
                    row,
                )
        except (sqlite3.Error, UnicodeError) as e:
            # UnicodeError: undecodable file names carry surrogates sqlite cannot bind
            raise CacheWriteError(f"Failed to cache {record.path}: {e}") from e

    def delete_many(self, paths: Iterable[str]):
        """Deletes all given paths in one transaction, or none of them."""
        params = [(str(p),) for p in paths]
        if not params:
            return
        try:
            with self.conn:
                self.conn.executemany("DELETE FROM audio_files WHERE path = ?", params)
        except (sqlite3.Error, UnicodeError) as e:
            raise CacheWriteError(f"Failed to prune {len(params)} cache entries: {e}") from e
        logging.debug(f"Pruned {len(params)} cache entries")

    def clear_all(self):
        try:
            with self.conn:
                self.conn.execute("DELETE FROM audio_files")
        except sqlite3.Error as e:
            raise CacheWriteError(f"Failed to clear library cache: {e}") from e
        logging.info("Library cache cleared")

    def count(self) -> int:
        try:
            cur = self.conn.cursor()
            cur.execute("SELECT COUNT(*) FROM audio_files")
            return cur.fetchone()[0]
        except sqlite3.Error as e:
            raise CacheError(f"Failed to count cache entries: {e}") from e

    def _row_to_entry(self, row) -> CacheEntry:
        (path, name, ext, size_bytes, modified_at,
         artist, album, title, year, duration,
         track, total_tracks, disc, total_discs,
         mime_type, has_album_art, matches_format, issues_json) = row

        signature = FileSignature(size=size_bytes, modified_at=datetime.fromisoformat(modified_at))
        issues = json.loads(issues_json) if issues_json else []

        record = MediaRecord(
            path=Path(path),
            name=name,
            ext=ext,
            signature=signature,
            analyzed=True,
            artist=artist,
            album=album,
            title=title,
            year=year,
            duration=duration,
            track=track,
            total_tracks=total_tracks,
            disc=disc,
            total_discs=total_discs,
            mime_type=mime_type,
            has_album_art=_bool_from_db(has_album_art),
            filename_matches_format=_bool_from_db(matches_format),
            issues=list(issues),
        )
        return CacheEntry(record=record, signature=signature)
