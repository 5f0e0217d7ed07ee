"""
Predicates over MediaRecords, used for list filters and reports.

Every predicate is False for an unanalyzed record.
"""
from ..models import MediaRecord


def has_missing_album_art(record: MediaRecord) -> bool:
    return record.analyzed and record.has_album_art is False


def has_extension_mismatch(record: MediaRecord) -> bool:
    return record.analyzed and record.filename_matches_format is False


def is_format(record: MediaRecord, ext: str) -> bool:
    """is_format(rec, 'flac') and is_format(rec, '.FLAC') are equivalent."""
    wanted = ext.lower() if ext.startswith('.') else f".{ext.lower()}"
    return record.analyzed and record.ext.lower() == wanted


def has_any_issues(record: MediaRecord) -> bool:
    return record.analyzed and len(record.issues) > 0


def has_missing_tags(record: MediaRecord) -> bool:
    if not record.analyzed:
        return False
    return any(not (value or '').strip() for value in (record.title, record.artist, record.album))
