import csv
import logging
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from .metadata import filters
from .models import LibraryStats, MediaRecord

SIZE_UNITS = ["B", "KB", "MB", "GB", "TB"]

# --list choices -> predicate
LIST_FILTERS: Dict[str, Callable[[MediaRecord], bool]] = {
    "all": lambda r: True,
    "issues": filters.has_any_issues,
    "missing-art": filters.has_missing_album_art,
    "mismatch": filters.has_extension_mismatch,
    "missing-tags": filters.has_missing_tags,
}


def compute_stats(records: List[MediaRecord]) -> LibraryStats:
    """
    Summary over the merged result set. Only distinct, non-empty artists and
    albums are counted; unanalyzed or failed entries add zero duration.
    """
    artists = {r.artist for r in records if r.artist}
    albums = {r.album for r in records if r.album}
    total_duration = sum(r.duration or 0.0 for r in records)
    return LibraryStats(
        artist_count=len(artists),
        album_count=len(albums),
        song_count=len(records),
        total_duration=total_duration,
    )


def format_duration(seconds: Optional[float]) -> str:
    """Formats as dd:hh:mm:ss, the way the status bar shows library length."""
    total = int(seconds or 0)
    days, rem = divmod(total, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, secs = divmod(rem, 60)
    return f"{days:02d}:{hours:02d}:{minutes:02d}:{secs:02d}"


def format_size(size_bytes: Optional[int]) -> str:
    """1536 -> '1.5 KB'. Up to two decimals, trailing zeros dropped."""
    if size_bytes is None:
        return "0 B"
    value = float(size_bytes)
    order = 0
    while value >= 1024 and order < len(SIZE_UNITS) - 1:
        order += 1
        value /= 1024
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {SIZE_UNITS[order]}"


def select_records(records: Iterable[MediaRecord], kind: str = "all", fmt: Optional[str] = None) -> List[MediaRecord]:
    """
    Applies a named list filter and an optional format filter,
    e.g. select_records(records, "missing-art", "flac") for FLACs without covers.
    """
    predicate = LIST_FILTERS[kind]
    selected = [r for r in records if predicate(r)]
    if fmt:
        selected = [r for r in selected if filters.is_format(r, fmt)]
    return selected


class ReportGenerator:
    HEADERS = [
        "Path",
        "Format",
        "Size",
        "Artist",
        "Album",
        "Title",
        "Duration",
        "Issues",
    ]

    def __init__(self, records: List[MediaRecord]):
        self.records = records

    def write_issue_report(self, output_csv: Path, only_issues: bool = True) -> int:
        """
        Writes one CSV row per record (or per record with issues).
        Returns the number of rows written.
        """
        output_csv = Path(output_csv)
        output_csv.parent.mkdir(parents=True, exist_ok=True)

        rows = [r for r in self.records if filters.has_any_issues(r)] if only_issues else self.records

        with open(output_csv, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(self.HEADERS)
            for r in rows:
                writer.writerow([
                    str(r.path),
                    r.ext.lower().lstrip("."),
                    format_size(r.size_bytes),
                    r.artist or "",
                    r.album or "",
                    r.title or "",
                    format_duration(r.duration) if r.duration else "",
                    "; ".join(r.issues),
                ])

        logging.info(f"Report complete. Wrote {len(rows)} rows to {output_csv}")
        return len(rows)
