import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from .config import LibraryConfig
from .core import LibrarySynchronizer
from .exceptions import AudioCatalogError
from .models import MediaRecord
from .reporting import LIST_FILTERS, ReportGenerator, format_duration, select_records
from .scanning.filesystem import DiskScanner


def setup_logging(verbose: bool, log_file: Optional[Path] = None):
    """Sets up logging to the console and, optionally, a log file."""
    log_level = logging.DEBUG if verbose else logging.INFO

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
        force=True,
    )

    # Silence chatty libraries
    logging.getLogger("mutagen").setLevel(logging.WARNING)


class ConsoleProgress:
    """
    Renders synchronization progress on the terminal.
    Status text is written as lines; the analyze phase gets a tqdm bar.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.bar: Optional[tqdm] = None

    def status(self, text: str):
        if self.enabled and self.bar is None:
            tqdm.write(text, file=sys.stderr)

    def records(self, records: List[MediaRecord]):
        pending = sum(1 for r in records if not r.analyzed)
        if self.enabled and pending:
            self.bar = tqdm(total=pending, desc="Analyzing", unit="file", file=sys.stderr)

    def record_analyzed(self, index: int, record: MediaRecord):
        if self.bar is None:
            return
        self.bar.update(1)
        if self.bar.n >= self.bar.total:
            self.close()

    def close(self):
        if self.bar is not None:
            self.bar.close()
            self.bar = None


def parse_args(argv: Optional[List[str]] = None):
    p = argparse.ArgumentParser(description="Audio Catalog: index a music folder with an incremental metadata cache")

    p.add_argument("root", type=Path, nargs="?", default=None,
                   help="Library folder to index (default: $AUDIO_CATALOG_ROOT)")
    p.add_argument("--db", type=Path, default=None,
                   help="Custom path for the SQLite cache (default: per-user data dir)")
    p.add_argument("--no-recursive", action="store_true", help="Only index the top level of the library folder")
    p.add_argument("--rebuild", action="store_true", help="Clear the cache and re-analyze every file")
    p.add_argument("--count", action="store_true", help="Only count supported files, do not analyze")

    p.add_argument("--list", choices=sorted(LIST_FILTERS), default=None, dest="list_kind",
                   help="Print matching files after syncing")
    p.add_argument("--format", default=None, dest="fmt", help="Restrict --list/--report to one extension (e.g. flac)")
    p.add_argument("--report", type=Path, default=None, help="Write a CSV of files with issues")

    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    p.add_argument("-q", "--quiet", action="store_true", help="No progress output")
    p.add_argument("--log-file", type=Path, default=None, help="Also write the log to this file")

    return p.parse_args(argv)


def print_summary(result_stats, warnings: List[str]):
    print(f"Songs:    {result_stats.song_count}")
    print(f"Artists:  {result_stats.artist_count}")
    print(f"Albums:   {result_stats.album_count}")
    print(f"Duration: {format_duration(result_stats.total_duration)}")
    if warnings:
        print(f"Warnings: {len(warnings)} cache writes failed (see log)")


def print_records(records: List[MediaRecord]):
    for r in records:
        issues = "; ".join(r.issues)
        print(f"{r.path}\t{issues}" if issues else str(r.path))


def main(argv: Optional[List[str]] = None):
    args = parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    library_config = LibraryConfig.from_env(
        root_path=args.root.resolve() if args.root else None,
        cache_path=args.db,
        recursive=not args.no_recursive,
    )

    if args.count:
        try:
            n = DiskScanner().count(library_config.root_path, recursive=library_config.recursive)
        except AudioCatalogError as e:
            logging.error(f"Count failed: {e}")
            sys.exit(1)
        print(n)
        return

    logging.info("=== Audio Catalog Started ===")
    logging.info(f"Library: {library_config.root_path}")
    logging.info(f"Cache:   {library_config.cache_path}")

    progress = ConsoleProgress(enabled=not args.quiet)
    synchronizer = LibrarySynchronizer(
        library_config,
        progress=progress.status,
        on_records=progress.records,
        on_record_analyzed=progress.record_analyzed,
    )

    try:
        if args.rebuild:
            result = synchronizer.rebuild()
        else:
            result = synchronizer.synchronize()
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        sys.exit(1)
    except AudioCatalogError as e:
        logging.error(f"Synchronization failed: {e}")
        sys.exit(1)
    finally:
        progress.close()

    print_summary(result.stats, result.warnings)

    if args.list_kind or args.fmt:
        print_records(select_records(result.records, args.list_kind or "all", args.fmt))

    if args.report:
        selected = select_records(result.records, "all", args.fmt)
        ReportGenerator(selected).write_issue_report(args.report)


if __name__ == "__main__":
    main()
