import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, List, Optional

from .config import LibraryConfig
from .database.db import DBManager
from .database.ops import CacheOperations
from .exceptions import CacheWriteError
from .metadata.extract import MetadataExtractor
from .models import MediaRecord, SyncResult
from .reporting import compute_stats
from .scanning.filesystem import DiskScanner
from .sync.plan import build_sync_plan

ProgressSink = Callable[[str], None]
RecordsCallback = Callable[[List[MediaRecord]], None]
RecordCallback = Callable[[int, MediaRecord], None]


class LibrarySynchronizer:
    """
    Brings the library cache in line with what is on disk and returns the
    ordered record list: cached records first, then freshly analyzed ones.

    Callbacks are invoked on whatever thread runs synchronize(); marshaling
    to a UI thread is the caller's concern.
    """

    def __init__(self,
                 library_config: LibraryConfig,
                 scanner: Optional[DiskScanner] = None,
                 extractor: Optional[MetadataExtractor] = None,
                 progress: Optional[ProgressSink] = None,
                 on_records: Optional[RecordsCallback] = None,
                 on_record_analyzed: Optional[RecordCallback] = None):
        self.config = library_config
        self.db_manager = DBManager(library_config.cache_path)
        self.scanner = scanner or DiskScanner()
        self.extractor = extractor or MetadataExtractor()
        self.progress = progress
        self.on_records = on_records
        self.on_record_analyzed = on_record_analyzed
        self._executor: Optional[ThreadPoolExecutor] = None

    def synchronize(self, cancel_event: Optional[threading.Event] = None) -> SyncResult:
        """
        Runs one full synchronization:
        0. No library folder configured: empty result, cache not opened
        1. Scan the root
        2. Load the cache
        3. Diff (reusable / to analyze / to prune)
        4. Publish the merged list
        5. Analyze the delta, upserting each record as it completes
        6. Prune deleted files from the cache
        7. Aggregate statistics

        CacheError from opening or loading the cache aborts the run.
        Individual write failures end up in SyncResult.warnings.
        """
        return self._run(cancel_event, clear_cache=False)

    def rebuild(self, cancel_event: Optional[threading.Event] = None) -> SyncResult:
        """
        Forgets every cached entry, then synchronizes from scratch.
        The cache is only cleared once the scan has completed; a rebuild
        canceled during the scan leaves it as it was.
        """
        return self._run(cancel_event, clear_cache=True)

    def _run(self, cancel_event: Optional[threading.Event], clear_cache: bool) -> SyncResult:
        root = self.config.root_path
        if not root:
            # Empty library; the cache is left alone
            logging.info("No library folder configured; library is empty.")
            self._notify("No library folder configured")
            return SyncResult()

        # --- Step 1: Scanning ---
        self._notify(f"Scanning {root}...")
        scanned = self.scanner.scan(root, recursive=self.config.recursive, cancel_event=cancel_event)

        if cancel_event is not None and cancel_event.is_set():
            # A partial scan must not be diffed, or every unseen file would be pruned
            logging.warning(f"Scan canceled after {len(scanned)} files; cache left untouched.")
            self._notify("Scan canceled")
            return SyncResult(records=scanned, stats=compute_stats(scanned), canceled=True)

        logging.info(f"Scan complete. Found {len(scanned)} audio files.")
        warnings: List[str] = []

        with self.db_manager as conn:
            cache = CacheOperations(conn)
            if clear_cache:
                self._notify("Clearing library cache...")
                cache.clear_all()

            # --- Step 2: Cache load ---
            self._notify("Loading library cache...")
            cached = cache.load_all()

            # --- Step 3: Diff ---
            self._notify("Comparing with library cache...")
            plan = build_sync_plan(scanned, cached)

            # --- Step 4: Merge for display ---
            merged = plan.reusable + plan.to_analyze
            self._emit_records(merged)

            # --- Step 5: Analyze delta ---
            offset = len(plan.reusable)
            total = len(plan.to_analyze)
            for i, record in enumerate(plan.to_analyze, start=1):
                analyzed = self.extractor.extract(record)
                merged[offset + i - 1] = analyzed
                try:
                    cache.upsert(analyzed, analyzed.signature)
                except CacheWriteError as e:
                    logging.warning(str(e))
                    warnings.append(str(e))
                self._emit_record(offset + i - 1, analyzed)
                self._notify(f"Analyzing file {i} of {total}")

            # --- Step 6: Prune ---
            if plan.to_prune:
                self._notify(f"Removing {len(plan.to_prune)} missing files from cache...")
                try:
                    cache.delete_many(plan.to_prune)
                except CacheWriteError as e:
                    logging.warning(str(e))
                    warnings.append(str(e))

        # --- Step 7: Aggregate ---
        stats = compute_stats(merged)
        if total:
            self._notify(f"Analyzing file {total} of {total} | COMPLETE!")
        else:
            self._notify(f"Loaded {len(merged)} files from cache")

        logging.info(
            f"Sync complete: {stats.song_count} songs, {stats.artist_count} artists, "
            f"{stats.album_count} albums ({len(plan.reusable)} from cache, {total} analyzed, "
            f"{len(plan.to_prune)} pruned)"
        )
        return SyncResult(
            records=merged,
            stats=stats,
            plan=plan,
            warnings=warnings,
            from_cache=(total == 0),
        )

    def synchronize_in_background(self,
                                  cancel_event: Optional[threading.Event] = None,
                                  rebuild: bool = False) -> "Future[SyncResult]":
        """
        Submits a run to a private single-worker pool and returns immediately.
        Only one run executes at a time; later submissions queue behind it.
        """
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="library-sync")
        task = self.rebuild if rebuild else self.synchronize
        return self._executor.submit(task, cancel_event)

    def shutdown(self, wait: bool = True):
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None

    def _notify(self, status: str):
        logging.debug(status)
        if self.progress is None:
            return
        try:
            self.progress(status)
        except Exception as e:
            logging.warning(f"Progress sink failed on {status!r}: {e}")

    def _emit_records(self, records: List[MediaRecord]):
        if self.on_records is None:
            return
        try:
            self.on_records(list(records))
        except Exception as e:
            logging.warning(f"Record list callback failed: {e}")

    def _emit_record(self, index: int, record: MediaRecord):
        if self.on_record_analyzed is None:
            return
        try:
            self.on_record_analyzed(index, record)
        except Exception as e:
            logging.warning(f"Record callback failed for {record.path}: {e}")
