import os
import logging
import threading
from pathlib import Path
from typing import Iterator, List, Optional, Union

from .. import config
from ..exceptions import ScanError
from ..models import FileSignature, MediaRecord


class DiskScanner:
    """
    Walks a library root and produces unanalyzed MediaRecords.
    Only filesystem attributes are touched; file contents are never read.
    """

    def scan(self,
             root: Optional[Union[str, Path]],
             recursive: bool = True,
             cancel_event: Optional[threading.Event] = None) -> List[MediaRecord]:
        """
        Returns one record per supported audio file under root.

        A missing root is an empty library, not an error. If cancel_event is
        set mid-walk the records gathered so far are returned.
        """
        records: List[MediaRecord] = []
        for entry in self._iter_audio_entries(root, recursive, cancel_event):
            try:
                st = entry.stat(follow_symlinks=False)
            except PermissionError:
                logging.warning(f"Permission denied: {entry.path}")
                continue
            except OSError as e:
                raise ScanError(f"Failed to stat {entry.path}: {e}") from e

            path = Path(entry.path)
            records.append(MediaRecord(
                path=path,
                name=path.name,
                ext=self.extension_of(path.name),
                signature=FileSignature.from_stat(st),
            ))

        logging.debug(f"Scan of {root} found {len(records)} audio files")
        return records

    def count(self,
              root: Optional[Union[str, Path]],
              recursive: bool = True,
              cancel_event: Optional[threading.Event] = None) -> int:
        """Same walk as scan(), without building records."""
        return sum(1 for _ in self._iter_audio_entries(root, recursive, cancel_event))

    @staticmethod
    def extension_of(name: str) -> str:
        """
        Text from the last dot on, as found on disk. Unlike Path.suffix a
        bare dot-name counts: extension_of(".mp3") == ".mp3".
        """
        dot = name.rfind(".")
        return name[dot:] if dot != -1 and dot < len(name) - 1 else ""

    @classmethod
    def is_supported(cls, path: Union[str, Path]) -> bool:
        return cls.extension_of(Path(path).name).lower() in config.SUPPORTED_EXTS

    def _iter_audio_entries(self,
                            root: Optional[Union[str, Path]],
                            recursive: bool,
                            cancel_event: Optional[threading.Event]) -> Iterator[os.DirEntry]:
        """Depth-first walker using os.scandir for speed."""
        if not root:
            return
        root = Path(os.path.abspath(root))
        if not root.is_dir():
            logging.info(f"Library root does not exist: {root}")
            return

        stack = [root]
        while stack:
            if cancel_event is not None and cancel_event.is_set():
                logging.info("Scan canceled")
                return

            current = stack.pop()
            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except PermissionError:
                logging.warning(f"Permission denied: {current}")
                continue
            except OSError as e:
                raise ScanError(f"Failed to read directory {current}: {e}") from e

            # Sort for stable traversal order
            entries.sort(key=lambda e: e.name.lower())

            dirs = []
            files = []
            for e in entries:
                try:
                    if e.is_dir(follow_symlinks=False):
                        dirs.append(Path(e.path))
                    elif e.is_file(follow_symlinks=False) and self.is_supported(e.name):
                        files.append(e)
                except PermissionError:
                    logging.warning(f"Permission denied: {e.path}")

            # Push dirs to stack (reversed so we process A before Z)
            if recursive:
                for d in reversed(dirs):
                    stack.append(d)

            for f in files:
                if cancel_event is not None and cancel_event.is_set():
                    logging.info("Scan canceled")
                    return
                yield f
