import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Set


def path_key(path) -> str:
    """Case-insensitive identity key for a file path."""
    return str(path).casefold()


@dataclass(frozen=True)
class FileSignature:
    """
    Cheap change-detection fingerprint: (size, mtime). Not a content hash.
    """
    size: int
    modified_at: datetime

    @classmethod
    def from_stat(cls, st: os.stat_result) -> "FileSignature":
        return cls(size=st.st_size,
                   modified_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc))


@dataclass
class MediaRecord:
    """
    Represents an audio file found during a scan.
    Metadata fields are only meaningful once analyzed is True.
    """
    path: Path
    name: str
    ext: str                # as found on disk, e.g. '.FLAC'
    signature: FileSignature
    analyzed: bool = False

    artist: Optional[str] = None
    album: Optional[str] = None
    title: Optional[str] = None
    year: Optional[int] = None
    duration: Optional[float] = None     # seconds
    track: Optional[int] = None
    total_tracks: Optional[int] = None
    disc: Optional[int] = None
    total_discs: Optional[int] = None
    mime_type: Optional[str] = None
    has_album_art: Optional[bool] = None
    filename_matches_format: Optional[bool] = None

    issues: List[str] = field(default_factory=list)

    @property
    def key(self) -> str:
        return path_key(self.path)

    @property
    def size_bytes(self) -> int:
        return self.signature.size


@dataclass
class CacheEntry:
    """A persisted record plus the signature it was computed at."""
    record: MediaRecord
    signature: FileSignature


@dataclass
class SyncPlan:
    """
    Three-way diff between the current scan and the cache.
    reusable holds rehydrated cache records; to_analyze holds fresh scan
    records in scan order; to_prune holds cached paths no longer on disk.
    """
    reusable: List[MediaRecord] = field(default_factory=list)
    to_analyze: List[MediaRecord] = field(default_factory=list)
    to_prune: List[str] = field(default_factory=list)

    @property
    def reusable_keys(self) -> Set[str]:
        return {r.key for r in self.reusable}

    @property
    def analyze_keys(self) -> Set[str]:
        return {r.key for r in self.to_analyze}

    @property
    def prune_keys(self) -> Set[str]:
        return {path_key(p) for p in self.to_prune}


@dataclass
class LibraryStats:
    artist_count: int = 0
    album_count: int = 0
    song_count: int = 0
    total_duration: float = 0.0     # seconds


@dataclass
class SyncResult:
    records: List[MediaRecord] = field(default_factory=list)
    stats: LibraryStats = field(default_factory=LibraryStats)
    plan: SyncPlan = field(default_factory=SyncPlan)
    warnings: List[str] = field(default_factory=list)
    canceled: bool = False
    from_cache: bool = False
