"""
Configuration constants for the audio catalog.
"""
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# --- File Type Definitions ---
SUPPORTED_EXTS = {'.flac', '.mp3', '.m4a', '.aac', '.ogg', '.wav', '.wma', '.ape', '.opus'}

# Extension -> substrings, any of which must appear in the parser's MIME type.
# Extensions missing from this map are assumed to match.
EXT_MIME_HINTS = {
    '.flac': ('flac',),
    '.mp3': ('mpeg', 'mp3'),
    '.m4a': ('mp4', 'm4a'),
    '.aac': ('aac',),
    '.ogg': ('ogg', 'vorbis'),
    '.wav': ('wav',),
    '.wma': ('asf', 'wma'),
    '.ape': ('ape',),
    '.opus': ('opus',),
}

# --- Issue Strings ---
# Order here is the order issues are appended to a record.
ISSUE_FORMAT_MISMATCH = "File extension doesn't match audio format"
ISSUE_NO_ALBUM_ART = "No album art found"
ISSUE_MISSING_TITLE = "Missing title tag"
ISSUE_MISSING_ARTIST = "Missing artist tag"
ISSUE_MISSING_ALBUM = "Missing album tag"
ISSUE_ANALYZE_FAILED = "Failed to analyze: {error}"

# --- Cache Location ---
APP_DIR_NAME = "audio_catalog"
CACHE_FILE_NAME = "library.db"

ENV_ROOT = "AUDIO_CATALOG_ROOT"
ENV_DB = "AUDIO_CATALOG_DB"


def user_data_dir() -> Path:
    """Per-user application data directory (not created here)."""
    if sys.platform == "win32":
        base = os.environ.get("LOCALAPPDATA") or Path.home() / "AppData" / "Local"
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = os.environ.get("XDG_DATA_HOME") or Path.home() / ".local" / "share"
    return Path(base) / APP_DIR_NAME


def default_cache_path() -> Path:
    return user_data_dir() / CACHE_FILE_NAME


@dataclass
class LibraryConfig:
    """
    Everything a synchronization run needs to know about its environment.

    root_path may be None: an unconfigured library is valid and simply empty.
    """
    root_path: Optional[Path] = None
    cache_path: Optional[Path] = None
    recursive: bool = True

    def __post_init__(self):
        if self.root_path is not None:
            self.root_path = Path(self.root_path)
        self.cache_path = Path(self.cache_path) if self.cache_path else default_cache_path()

    @classmethod
    def from_env(cls, root_path: Optional[Path] = None,
                 cache_path: Optional[Path] = None,
                 recursive: bool = True) -> "LibraryConfig":
        """Explicit arguments win over AUDIO_CATALOG_ROOT / AUDIO_CATALOG_DB."""
        env_root = os.environ.get(ENV_ROOT)
        env_db = os.environ.get(ENV_DB)
        return cls(
            root_path=root_path or (Path(env_root) if env_root else None),
            cache_path=cache_path or (Path(env_db) if env_db else None),
            recursive=recursive,
        )
