"""
Custom exception hierarchy for the audio catalog.

This module defines specific exception types so callers can tell a failed
scan from an untrustworthy cache, and both from a single unreadable file.
"""


class AudioCatalogError(Exception):
    """Base exception for all audio catalog errors."""
    pass


class ScanError(AudioCatalogError):
    """Raised when the directory walk fails for a reason other than permissions."""
    pass


class MetadataExtractionError(AudioCatalogError):
    """Raised when tags cannot be read from a file."""
    pass


class CacheError(AudioCatalogError):
    """Raised when the library cache cannot be opened, created or loaded."""
    pass


class CacheWriteError(CacheError):
    """Raised when a single upsert/delete against the cache fails."""
    pass
