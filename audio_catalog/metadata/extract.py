import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple

from mutagen import File as MutagenFile

from .. import config
from ..exceptions import MetadataExtractionError
from ..models import MediaRecord

YEAR_RE = re.compile(r'(\d{4})')

# Tag keys per container family, tried in order.
# ID3 (mp3/wav), MP4 (m4a), Vorbis comments (flac/ogg/opus), APEv2 (ape), ASF (wma)
ARTIST_KEYS = ['TPE1', '\xa9ART', 'artist', 'Artist', 'Author', 'WM/AlbumArtist']
ALBUM_KEYS = ['TALB', '\xa9alb', 'album', 'Album', 'WM/AlbumTitle']
TITLE_KEYS = ['TIT2', '\xa9nam', 'title', 'Title']
YEAR_KEYS = ['TDRC', 'TYER', '\xa9day', 'date', 'year', 'Year', 'WM/Year']
TRACK_KEYS = ['TRCK', 'trkn', 'tracknumber', 'Track', 'WM/TrackNumber']
TRACK_TOTAL_KEYS = ['tracktotal', 'totaltracks']
DISC_KEYS = ['TPOS', 'disk', 'discnumber', 'Disc', 'WM/PartOfSet']
DISC_TOTAL_KEYS = ['disctotal', 'totaldiscs']


@dataclass
class TagInfo:
    """
    What the tag parser reports for one file.

    mime_aliases holds any additional MIME names the parser associates with
    the detected container (mutagen reports several per format).
    """
    performer: Optional[str] = None
    album: Optional[str] = None
    title: Optional[str] = None
    year: Optional[int] = None
    duration: Optional[float] = None
    track: Optional[int] = None
    total_tracks: Optional[int] = None
    disc: Optional[int] = None
    total_discs: Optional[int] = None
    mime_type: Optional[str] = None
    mime_aliases: Tuple[str, ...] = ()
    picture_count: int = 0


TagReader = Callable[[Path], TagInfo]


def read_tags(path: Path) -> TagInfo:
    """
    Reads tags and stream info with mutagen.
    Raises MetadataExtractionError if the container is not recognized;
    mutagen's own errors propagate unchanged.
    """
    audio = MutagenFile(str(path))
    if audio is None:
        raise MetadataExtractionError(f"Unrecognized audio format: {path.name}")

    tags = audio.tags
    mimes = list(getattr(audio, 'mime', []) or [])

    track, total_tracks = _parse_number_pair(_get_tag_value(tags, TRACK_KEYS))
    disc, total_discs = _parse_number_pair(_get_tag_value(tags, DISC_KEYS))
    if total_tracks is None:
        total_tracks, _ = _parse_number_pair(_get_tag_value(tags, TRACK_TOTAL_KEYS))
    if total_discs is None:
        total_discs, _ = _parse_number_pair(_get_tag_value(tags, DISC_TOTAL_KEYS))

    duration = None
    info = getattr(audio, 'info', None)
    if info is not None:
        duration = getattr(info, 'length', None)

    return TagInfo(
        performer=_as_text(_get_tag_value(tags, ARTIST_KEYS)),
        album=_as_text(_get_tag_value(tags, ALBUM_KEYS)),
        title=_as_text(_get_tag_value(tags, TITLE_KEYS)),
        year=_parse_year(_get_tag_value(tags, YEAR_KEYS)),
        duration=float(duration) if duration is not None else None,
        track=track,
        total_tracks=total_tracks,
        disc=disc,
        total_discs=total_discs,
        mime_type=mimes[0] if mimes else None,
        mime_aliases=tuple(mimes[1:]),
        picture_count=_count_pictures(audio),
    )


def _get_tag_value(tags, keys: List[str]) -> Any:
    """Returns the first non-empty raw value among keys, unwrapped from frames/lists."""
    if tags is None:
        return None
    for key in keys:
        try:
            value = tags.get(key)
        except (KeyError, ValueError):
            # Vorbis comments reject non-ASCII keys such as MP4 atoms
            continue
        if value is None:
            continue
        # ID3 frames carry their values in .text
        if hasattr(value, 'text'):
            value = value.text
        if isinstance(value, (list, tuple)) and not _is_number_pair(value):
            if not value:
                continue
            value = value[0]
        # ASF attributes wrap the payload in .value
        if hasattr(value, 'value') and not isinstance(value, (str, bytes)):
            value = value.value
        if value == '' or value is None:
            continue
        return value
    return None


def _is_number_pair(value) -> bool:
    return isinstance(value, tuple) and len(value) == 2 and all(isinstance(v, int) for v in value)


def _as_text(value) -> Optional[str]:
    return None if value is None else str(value)


def _parse_year(value) -> Optional[int]:
    if value is None:
        return None
    m = YEAR_RE.search(str(value))
    return int(m.group(1)) if m else None


def _parse_number_pair(value) -> Tuple[Optional[int], Optional[int]]:
    """Handles '3', '3/12' and MP4's (3, 12)."""
    if value is None:
        return None, None
    if isinstance(value, tuple):
        parts = list(value) + [None]
    else:
        parts = str(value).split('/') + [None]
    return _to_positive_int(parts[0]), _to_positive_int(parts[1])


def _to_positive_int(value) -> Optional[int]:
    if value is None:
        return None
    try:
        number = int(str(value).strip())
    except ValueError:
        return None
    return number if number > 0 else None


def _count_pictures(audio) -> int:
    count = len(getattr(audio, 'pictures', None) or [])  # FLAC
    tags = audio.tags
    if tags is None:
        return count
    if hasattr(tags, 'getall'):
        count += len(tags.getall('APIC'))  # ID3
    for key in ('covr', 'metadata_block_picture', 'WM/Picture', 'Cover Art (Front)'):
        try:
            value = tags.get(key)
        except (KeyError, ValueError):
            continue
        if value is None:
            continue
        count += len(value) if isinstance(value, list) else 1
    return count


class MetadataExtractor:
    """
    Turns an unanalyzed MediaRecord into an analyzed one.

    The tag reader is pluggable; by default it is read_tags (mutagen).
    Reader failures never propagate: the record is marked analyzed with a
    single failure issue so a corrupt file is not retried every scan.
    """

    def __init__(self, tag_reader: Optional[TagReader] = None):
        self.tag_reader = tag_reader or read_tags

    def extract(self, record: MediaRecord) -> MediaRecord:
        if record.analyzed:
            return record

        try:
            tags = self.tag_reader(record.path)
        except Exception as e:
            logging.warning(f"Failed to analyze {record.path}: {e}")
            return MediaRecord(
                path=record.path,
                name=record.name,
                ext=record.ext,
                signature=record.signature,
                analyzed=True,
                issues=[config.ISSUE_ANALYZE_FAILED.format(error=str(e) or type(e).__name__)],
            )

        analyzed = MediaRecord(
            path=record.path,
            name=record.name,
            ext=record.ext,
            signature=record.signature,
            analyzed=True,
            artist=tags.performer,
            album=tags.album,
            title=tags.title,
            year=tags.year,
            duration=tags.duration,
            track=tags.track,
            total_tracks=tags.total_tracks,
            disc=tags.disc,
            total_discs=tags.total_discs,
            mime_type=tags.mime_type,
            has_album_art=tags.picture_count > 0,
            filename_matches_format=self.matches_format(record.ext, tags),
        )
        analyzed.issues = self.identify_issues(analyzed)
        return analyzed

    @staticmethod
    def matches_format(ext: str, tags: TagInfo) -> bool:
        """Does the parser's MIME type agree with the file extension?"""
        hints = config.EXT_MIME_HINTS.get(ext.lower())
        if hints is None:
            return True
        mimes = [m.lower() for m in (tags.mime_type, *tags.mime_aliases) if m]
        return any(h in m for h in hints for m in mimes)

    @staticmethod
    def identify_issues(record: MediaRecord) -> List[str]:
        issues = []
        if record.filename_matches_format is False:
            issues.append(config.ISSUE_FORMAT_MISMATCH)
        if record.has_album_art is False:
            issues.append(config.ISSUE_NO_ALBUM_ART)
        if not (record.title or '').strip():
            issues.append(config.ISSUE_MISSING_TITLE)
        if not (record.artist or '').strip():
            issues.append(config.ISSUE_MISSING_ARTIST)
        if not (record.album or '').strip():
            issues.append(config.ISSUE_MISSING_ALBUM)
        return issues
