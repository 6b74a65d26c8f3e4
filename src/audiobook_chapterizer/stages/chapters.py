"""Chapter timeline -- one contiguous chapter per Track of a Part."""

from pathlib import Path

from ..models import ChapterEntry, Track

_PATH_SEPARATORS = ("/", "\\")


def resolve_title(tag: str | None, path: Path) -> str:
    """Prefer the embedded title tag unless it is empty or looks like a path.

    Falls back to the file's base name without extension.
    """
    if tag is not None:
        tag = tag.strip()
        if tag and not any(sep in tag for sep in _PATH_SEPARATORS):
            return tag
    return path.stem


def build_chapters(tracks: list[Track]) -> list[ChapterEntry]:
    """Cumulative millisecond chapters, starting at 0 and ending at the Part total."""
    chapters = []
    offset_ms = 0
    for track in tracks:
        end_ms = offset_ms + track.duration_ms
        chapters.append(ChapterEntry(start_ms=offset_ms, end_ms=end_ms, title=track.title))
        offset_ms = end_ms
    return chapters
