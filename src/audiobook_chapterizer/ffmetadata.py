"""FFMETADATA1 side-car documents: escaping, rendering, and parsing.

The document is line oriented::

    ;FFMETADATA1
    title=Author - Title
    artist=Author

    [CHAPTER]
    TIMEBASE=1/1000
    START=0
    END=312000
    title=Chapter 1

Escaping rules for interpolated values: ``\\``, ``=``, ``;`` and ``#`` are
prefixed with a backslash; carriage returns are dropped and newlines become
spaces so a value always stays on one line.
"""

from __future__ import annotations

from fractions import Fraction

from .models import ChapterEntry

HEADER = ";FFMETADATA1"
CHAPTER_SECTION = "[CHAPTER]"
TIMEBASE_MS = "1/1000"

_SPECIAL = ("\\", "=", ";", "#")


def escape_value(text: str) -> str:
    r"""Escape a value for interpolation after ``key=``."""
    text = text.replace("\\", "\\\\")  # Must be first
    for ch in _SPECIAL[1:]:
        text = text.replace(ch, "\\" + ch)
    text = text.replace("\r", "")
    text = text.replace("\n", " ")
    return text


def unescape_value(text: str) -> str:
    out = []
    chars = iter(text)
    for ch in chars:
        if ch == "\\":
            out.append(next(chars, ""))
        else:
            out.append(ch)
    return "".join(out)


def _split_key_value(line: str) -> tuple[str, str] | None:
    """Split on the first unescaped ``=``."""
    escaped = False
    for i, ch in enumerate(line):
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == "=":
            return unescape_value(line[:i]), unescape_value(line[i + 1 :])
    return None


def render_ffmetadata(tags: dict[str, str], chapters: list[ChapterEntry]) -> str:
    """Render top-level tags and millisecond chapters as an FFMETADATA1 document.

    Empty tag values are omitted.
    """
    lines = [HEADER]
    for key, value in tags.items():
        if value:
            lines.append(f"{key}={escape_value(value)}")

    for chapter in chapters:
        lines.extend(
            [
                "",
                CHAPTER_SECTION,
                f"TIMEBASE={TIMEBASE_MS}",
                f"START={chapter.start_ms}",
                f"END={chapter.end_ms}",
                f"title={escape_value(chapter.title)}",
            ]
        )

    return "\n".join(lines) + "\n"


def _to_ms(value: str, timebase: Fraction) -> int:
    return int(Fraction(int(value)) * timebase * 1000)


def parse_ffmetadata(text: str) -> tuple[dict[str, str], list[ChapterEntry]]:
    """Parse an FFMETADATA1 document into (tags, chapters).

    Chapter offsets are converted to milliseconds using each chapter's
    TIMEBASE. Sections other than [CHAPTER] are skipped.
    Raises ValueError on a missing header or malformed chapter.
    """
    lines = text.splitlines()
    if not lines or lines[0].strip() != HEADER:
        raise ValueError("missing ;FFMETADATA1 header")

    tags: dict[str, str] = {}
    chapters: list[ChapterEntry] = []
    section: str | None = None
    current: dict[str, str] = {}

    def _flush_chapter() -> None:
        if section != CHAPTER_SECTION:
            return
        try:
            timebase = Fraction(current.get("TIMEBASE", TIMEBASE_MS))
            chapters.append(
                ChapterEntry(
                    start_ms=_to_ms(current["START"], timebase),
                    end_ms=_to_ms(current["END"], timebase),
                    title=current.get("title", ""),
                )
            )
        except (KeyError, ValueError, ZeroDivisionError) as e:
            raise ValueError(f"malformed chapter {current!r}: {e}") from e

    for raw in lines[1:]:
        line = raw.strip()
        if not line or line.startswith((";", "#")):
            continue
        if line.startswith("[") and line.endswith("]"):
            _flush_chapter()
            section = line
            current = {}
            continue
        pair = _split_key_value(raw.lstrip())
        if pair is None:
            continue
        key, value = pair
        if section is None:
            tags[key] = value
        else:
            current[key] = value

    _flush_chapter()
    return tags, chapters
