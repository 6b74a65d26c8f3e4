"""Filename sanitization for output containers."""

import re
import unicodedata

from loguru import logger

from .models import OUTPUT_SUFFIX

log = logger.bind(stage="sanitize")

PLACEHOLDER = "Unknown"

# Path separators plus characters Windows/SMB shares refuse
_UNSAFE = re.compile(r'[/\\:"*?<>|]+')
_WHITESPACE = re.compile(r"\s+")


# Cc controls and lone surrogates; format characters such as ZWJ stay
_STRIPPED_CATEGORIES = ("Cc", "Cs")


def _strip_control(text: str) -> str:
    return "".join(ch for ch in text if unicodedata.category(ch) not in _STRIPPED_CATEGORIES)


def sanitize_segment(text: str, placeholder: str = PLACEHOLDER) -> str:
    """Map arbitrary text to a safe single filesystem path segment.

    Replaces path separators and reserved characters with ``_``, strips
    control characters, collapses whitespace, removes leading dots, and
    truncates to 200 bytes. Empty results become ``placeholder``.
    """
    # Whitespace controls (tab, newline) collapse to spaces before stripping
    sanitized = _WHITESPACE.sub(" ", text)
    sanitized = _strip_control(sanitized)
    sanitized = _UNSAFE.sub("_", sanitized)
    sanitized = _WHITESPACE.sub(" ", sanitized).strip()
    # Remove leading dots (hidden files, "..")
    sanitized = re.sub(r"^\.+", "", sanitized).strip()

    # Leave room for " - Part NN.m4b" inside a 255-byte name
    if len(sanitized.encode("utf-8")) > 200:
        while len(sanitized.encode("utf-8")) > 200 and sanitized:
            sanitized = sanitized[:-1]
        sanitized = sanitized.rstrip()

    if not sanitized.strip("_ "):
        log.debug(f"sanitize_segment({text!r}) -> placeholder")
        return placeholder

    return sanitized


def part_name(author: str, title: str, index: int, total: int) -> str:
    """Display name of a Part, used as its container title tag."""
    if total > 1:
        return f"{author} - {title} - Part {index}"
    return f"{author} - {title}"


def part_filename(author: str, title: str, index: int, total: int) -> str:
    """Deterministic output filename for a Part."""
    name = f"{sanitize_segment(author)} - {sanitize_segment(title)}"
    if total > 1:
        name += f" - Part {index}"
    return name + OUTPUT_SUFFIX
