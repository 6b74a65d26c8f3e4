"""Collect stage -- enumerate input audio files from a directory or playlist."""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from ..errors import ManifestEntryMissing, NoInputFiles, UsageError
from ..models import AUDIO_EXTENSIONS, EXTENDED_AUDIO_EXTENSIONS

if TYPE_CHECKING:
    from ..config import ChapterizerConfig

log = logger.bind(stage="collect")


def natural_sort_key(p: Path) -> tuple[list, str]:
    """Version-aware sort key: numeric runs compare by value.

    ``track2`` sorts before ``track10``. The raw path string breaks ties
    so ordering stays deterministic for names differing only in case.
    """
    text = str(p)
    return (
        [int(c) if c.isdigit() else c.lower() for c in re.split(r"(\d+)", text)],
        text,
    )


def allowed_extensions(config: ChapterizerConfig) -> frozenset[str]:
    return EXTENDED_AUDIO_EXTENSIONS if config.extended_formats else AUDIO_EXTENSIONS


def _dedupe(paths: list[Path]) -> list[Path]:
    seen: set[Path] = set()
    unique = []
    for p in paths:
        key = p.resolve()
        if key in seen:
            log.debug(f"Dropping duplicate input {p}")
            continue
        seen.add(key)
        unique.append(p)
    return unique


def collect_directory(
    source_root: Path,
    extensions: frozenset[str],
    exclude: Path | None = None,
) -> list[Path]:
    """Find audio files under ``source_root``, skipping anything under ``exclude``."""
    exclude_resolved = exclude.resolve() if exclude is not None else None
    found = []
    for f in source_root.rglob("*"):
        if not f.is_file() or f.suffix.lower() not in extensions:
            continue
        if exclude_resolved is not None and f.resolve().is_relative_to(exclude_resolved):
            continue
        found.append(f)

    found.sort(key=lambda p: natural_sort_key(p.relative_to(source_root)))
    return _dedupe(found)


def read_manifest(manifest: Path, extensions: frozenset[str]) -> list[Path]:
    """Read an ordered playlist of paths.

    Blank lines and ``#`` comments are skipped. Relative entries resolve
    against the manifest's directory. Every entry must be an existing file.
    Entries with a non-audio extension are skipped with a warning.
    """
    base = manifest.parent
    entries = []
    for line_no, raw in enumerate(manifest.read_text().splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        path = Path(line).expanduser()
        if not path.is_absolute():
            path = base / path
        if not path.is_file():
            raise ManifestEntryMissing(manifest, line_no, line)
        if path.suffix.lower() not in extensions:
            log.warning(f"Skipping non-audio manifest entry: {line}")
            continue
        entries.append(path)
    return _dedupe(entries)


def run(source: Path, config: ChapterizerConfig) -> tuple[Path, list[Path]]:
    """Resolve the source root and the ordered input files.

    A directory is scanned recursively (excluding its output directory);
    a regular file is read as a playlist manifest whose directory becomes
    the source root. Raises NoInputFiles when nothing is found.
    """
    extensions = allowed_extensions(config)

    if source.is_dir():
        source_root = source.resolve()
        files = collect_directory(
            source_root,
            extensions,
            exclude=source_root / config.output_dirname,
        )
    elif source.is_file():
        manifest = source.resolve()
        source_root = manifest.parent
        files = read_manifest(manifest, extensions)
    else:
        raise UsageError(f"'{source}' not found")

    if not files:
        raise NoInputFiles(f"no audio files found in '{source}'")

    log.info(f"Found {len(files)} files")
    return source_root, files
