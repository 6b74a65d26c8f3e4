"""Encode stage -- encode, mux, and verify one Part.

1. Encode the Part's Tracks, in order, into one AAC elementary stream
2. Write the FFMETADATA1 side-car (tags + chapter timeline)
3. Mux stream, side-car and optional cover into ``<final>.partial``
4. Verify the partial container, then rename it onto the final path

Every intermediate file is registered with the run's TempRegistry, so an
interrupted or failed Part leaves nothing behind at the final path.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from ..ffmetadata import render_ffmetadata
from ..models import COVER_NAMES, BookMetadata, Part, PartResult, Track
from ..sanitize import part_filename, part_name
from . import verify
from .chapters import build_chapters

if TYPE_CHECKING:
    from ..context import RunContext
    from ..ffmpeg import Encoder, Muxer, ProgressCallback
    from ..ffprobe import Prober
    from ..models import OutputFormat

log = logger.bind(stage="encode")


def find_cover(source_root: Path) -> Path | None:
    """First of cover.jpg / cover.jpeg / cover.png at the source root."""
    for name in COVER_NAMES:
        candidate = source_root / name
        if candidate.is_file():
            return candidate
    return None


def build_tags(book: BookMetadata, part: Part, total_parts: int) -> dict[str, str]:
    tags = {
        "title": part_name(book.author, book.title, part.index, total_parts),
        "artist": book.author,
        "album_artist": book.author,
        "album": book.title,
        "track": f"{part.index}/{total_parts}",
        "genre": "Audiobook",
    }
    if book.narrator:
        tags["composer"] = book.narrator
    return tags


def output_path(output_dir: Path, book: BookMetadata, part: Part, total_parts: int) -> Path:
    return output_dir / part_filename(book.author, book.title, part.index, total_parts)


def run(
    part: Part,
    tracks: list[Track],
    total_parts: int,
    ctx: RunContext,
    output_format: OutputFormat,
    book: BookMetadata,
    output_dir: Path,
    cover: Path | None,
    encoder: Encoder,
    muxer: Muxer,
    prober: Prober,
    progress: ProgressCallback | None = None,
) -> PartResult:
    """Produce and verify the container for one Part."""
    part_tracks = part.tracks(tracks)
    chapters = build_chapters(part_tracks)
    final = output_path(output_dir, book, part, total_parts)

    stream = ctx.temp.create(suffix=".aac", prefix=f"ab-part{part.index}-")
    log.info(f"Encoding part {part.index}: {len(part_tracks)} files -> {stream.name}")
    encoder.encode([t.path for t in part_tracks], output_format, stream, progress)

    metadata = ctx.temp.create(suffix=".txt", prefix=f"ab-part{part.index}-meta-")
    metadata.write_text(render_ffmetadata(build_tags(book, part, total_parts), chapters))
    log.debug(f"Wrote {len(chapters)} chapters to {metadata}")

    partial = ctx.temp.track(final.with_name(final.name + ".partial"))
    log.info(f"Muxing part {part.index} -> {final.name}")
    muxer.mux(stream, metadata, cover, partial)

    # Chapters end exactly at the Part's millisecond total
    planned = chapters[-1].end_ms / 1000 if chapters else float(part.duration)
    verify.run(partial, planned, prober, ctx.config)

    partial.replace(final)
    ctx.temp.release(partial)
    ctx.temp.remove(stream)
    ctx.temp.remove(metadata)

    return PartResult(part=part, output=final, chapters=len(chapters))
