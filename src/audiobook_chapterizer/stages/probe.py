"""Probe stage -- resolve per-file duration, bitrate, sample rate and title.

Durations are cross-checked against the median bitrate of the whole run:
a file whose bitrate deviates from the median by more than
``bitrate_deviation_factor`` (either direction) is treated as carrying
corrupt header metadata, and its duration is recomputed from file size::

    duration_seconds = file_size_bytes * 8 / median_bitrate_bps

Unreadable, zero-length and zero-duration files are collected and reported
together so the operator can fix every file in one pass.
"""

from __future__ import annotations

import statistics
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from ..errors import InputRejected, NoInputFiles, ProbeFailed
from ..ffprobe import ProbeResult, hms
from ..models import Track
from .chapters import resolve_title

if TYPE_CHECKING:
    from ..config import ChapterizerConfig
    from ..ffprobe import Prober

log = logger.bind(stage="probe")


def median_bitrate(bitrates: list[int | None], fallback: int) -> int:
    """Median of the positive bitrates, or ``fallback`` when none parsed."""
    parsed = [b for b in bitrates if b]
    if not parsed:
        return fallback
    return int(statistics.median(parsed))


def is_outlier(bitrate: int, median: int, factor: float) -> bool:
    return bitrate > median * factor or bitrate * factor < median


def correct_duration(
    duration: float | None,
    bitrate: int | None,
    size: int,
    median: int,
    factor: float,
) -> tuple[float | None, bool]:
    """Return (duration, corrected).

    When ``bitrate`` is an outlier the duration is recomputed from ``size``
    and ``median``; otherwise ``duration`` is returned unchanged.
    """
    if bitrate and median and is_outlier(bitrate, median, factor):
        return size * 8 / median, True
    return duration, False


def _within(path: Path, root: Path) -> bool:
    return path.resolve().is_relative_to(root.resolve())


def run(
    files: list[Path],
    source_root: Path,
    prober: Prober,
    config: ChapterizerConfig,
) -> list[Track]:
    """Probe every file and return immutable Tracks in input order.

    Files outside ``source_root`` are skipped with a warning. Raises
    InputRejected listing every unusable file.
    """
    probed: list[tuple[Path, ProbeResult]] = []
    rejected: list[tuple[Path, str]] = []

    # First pass: probe everything and gather bitrates for the median
    for f in files:
        if not _within(f, source_root):
            log.warning(f"Skipping file outside source root: {f}")
            continue
        try:
            probed.append((f, prober.probe(f)))
        except ProbeFailed as e:
            log.error(str(e))
            rejected.append((f, e.reason))

    median = median_bitrate([r.bitrate for _, r in probed], config.fallback_bitrate)
    log.debug(f"Median bitrate: {median} bps")

    # Second pass: resolve durations
    tracks: list[Track] = []
    for f, result in probed:
        size = f.stat().st_size
        duration, corrected = correct_duration(
            result.duration,
            result.bitrate,
            size,
            median,
            config.bitrate_deviation_factor,
        )
        if duration is None:
            rejected.append((f, "no duration reported"))
            continue
        if corrected:
            log.warning(
                f"Suspect bitrate {result.bitrate} bps for {f.name} "
                f"(median {median} bps); duration recomputed from file size: "
                f"{hms(duration)} (probed {hms(result.duration or 0)})"
            )

        seconds = int(duration)
        if size == 0:
            rejected.append((f, "zero file size"))
            continue
        if seconds <= 0:
            rejected.append((f, "zero duration"))
            continue

        tracks.append(
            Track(
                path=f,
                duration=seconds,
                bitrate=result.bitrate,
                sample_rate=result.sample_rate,
                title=resolve_title(result.title, f),
                corrected=corrected,
                exact_ms=round(duration * 1000),
            )
        )

    if rejected:
        raise InputRejected(rejected)
    if not tracks:
        raise NoInputFiles(f"no usable audio files under '{source_root}'")

    log.info(f"Probed {len(tracks)} files, total {hms(sum(t.duration for t in tracks))}")
    return tracks
