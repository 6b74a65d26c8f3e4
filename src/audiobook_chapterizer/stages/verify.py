"""Verify stage -- check a produced container before it is published."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from ..errors import DurationMismatch, OutputCorrupt, OutputEmpty, ProbeFailed
from ..ffprobe import hms

if TYPE_CHECKING:
    from ..config import ChapterizerConfig
    from ..ffprobe import Prober

log = logger.bind(stage="verify")


def run(
    output: Path,
    planned: float,
    prober: Prober,
    config: ChapterizerConfig,
) -> float:
    """Verify ``output`` exists, probes as media, and matches ``planned`` seconds.

    Tolerance is ``max(duration_tolerance_seconds, planned * duration_tolerance_ratio)``.
    Returns the probed duration.
    """
    if not output.is_file() or output.stat().st_size == 0:
        raise OutputEmpty(output, "output file is missing or empty")

    try:
        result = prober.probe(output)
    except ProbeFailed as e:
        raise OutputCorrupt(output, f"not readable as media: {e.reason}") from e

    actual = result.duration
    if actual is None:
        raise OutputCorrupt(output, "prober reported no duration")

    tolerance = config.duration_tolerance(planned)
    if abs(actual - planned) > tolerance:
        raise DurationMismatch(output, planned, actual, tolerance)

    log.debug(
        f"Verified {output.name}: {hms(actual)} "
        f"(planned {hms(planned)}, tolerance {tolerance:.1f}s)"
    )
    return actual
