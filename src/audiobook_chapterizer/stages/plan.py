"""Plan stage -- split Tracks into Parts under a maximum duration.

A single left-to-right greedy fill: Tracks accumulate into the pending
Part until the next one would push it over ``max_duration``. A Track longer
than ``max_duration`` on its own is isolated into a Part by itself. The
planner never looks ahead or rebalances.
"""

from loguru import logger

from ..ffprobe import hms
from ..models import Part

log = logger.bind(stage="plan")


def plan_parts(durations: list[int], max_duration: int) -> list[Part]:
    """Partition ``durations`` into contiguous Parts.

    Every index lands in exactly one Part, in order. A Part exceeds
    ``max_duration`` only when it holds a single oversized Track. A Track
    exactly equal to ``max_duration`` is not oversized.
    """
    parts: list[Part] = []
    running = 0
    start = 0

    def _flush(end: int, total: int) -> None:
        parts.append(Part(index=len(parts) + 1, start=start, end=end, duration=total))

    for i, d in enumerate(durations):
        if d > max_duration:
            if i > start:
                _flush(i - 1, running)
            start = i
            _flush(i, d)
            log.warning(
                f"Track {i} ({hms(d)}) exceeds max part duration "
                f"{hms(max_duration)}; placed in its own part"
            )
            running = 0
            start = i + 1
            continue

        if running + d > max_duration and i > start:
            _flush(i - 1, running)
            running = 0
            start = i
        running += d

    if start < len(durations):
        _flush(len(durations) - 1, running)

    return parts
