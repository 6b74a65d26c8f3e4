"""Core enums, constants, and data types for the audiobook chapterizer.

Enum:
    QualityTier  -- Output quality tier chosen by format negotiation.

Dataclasses:
    Track        -- One probed input file. Frozen after probing.
    Part         -- A contiguous run of Tracks written to one container.
    ChapterEntry -- One chapter marker in milliseconds, relative to its Part.
    OutputFormat -- Negotiated sample rate and bitrate shared by every Part.
    BookMetadata -- Author, title and optional narrator for container tags.
    PartResult   -- Outcome of encoding one Part (for the run summary).
    RunSummary   -- Everything the CLI reports after a run.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path


class QualityTier(StrEnum):
    HIGH = "high"
    LOW = "low"


AUDIO_EXTENSIONS: frozenset[str] = frozenset({".mp3", ".wav", ".flac"})

# Admitted only with extended_formats enabled
EXTENDED_AUDIO_EXTENSIONS: frozenset[str] = AUDIO_EXTENSIONS | {".m4a", ".opus"}

# Looked up in order at the source root
COVER_NAMES: tuple[str, ...] = ("cover.jpg", "cover.jpeg", "cover.png")

OUTPUT_SUFFIX = ".m4b"


@dataclass(frozen=True)
class Track:
    """One input audio file with its resolved duration.

    ``duration`` is truncated to whole seconds for planning and display.
    Chapter offsets and output verification use ``duration_ms``, which keeps
    the probed (or corrected) duration at millisecond precision.
    """

    path: Path
    duration: int  # whole seconds, possibly corrected
    bitrate: int | None  # bits/sec as reported by the prober
    sample_rate: int | None
    title: str
    corrected: bool = False
    exact_ms: int | None = None

    @property
    def duration_ms(self) -> int:
        if self.exact_ms is not None:
            return self.exact_ms
        return self.duration * 1000


@dataclass(frozen=True)
class Part:
    """A contiguous, inclusive Track index range [start, end]."""

    index: int  # 1-based
    start: int
    end: int
    duration: int

    @property
    def track_count(self) -> int:
        return self.end - self.start + 1

    def tracks(self, tracks: list[Track]) -> list[Track]:
        return tracks[self.start : self.end + 1]


@dataclass(frozen=True)
class ChapterEntry:
    start_ms: int
    end_ms: int
    title: str


@dataclass(frozen=True)
class OutputFormat:
    sample_rate: int
    bitrate_kbps: int
    tier: QualityTier

    @property
    def bitrate(self) -> str:
        """Bitrate in ffmpeg notation, e.g. ``112k``."""
        return f"{self.bitrate_kbps}k"

    def __str__(self) -> str:
        return f"{self.sample_rate} Hz @ {self.bitrate}"


@dataclass(frozen=True)
class BookMetadata:
    author: str
    title: str
    narrator: str = ""


@dataclass
class PartResult:
    part: Part
    output: Path
    chapters: int
    skipped: bool = False


@dataclass
class RunSummary:
    """Result summary for one run."""

    source_root: Path
    output_dir: Path
    tracks: list[Track] = field(default_factory=list)
    parts: list[Part] = field(default_factory=list)
    output_format: OutputFormat | None = None
    results: list[PartResult] = field(default_factory=list)

    @property
    def total_duration(self) -> int:
        return sum(t.duration for t in self.tracks)
