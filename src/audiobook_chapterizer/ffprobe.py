"""FFprobe subprocess wrapper for audio file inspection.

``FFprobe.probe`` returns a ``ProbeResult`` with both the audio-stream
scoped duration and the container duration so callers can prefer the
former and fall back to the latter. Values ffprobe reports as ``N/A`` (or
omits) come back as None.
"""

from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from loguru import logger

from .errors import EncodeTimeout, ProbeFailed, ToolMissing

log = logger.bind(stage="probe")

NOT_APPLICABLE = "N/A"


@dataclass(frozen=True)
class ProbeResult:
    stream_duration: float | None = None
    format_duration: float | None = None
    bitrate: int | None = None  # bits/sec
    sample_rate: int | None = None
    title: str | None = None

    @property
    def duration(self) -> float | None:
        """Stream duration, falling back to the container duration."""
        if self.stream_duration is not None:
            return self.stream_duration
        return self.format_duration


class Prober(Protocol):
    def probe(self, path: Path) -> ProbeResult: ...


def _parse_float(value) -> float | None:
    if value is None or value == NOT_APPLICABLE:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_int(value) -> int | None:
    parsed = _parse_float(value)
    return int(parsed) if parsed is not None else None


def parse_probe_output(stdout: str) -> ProbeResult:
    """Build a ProbeResult from ffprobe ``-of json`` output."""
    data = json.loads(stdout)
    fmt = data.get("format", {})
    streams = data.get("streams", [])
    stream = streams[0] if streams else {}

    # Tag keys vary in case between containers (TITLE vs title)
    tags = {k.lower(): v for k, v in fmt.get("tags", {}).items()}
    stream_tags = {k.lower(): v for k, v in stream.get("tags", {}).items()}
    title = tags.get("title") or stream_tags.get("title")

    return ProbeResult(
        stream_duration=_parse_float(stream.get("duration")),
        format_duration=_parse_float(fmt.get("duration")),
        bitrate=_parse_int(fmt.get("bit_rate")) or _parse_int(stream.get("bit_rate")),
        sample_rate=_parse_int(stream.get("sample_rate")),
        title=title or None,
    )


class FFprobe:
    """Prober backed by the ffprobe binary."""

    def __init__(self, binary: str = "ffprobe", timeout: float | None = None) -> None:
        self.binary = binary
        self.timeout = timeout

    def _run(self, args: list[str]) -> subprocess.CompletedProcess:
        """Run ffprobe with common flags."""
        cmd = [self.binary, "-v", "error"] + args
        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise ToolMissing(f"{self.binary} not found on PATH") from e
        except subprocess.TimeoutExpired as e:
            raise EncodeTimeout(self.binary, self.timeout or 0) from e

    def probe(self, path: Path) -> ProbeResult:
        """Probe duration, bitrate, sample rate and title of ``path``.

        Raises ProbeFailed when ffprobe cannot read the file at all.
        """
        result = self._run([
            "-select_streams", "a:0",
            "-show_entries",
            "format=duration,bit_rate:format_tags=title"
            ":stream=duration,bit_rate,sample_rate:stream_tags=title",
            "-of", "json",
            str(path),
        ])
        if result.returncode != 0:
            raise ProbeFailed(path, result.stderr.strip() or f"exit code {result.returncode}")
        try:
            probed = parse_probe_output(result.stdout)
        except (json.JSONDecodeError, AttributeError) as e:
            raise ProbeFailed(path, f"unparseable ffprobe output: {e}") from e
        log.debug(f"Probed {path.name}: {probed}")
        return probed


def hms(seconds: float) -> str:
    """Render seconds as ``H h: M m: S s``."""
    total = int(seconds)
    h = total // 3600
    m = (total % 3600) // 60
    s = total % 60
    return f"{h} h: {m} m: {s} s"
