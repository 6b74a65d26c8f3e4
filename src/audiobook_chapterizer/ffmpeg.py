"""FFmpeg subprocess wrappers: tool checks, AAC encode, and M4B mux.

The encode and mux steps sit behind the narrow ``Encoder`` and ``Muxer``
protocols so the pipeline can run against in-process fakes.
"""

from __future__ import annotations

import functools
import shutil
import subprocess
import threading
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from loguru import logger

from .errors import EncodeTimeout, ExternalToolError, ToolMissing

if TYPE_CHECKING:
    from .context import TempRegistry
    from .models import OutputFormat

log = logger.bind(stage="encode")

ProgressCallback = Callable[[float], None]

# Keep the tail of stderr in error messages
_STDERR_TAIL = 500


class Encoder(Protocol):
    def encode(
        self,
        inputs: list[Path],
        output_format: OutputFormat,
        destination: Path,
        progress: ProgressCallback | None = None,
    ) -> None: ...


class Muxer(Protocol):
    def mux(
        self,
        stream: Path,
        metadata: Path,
        cover: Path | None,
        destination: Path,
    ) -> None: ...


@functools.cache
def detect_encoder(ffmpeg_bin: str = "ffmpeg") -> str | None:
    """Return ``aac_at`` (Apple AudioToolbox) if available, else ``aac``.

    Returns None when ffmpeg offers no AAC encoder at all.
    """
    try:
        result = subprocess.run(
            [ffmpeg_bin, "-hide_banner", "-encoders"],
            capture_output=True,
            text=True,
        )
    except FileNotFoundError:
        return None
    names = {
        parts[1]
        for parts in (line.split() for line in result.stdout.splitlines())
        if len(parts) >= 2
    }
    if "aac_at" in names:
        log.info("Using aac_at encoder (Apple AudioToolbox)")
        return "aac_at"
    if "aac" in names:
        log.debug("Using default aac encoder")
        return "aac"
    return None


def check_tools(ffmpeg_bin: str = "ffmpeg", ffprobe_bin: str = "ffprobe") -> dict[str, str]:
    """Verify ffmpeg, ffprobe and an AAC encoder are available.

    Returns a mapping of what was found. Raises ToolMissing otherwise.
    """
    found: dict[str, str] = {}
    for name in (ffprobe_bin, ffmpeg_bin):
        path = shutil.which(name)
        if not path:
            raise ToolMissing(f"{name} required but not found on PATH")
        found[name] = path

    encoder = detect_encoder(ffmpeg_bin)
    if encoder is None:
        raise ToolMissing(f"{ffmpeg_bin} has no AAC encoder")
    found["encoder"] = encoder
    return found


def concat_list(inputs: list[Path]) -> str:
    """Render an ffmpeg concat demuxer list with escaped paths."""
    lines = []
    for path in inputs:
        escaped = str(path).replace("'", "'\\''")
        lines.append(f"file '{escaped}'")
    return "\n".join(lines) + "\n"


def _parse_progress_line(line: str) -> float | None:
    """Return encoded seconds from an ``out_time_us``/``out_time_ms`` line.

    Both keys carry microseconds in ffmpeg's progress output.
    """
    key, _, value = line.strip().partition("=")
    if key not in ("out_time_us", "out_time_ms"):
        return None
    try:
        return int(value) / 1_000_000
    except ValueError:
        return None


class _FFmpegTool:
    def __init__(
        self,
        temp: TempRegistry,
        binary: str = "ffmpeg",
        timeout: float | None = None,
    ) -> None:
        self.temp = temp
        self.binary = binary
        self.timeout = timeout

    def _run(self, args: list[str], progress: ProgressCallback | None = None) -> None:
        """Run ffmpeg, streaming ``-progress`` output to ``progress``.

        stderr goes to a registered scratch file so a failed run can report it.
        """
        cmd = [self.binary, "-hide_banner", "-nostdin", "-loglevel", "error", "-y"]
        cmd += args
        log.debug(f"ffmpeg command: {' '.join(cmd)}")

        stderr_path = self.temp.create(suffix=".log", prefix="ab-ffmpeg-")
        timed_out = threading.Event()

        with stderr_path.open("w") as stderr_fh:
            try:
                proc = subprocess.Popen(
                    cmd,
                    stdout=subprocess.PIPE,
                    stderr=stderr_fh,
                    text=True,
                )
            except FileNotFoundError as e:
                raise ToolMissing(f"{self.binary} not found on PATH") from e

            def _kill() -> None:
                timed_out.set()
                proc.kill()

            timer = threading.Timer(self.timeout, _kill) if self.timeout else None
            if timer is not None:
                timer.start()
            try:
                assert proc.stdout is not None
                for line in proc.stdout:
                    seconds = _parse_progress_line(line)
                    if seconds is not None and progress is not None:
                        progress(seconds)
                returncode = proc.wait()
            except BaseException:
                proc.kill()
                proc.wait()
                raise
            finally:
                if timer is not None:
                    timer.cancel()

        stderr = stderr_path.read_text(errors="replace")
        self.temp.remove(stderr_path)

        if timed_out.is_set():
            raise EncodeTimeout(self.binary, self.timeout or 0)
        if returncode != 0:
            raise ExternalToolError(
                tool=self.binary,
                exit_code=returncode,
                stderr=stderr.strip()[-_STDERR_TAIL:],
            )


class FFmpegEncoder(_FFmpegTool):
    """Encode an ordered list of files into one ADTS AAC elementary stream.

    With AudioToolbox (``aac_at``) the stream is constrained VBR around the
    tier bitrate. The native ``aac`` encoder runs in its average-bitrate mode
    at the same target; its ``-q:a`` VBR mode is experimental and ignores
    the tier bitrate, so it is not used.
    """

    def encode(
        self,
        inputs: list[Path],
        output_format: OutputFormat,
        destination: Path,
        progress: ProgressCallback | None = None,
    ) -> None:
        list_file = self.temp.create(suffix=".txt", prefix="ab-concat-")
        list_file.write_text(concat_list(inputs))

        encoder = detect_encoder(self.binary) or "aac"
        codec = ["-c:a", encoder]
        if encoder == "aac_at":
            codec += ["-aac_at_mode", "cvbr"]
        self._run(
            [
                "-f", "concat",
                "-safe", "0",
                "-i", str(list_file),
                "-map", "0:a",
                "-vn",
                *codec,
                "-b:a", output_format.bitrate,
                "-ar", str(output_format.sample_rate),
                "-progress", "pipe:1",
                "-nostats",
                "-f", "adts",
                str(destination),
            ],
            progress=progress,
        )
        self.temp.remove(list_file)


class FFmpegMuxer(_FFmpegTool):
    """Mux an AAC stream, FFMETADATA chapters and optional cover into M4B."""

    def mux(
        self,
        stream: Path,
        metadata: Path,
        cover: Path | None,
        destination: Path,
    ) -> None:
        args = ["-i", str(stream), "-i", str(metadata)]
        if cover is not None:
            args += ["-i", str(cover)]
        args += ["-map", "0:a", "-map_metadata", "1", "-map_chapters", "1"]
        if cover is not None:
            args += ["-map", "2:v", "-c:v", "copy", "-disposition:v:0", "attached_pic"]
        args += [
            "-c:a", "copy",
            "-bsf:a", "aac_adtstoasc",
            "-movflags", "+faststart",
            # Force ipod/m4b format -- ffmpeg can't guess from a .partial extension
            "-f", "ipod",
            str(destination),
        ]
        self._run(args)
