"""Exception hierarchy and process exit codes for the audiobook chapterizer."""

from enum import IntEnum
from pathlib import Path


class ExitCode(IntEnum):
    OK = 0
    USAGE = 1
    MISSING_TOOL = 2
    NO_INPUT = 3
    OUTPUT_OR_CHOICE = 4
    MEDIA_FAILURE = 5
    INTERRUPTED = 130


class ChapterizerError(Exception):
    """Base exception for all chapterizer errors."""

    exit_code: ExitCode = ExitCode.MEDIA_FAILURE


class UsageError(ChapterizerError):
    """Bad arguments or a missing source path."""

    exit_code = ExitCode.USAGE


class ManifestEntryMissing(UsageError):
    """A playlist manifest references a path that is not an existing file."""

    def __init__(self, manifest: Path, line_no: int, entry: str) -> None:
        super().__init__(
            f"{manifest}:{line_no}: manifest entry does not exist: {entry}"
        )
        self.manifest = manifest
        self.line_no = line_no
        self.entry = entry


class ToolMissing(ChapterizerError):
    """A required external tool is absent or lacks a required capability."""

    exit_code = ExitCode.MISSING_TOOL


class NoInputFiles(ChapterizerError):
    """Collection produced no candidate audio files."""

    exit_code = ExitCode.NO_INPUT


class OutputDirError(ChapterizerError):
    """The output directory cannot be created or written."""

    exit_code = ExitCode.OUTPUT_OR_CHOICE


class InvalidChoice(ChapterizerError):
    """The operator picked an unavailable output format."""

    exit_code = ExitCode.OUTPUT_OR_CHOICE


class ProbeFailed(ChapterizerError):
    """The prober could not produce a duration for a file."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"cannot probe {path}: {reason}")
        self.path = path
        self.reason = reason


class InputRejected(ChapterizerError):
    """One or more Tracks were unusable. Lists every offending file."""

    def __init__(self, rejected: list[tuple[Path, str]]) -> None:
        lines = "\n".join(f"  {path}: {reason}" for path, reason in rejected)
        super().__init__(f"{len(rejected)} input file(s) rejected:\n{lines}")
        self.rejected = rejected


class ExternalToolError(ChapterizerError):
    """An external subprocess (ffmpeg, ffprobe) failed."""

    def __init__(self, tool: str, exit_code: int, stderr: str) -> None:
        super().__init__(f"{tool} exited with code {exit_code}: {stderr}")
        self.tool = tool
        self.tool_exit_code = exit_code
        self.stderr = stderr


class EncodeTimeout(ChapterizerError):
    """An external tool ran longer than the configured timeout."""

    def __init__(self, tool: str, timeout: float) -> None:
        super().__init__(f"{tool} timed out after {timeout:g}s")
        self.tool = tool
        self.timeout = timeout


class VerificationError(ChapterizerError):
    """A produced container failed post-encode verification."""

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


class OutputEmpty(VerificationError):
    """Output file is missing or has zero size."""


class OutputCorrupt(VerificationError):
    """Output file cannot be read as media by the prober."""


class DurationMismatch(VerificationError):
    """Output duration is outside tolerance of the planned Part duration."""

    def __init__(
        self, path: Path, expected: float, actual: float, tolerance: float
    ) -> None:
        super().__init__(
            path,
            f"duration {actual:.1f}s differs from planned {expected:.1f}s "
            f"by more than {tolerance:.1f}s",
        )
        self.expected = expected
        self.actual = actual
        self.tolerance = tolerance
