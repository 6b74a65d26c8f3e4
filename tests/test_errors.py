"""Tests for errors.py -- exception hierarchy and exit codes."""

from pathlib import Path

import pytest

from audiobook_chapterizer.errors import (
    ChapterizerError,
    DurationMismatch,
    EncodeTimeout,
    ExitCode,
    ExternalToolError,
    InputRejected,
    InvalidChoice,
    ManifestEntryMissing,
    NoInputFiles,
    OutputCorrupt,
    OutputDirError,
    OutputEmpty,
    ProbeFailed,
    ToolMissing,
    UsageError,
    VerificationError,
)


class TestExceptionHierarchy:
    @pytest.mark.parametrize(
        "cls",
        [UsageError, ToolMissing, NoInputFiles, OutputDirError, InvalidChoice,
         ProbeFailed, InputRejected, ExternalToolError, EncodeTimeout, VerificationError],
    )
    def test_all_inherit_from_base(self, cls):
        assert issubclass(cls, ChapterizerError)

    def test_verification_failures(self):
        for cls in (OutputEmpty, OutputCorrupt, DurationMismatch):
            assert issubclass(cls, VerificationError)

    def test_manifest_entry_is_usage_error(self):
        assert issubclass(ManifestEntryMissing, UsageError)


class TestExitCodes:
    @pytest.mark.parametrize(
        "err, code",
        [
            (UsageError("bad"), 1),
            (ManifestEntryMissing(Path("m.txt"), 3, "x.mp3"), 1),
            (ToolMissing("ffmpeg"), 2),
            (NoInputFiles("none"), 3),
            (OutputDirError("ro"), 4),
            (InvalidChoice("5"), 4),
            (ProbeFailed(Path("a.mp3"), "bad"), 5),
            (InputRejected([(Path("a.mp3"), "zero duration")]), 5),
            (ExternalToolError("ffmpeg", 1, "boom"), 5),
            (EncodeTimeout("ffmpeg", 60), 5),
            (OutputEmpty(Path("o.m4b"), "empty"), 5),
            (DurationMismatch(Path("o.m4b"), 100, 50, 10), 5),
        ],
    )
    def test_exit_code(self, err, code):
        assert err.exit_code == code

    def test_interrupted_code(self):
        assert ExitCode.INTERRUPTED == 130


class TestMessages:
    def test_manifest_entry(self):
        err = ManifestEntryMissing(Path("list.txt"), 4, "gone.mp3")
        assert str(err) == "list.txt:4: manifest entry does not exist: gone.mp3"

    def test_input_rejected_lists_every_file(self):
        err = InputRejected([(Path("a.mp3"), "zero duration"), (Path("b.mp3"), "zero file size")])
        assert "2 input file(s) rejected" in str(err)
        assert "a.mp3: zero duration" in str(err)
        assert "b.mp3: zero file size" in str(err)

    def test_external_tool_keeps_tool_code(self):
        err = ExternalToolError("ffmpeg", 183, "Conversion failed!")
        assert err.tool_exit_code == 183
        assert err.exit_code == ExitCode.MEDIA_FAILURE
        assert "Conversion failed!" in str(err)

    def test_duration_mismatch(self):
        err = DurationMismatch(Path("o.m4b"), 3120, 1800, 10)
        assert err.path == Path("o.m4b")
        assert "1800.0s" in str(err)
        assert "3120.0s" in str(err)

    def test_timeout(self):
        assert str(EncodeTimeout("ffmpeg", 90)) == "ffmpeg timed out after 90s"
