"""Tests for cli.py -- Click CLI interface."""

from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from audiobook_chapterizer import __version__
from audiobook_chapterizer.cli import cli, main
from audiobook_chapterizer.errors import ExternalToolError, ToolMissing
from audiobook_chapterizer.models import (
    BookMetadata,
    OutputFormat,
    Part,
    PartResult,
    QualityTier,
    RunSummary,
    Track,
)


@pytest.fixture(autouse=True)
def _tools_present():
    """Pretend ffmpeg/ffprobe are installed."""
    with patch(
        "audiobook_chapterizer.cli.check_tools",
        return_value={"ffprobe": "/usr/bin/ffprobe", "ffmpeg": "/usr/bin/ffmpeg", "encoder": "aac"},
    ) as mock_check:
        yield mock_check


def _summary(src: Path) -> RunSummary:
    return RunSummary(source_root=src, output_dir=src / "output")


class TestHelpOutput:
    def test_help_flag(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "chapterized .m4b" in result.output
        assert "--dry-run" in result.output
        assert "--self-test" in result.output
        assert "--start-part" in result.output

    def test_short_help_flag(self):
        assert CliRunner().invoke(cli, ["-h"]).exit_code == 0

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestSelfTest:
    def test_all_present(self):
        result = CliRunner().invoke(cli, ["--self-test"])
        assert result.exit_code == 0
        assert "All deps present" in result.output
        assert "encoder: aac" in result.output

    def test_missing_tool(self, _tools_present):
        _tools_present.side_effect = ToolMissing("ffprobe required but not found on PATH")
        result = CliRunner().invoke(cli, ["--self-test"])
        assert result.exit_code == 2
        assert "ffprobe required" in result.output


class TestExitCodes:
    def test_no_audio_files(self, tmp_path):
        (tmp_path / "readme.txt").write_text("hi")
        result = CliRunner().invoke(cli, [str(tmp_path), "-y"])
        assert result.exit_code == 3
        assert not (tmp_path / "output").exists()

    def test_missing_source_path(self, tmp_path):
        result = CliRunner().invoke(cli, [str(tmp_path / "nope"), "-y"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_missing_tool_before_run(self, tmp_path, _tools_present):
        _tools_present.side_effect = ToolMissing("ffmpeg required but not found on PATH")
        with patch("audiobook_chapterizer.cli.ChapterizerRunner") as mock_runner_cls:
            result = CliRunner().invoke(cli, [str(tmp_path), "-y"])
        assert result.exit_code == 2
        mock_runner_cls.assert_not_called()

    @patch("audiobook_chapterizer.cli.ChapterizerRunner")
    def test_media_failure(self, mock_runner_cls, tmp_path):
        mock_runner_cls.return_value.run.side_effect = ExternalToolError("ffmpeg", 1, "boom")
        result = CliRunner().invoke(cli, [str(tmp_path), "-y"])
        assert result.exit_code == 5
        assert "Error: ffmpeg exited with code 1" in result.output

    @patch("audiobook_chapterizer.cli.ChapterizerRunner")
    def test_interrupted(self, mock_runner_cls, tmp_path):
        mock_runner_cls.return_value.run.side_effect = KeyboardInterrupt
        result = CliRunner().invoke(cli, [str(tmp_path), "-y"])
        assert result.exit_code == 130


class TestMain:
    def test_missing_argument_is_usage_error(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1

    def test_unknown_option_is_usage_error(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["--no-such-flag"])
        assert exc_info.value.code == 1

    def test_verbose_and_quiet_conflict(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main([str(tmp_path), "--verbose", "--quiet"])
        assert exc_info.value.code == 1

    def test_version_exits_zero(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_no_audio_exit_code(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main([str(tmp_path), "-y"])
        assert exc_info.value.code == 3


class TestOptions:
    @patch("audiobook_chapterizer.cli.ChapterizerRunner")
    def test_flags_reach_config(self, mock_runner_cls, tmp_path):
        mock_runner_cls.return_value.run.return_value = _summary(tmp_path)
        result = CliRunner().invoke(
            cli,
            [str(tmp_path), "-y", "-n", "--max-duration", "3600", "--start-part", "2", "--extended"],
        )
        assert result.exit_code == 0, result.output
        config = mock_runner_cls.call_args.kwargs["config"]
        assert config.dry_run is True
        assert config.assume_yes is True
        assert config.max_duration == 3600
        assert config.start_part == 2
        assert config.extended_formats is True

    @patch("audiobook_chapterizer.cli.ChapterizerRunner")
    def test_yes_uses_directory_name(self, mock_runner_cls, tmp_path):
        src = tmp_path / "The Hobbit"
        src.mkdir()
        mock_runner_cls.return_value.run.return_value = _summary(src)
        CliRunner().invoke(cli, [str(src), "-y"])
        _, book = mock_runner_cls.return_value.run.call_args.args
        assert book == BookMetadata(author="The Hobbit", title="The Hobbit", narrator="")

    @patch("audiobook_chapterizer.cli.ChapterizerRunner")
    def test_explicit_tags(self, mock_runner_cls, tmp_path):
        mock_runner_cls.return_value.run.return_value = _summary(tmp_path)
        CliRunner().invoke(
            cli,
            [str(tmp_path), "-y", "--author", "J. R. R. Tolkien", "--title", "The Hobbit",
             "--narrator", "Andy Serkis"],
        )
        _, book = mock_runner_cls.return_value.run.call_args.args
        assert book == BookMetadata("J. R. R. Tolkien", "The Hobbit", "Andy Serkis")

    @patch("audiobook_chapterizer.cli.ChapterizerRunner")
    def test_prompts_without_yes(self, mock_runner_cls, tmp_path):
        src = tmp_path / "book"
        src.mkdir()
        mock_runner_cls.return_value.run.return_value = _summary(src)
        result = CliRunner().invoke(cli, [str(src)], input="Jane Doe\n\nSam Reader\n")
        assert result.exit_code == 0, result.output
        assert "Author/Artist name [book]" in result.output
        _, book = mock_runner_cls.return_value.run.call_args.args
        assert book == BookMetadata("Jane Doe", "book", "Sam Reader")

    @patch("audiobook_chapterizer.cli.ChapterizerRunner")
    def test_config_file(self, mock_runner_cls, tmp_path):
        env = tmp_path / "ab.env"
        env.write_text("AB_MAX_DURATION=7200\n")
        mock_runner_cls.return_value.run.return_value = _summary(tmp_path)
        result = CliRunner().invoke(cli, [str(tmp_path), "-y", "-c", str(env)])
        assert result.exit_code == 0, result.output
        assert mock_runner_cls.call_args.kwargs["config"].max_duration == 7200


class TestSummary:
    @patch("audiobook_chapterizer.cli.ChapterizerRunner")
    def test_prints_part_table(self, mock_runner_cls, tmp_path):
        track = Track(tmp_path / "a.mp3", 3600, 128000, 44100, "a")
        part = Part(index=1, start=0, end=0, duration=3600)
        summary = RunSummary(
            source_root=tmp_path,
            output_dir=tmp_path / "output",
            tracks=[track],
            parts=[part],
            output_format=OutputFormat(44100, 112, QualityTier.HIGH),
            results=[PartResult(part, tmp_path / "output" / "A - T.m4b", chapters=1)],
        )
        mock_runner_cls.return_value.run.return_value = summary

        result = CliRunner().invoke(cli, [str(tmp_path), "-y"])

        assert result.exit_code == 0, result.output
        assert "Part 1  1 h: 0 m: 0 s  1 chapters  A - T.m4b" in result.output
        assert "Total: 1 files, 1 parts" in result.output
        assert f"Done. Outputs in {tmp_path / 'output'}" in result.output
