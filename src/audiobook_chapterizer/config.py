"""Chapterizer configuration via pydantic-settings (.env + AB_* env vars)."""

import sys
from pathlib import Path

from loguru import logger
from pydantic_settings import BaseSettings, SettingsConfigDict


class ChapterizerConfig(BaseSettings):
    """All run configuration with layered resolution:
    .env file < AB_* environment variables < constructor kwargs.
    """

    model_config = SettingsConfigDict(
        env_prefix="AB_",
        env_file=".env",
        extra="ignore",
    )

    # -- Planning --
    max_duration: int = 12 * 3600  # seconds per part

    # -- Probe heuristics --
    bitrate_deviation_factor: float = 20.0
    fallback_bitrate: int = 128000  # bits/sec, used when no bitrate parses

    # -- Verification --
    duration_tolerance_seconds: float = 10.0
    duration_tolerance_ratio: float = 0.002

    # -- External tools --
    ffmpeg_bin: str = "ffmpeg"
    ffprobe_bin: str = "ffprobe"
    tool_timeout: float | None = None  # None = wait forever

    # -- Directories --
    tmpdir: Path | None = None  # AB_TMPDIR; None = system default
    output_dirname: str = "output"
    log_dir: Path | None = None

    # -- Inputs --
    extended_formats: bool = False

    # -- Behavior --
    dry_run: bool = False
    validate_only: bool = False
    assume_yes: bool = False
    verbose: bool = False
    quiet: bool = False
    start_part: int = 1
    log_level: str = "INFO"

    def duration_tolerance(self, planned: float) -> float:
        """Allowed |actual - planned| in seconds for a Part of ``planned`` seconds."""
        return max(self.duration_tolerance_seconds, planned * self.duration_tolerance_ratio)

    def setup_logging(self) -> None:
        """Configure loguru for the chapterizer."""
        logger.remove()  # Remove default stderr handler

        log_format = (
            "{time:YYYY-MM-DDTHH:mm:ssZ} | {level:<8} | "
            "{extra[stage]:<8} | {message}"
        )

        def _default_extra(record):
            record["extra"].setdefault("stage", "")
            return True

        level = self.log_level.upper()
        if self.verbose:
            level = "DEBUG"
        elif self.quiet:
            level = "WARNING"

        logger.add(
            sys.stderr,
            format=log_format,
            level=level,
            filter=_default_extra,
        )

        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            logger.add(
                str(self.log_dir / "chapterizer.log"),
                format=log_format,
                level="DEBUG",
                rotation="10 MB",
                retention="30 days",
                filter=_default_extra,
            )
