"""Run orchestration -- collect, probe, plan, negotiate format, encode parts."""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import click
from loguru import logger

from .context import RunContext
from .errors import InvalidChoice, OutputDirError, UsageError
from .ffmpeg import FFmpegEncoder, FFmpegMuxer
from .ffmetadata import render_ffmetadata
from .ffprobe import FFprobe, hms
from .models import BookMetadata, OutputFormat, Part, PartResult, RunSummary, Track
from .stages import chapters, collect, encode, output_format, plan, probe

if TYPE_CHECKING:
    from .config import ChapterizerConfig
    from .ffmpeg import Encoder, Muxer, ProgressCallback
    from .ffprobe import Prober

log = logger.bind(stage="runner")


def _rel(path: Path, root: Path) -> Path:
    try:
        return path.relative_to(root)
    except ValueError:
        return path


class ChapterizerRunner:
    """Runs one conversion of a source directory or playlist.

    The prober, encoder and muxer default to the ffprobe/ffmpeg
    implementations; tests inject in-process fakes.
    """

    def __init__(
        self,
        config: ChapterizerConfig,
        prober: Prober | None = None,
        encoder: Encoder | None = None,
        muxer: Muxer | None = None,
    ) -> None:
        self.config = config
        self.prober = prober or FFprobe(config.ffprobe_bin, config.tool_timeout)
        self.encoder = encoder
        self.muxer = muxer

    def run(self, source: Path, book: BookMetadata) -> RunSummary:
        """Run the whole pipeline for ``source``.

        Stops after probing with ``validate_only`` and after planning with
        ``dry_run``. Parts are encoded strictly in order and the first
        failure aborts the run; Parts already written stay on disk.
        """
        config = self.config
        with RunContext(config) as ctx:
            source_root, files = collect.run(source, config)
            self._say(f"Found {len(files)} files.")

            self._say("Validating input files with ffprobe...")
            tracks = probe.run(files, source_root, self.prober, config)
            summary = RunSummary(
                source_root=source_root,
                output_dir=source_root / config.output_dirname,
                tracks=tracks,
            )
            if config.validate_only or config.dry_run:
                self._report_tracks(tracks, source_root)
            if config.validate_only:
                self._say(f"[VALIDATE] {len(tracks)} files OK, total {hms(summary.total_duration)}")
                return summary

            parts = plan.plan_parts([t.duration for t in tracks], config.max_duration)
            summary.parts = parts
            self._report_plan(parts, tracks, source_root)
            if config.start_part > len(parts):
                raise UsageError(
                    f"--start-part {config.start_part} is beyond the plan "
                    f"(only {len(parts)} parts)"
                )

            sample_rates = output_format.detected_sample_rates(tracks)
            bitrates = output_format.detected_bitrates_kbps(tracks)
            self._say(f"Detected sample rates: {' '.join(map(str, sample_rates))}")
            self._say(f"Detected bitrates: {' '.join(map(str, bitrates))} kbps")
            fmt = output_format.select_output_format(sample_rates, bitrates)
            if not (config.dry_run or config.assume_yes):
                fmt = self._choose_format(fmt, sample_rates, bitrates)
            summary.output_format = fmt
            self._say(f"Selected: {fmt}")

            if config.dry_run:
                for part in parts:
                    out = encode.output_path(summary.output_dir, book, part, len(parts))
                    self._say(f"[DRY-RUN] Would create: {out}")
                    sidecar = render_ffmetadata(
                        encode.build_tags(book, part, len(parts)),
                        chapters.build_chapters(part.tracks(tracks)),
                    )
                    log.debug(f"Side-car for part {part.index}:\n{sidecar}")
                self._say("[DRY-RUN] Completed. No files were created.")
                return summary

            self._ensure_output_dir(summary.output_dir)
            cover = encode.find_cover(source_root)
            if cover is not None:
                log.info(f"Using cover art {cover.name}")

            encoder = self.encoder or FFmpegEncoder(ctx.temp, config.ffmpeg_bin, config.tool_timeout)
            muxer = self.muxer or FFmpegMuxer(ctx.temp, config.ffmpeg_bin, config.tool_timeout)

            for part in parts:
                if part.index < config.start_part:
                    out = encode.output_path(summary.output_dir, book, part, len(parts))
                    self._say(f"-- Skipping Part {part.index} (resuming at {config.start_part}) --")
                    summary.results.append(
                        PartResult(part=part, output=out, chapters=part.track_count, skipped=True)
                    )
                    continue

                self._say(f"-- Creating Part {part.index} ({hms(part.duration)}) --")
                for track in part.tracks(tracks):
                    self._say(f"  {_rel(track.path, source_root)}")

                with self._progress(part) as on_progress:
                    result = encode.run(
                        part,
                        tracks,
                        len(parts),
                        ctx,
                        fmt,
                        book,
                        summary.output_dir,
                        cover,
                        encoder,
                        muxer,
                        self.prober,
                        progress=on_progress,
                    )
                self._say(f"Created: {result.output}")
                summary.results.append(result)

        return summary

    def _say(self, message: str) -> None:
        """Operator-facing progress line, silenced by ``quiet``."""
        if not self.config.quiet:
            click.echo(message)

    def _report_tracks(self, tracks: list[Track], source_root: Path) -> None:
        for t in tracks:
            note = " (corrected)" if t.corrected else ""
            self._say(f"  Validated: {_rel(t.path, source_root)} (duration: {hms(t.duration)}){note}")

    def _report_plan(self, parts: list[Part], tracks: list[Track], source_root: Path) -> None:
        self._say(f"Estimated parts: {len(parts)}")
        for part in parts:
            self._say(f"  Part {part.index} ({hms(part.duration)}): files {part.start}-{part.end}")
            if self.config.dry_run:
                for t in part.tracks(tracks):
                    self._say(f"    {_rel(t.path, source_root)}")

    def _choose_format(
        self,
        recommended: OutputFormat,
        sample_rates: list[int],
        bitrates: list[int],
    ) -> OutputFormat:
        """Offer the fixed format menu; 0 keeps the negotiated format."""
        click.echo("Choose output format (no upscaling beyond inputs):")
        click.echo(f"  0) {recommended} (recommended)")
        for i, fmt in enumerate(output_format.FORMAT_CHOICES, start=1):
            note = " (skip - would upscale)" if output_format.upscales(fmt, sample_rates, bitrates) else ""
            click.echo(f"  {i}) {fmt}{note}")

        choice = click.prompt(
            f"Enter choice [0-{len(output_format.FORMAT_CHOICES)}]", type=int, default=0
        )
        if choice == 0:
            return recommended
        if not 1 <= choice <= len(output_format.FORMAT_CHOICES):
            raise InvalidChoice(f"Invalid choice: {choice}")
        fmt = output_format.FORMAT_CHOICES[choice - 1]
        if output_format.upscales(fmt, sample_rates, bitrates):
            raise InvalidChoice(f"{fmt} would upscale the inputs")
        return fmt

    def _ensure_output_dir(self, output_dir: Path) -> None:
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OutputDirError(f"cannot create output directory {output_dir}: {e}") from e
        if not os.access(output_dir, os.W_OK):
            raise OutputDirError(f"output directory is not writable: {output_dir}")

    @contextmanager
    def _progress(self, part: Part) -> Iterator[ProgressCallback | None]:
        """Yield a callback that advances a progress bar in encoded seconds."""
        if self.config.quiet:
            yield None
            return
        with click.progressbar(
            length=part.duration,
            label=f"Part {part.index}",
            show_eta=True,
            show_percent=True,
        ) as bar:
            done = 0

            def _update(seconds: float) -> None:
                nonlocal done
                step = int(min(seconds, part.duration)) - done
                if step > 0:
                    bar.update(step)
                    done += step

            yield _update
