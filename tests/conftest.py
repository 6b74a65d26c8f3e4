"""Shared fixtures and in-process fakes of the Prober, Encoder and Muxer ports."""

from pathlib import Path

import pytest
from loguru import logger

from audiobook_chapterizer.config import ChapterizerConfig
from audiobook_chapterizer.errors import ProbeFailed
from audiobook_chapterizer.ffprobe import ProbeResult


class FakeProber:
    """Answers from a catalog keyed by file name.

    Files not in the catalog are treated as produced media: the fake
    encoder/muxer write the duration as text, which is read back here.
    """

    def __init__(self, catalog: dict | None = None) -> None:
        self.catalog = catalog or {}
        self.calls: list[Path] = []

    def probe(self, path: Path) -> ProbeResult:
        self.calls.append(path)
        result = self.catalog.get(path.name)
        if isinstance(result, Exception):
            raise result
        if result is not None:
            return result
        try:
            return ProbeResult(format_duration=float(path.read_text()))
        except (OSError, ValueError) as e:
            raise ProbeFailed(path, "Invalid data found when processing input") from e


class FakeEncoder:
    """Writes the summed catalog duration (plus ``drift``) as the stream."""

    def __init__(self, prober: FakeProber, drift: float = 0.0) -> None:
        self.prober = prober
        self.drift = drift
        self.calls: list[tuple[list[Path], object]] = []

    def encode(self, inputs, output_format, destination, progress=None):
        self.calls.append((list(inputs), output_format))
        total = sum(self.prober.catalog[p.name].duration for p in inputs) + self.drift
        if progress is not None:
            progress(total / 2)
            progress(total)
        destination.write_text(str(total))


class FakeMuxer:
    """Copies the stream into the container and records the side-car."""

    def __init__(self, mode: str = "ok") -> None:
        self.mode = mode
        self.calls: list[dict] = []

    def mux(self, stream, metadata, cover, destination):
        self.calls.append(
            {
                "stream": stream,
                "metadata": metadata.read_text(),
                "cover": cover,
                "destination": destination,
            }
        )
        if self.mode == "empty":
            destination.write_bytes(b"")
        elif self.mode == "corrupt":
            destination.write_text("garbage")
        else:
            destination.write_text(stream.read_text())


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Remove AB_* env vars so tests see actual defaults."""
    import os

    for var in list(os.environ):
        if var.startswith("AB_"):
            monkeypatch.delenv(var, raising=False)


@pytest.fixture
def make_config(tmp_path):
    def _make(**kwargs) -> ChapterizerConfig:
        kwargs.setdefault("tmpdir", tmp_path / "scratch")
        kwargs.setdefault("assume_yes", True)
        return ChapterizerConfig(_env_file=None, **kwargs)

    return _make


@pytest.fixture
def make_source(tmp_path):
    """Factory creating a source directory of fake audio files."""

    def _make(names, size: int = 1024, dirname: str = "book") -> Path:
        src = tmp_path / dirname
        src.mkdir(exist_ok=True)
        for name in names:
            f = src / name
            f.parent.mkdir(parents=True, exist_ok=True)
            f.write_bytes(b"\0" * size)
        return src

    return _make


def track_result(
    duration: float,
    bitrate: int | None = 128000,
    sample_rate: int | None = 44100,
    title: str | None = None,
) -> ProbeResult:
    return ProbeResult(
        stream_duration=duration,
        format_duration=duration,
        bitrate=bitrate,
        sample_rate=sample_rate,
        title=title,
    )


@pytest.fixture(autouse=True)
def _reset_logger():
    """Drop sinks added by setup_logging (CliRunner closes their streams)."""
    yield
    logger.remove()
