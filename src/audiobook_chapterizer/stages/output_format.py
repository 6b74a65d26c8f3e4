"""Format stage -- negotiate an output sample rate and bitrate without upscaling."""

from __future__ import annotations

from collections.abc import Iterable

from loguru import logger

from ..models import OutputFormat, QualityTier, Track

log = logger.bind(stage="format")

HIGH_SAMPLE_RATE = 48000
MID_SAMPLE_RATE = 44100
DEFAULT_SAMPLE_RATE = 44100

HIGH_TIER_THRESHOLD_KBPS = 128
HIGH_TIER_KBPS = 112
LOW_TIER_KBPS = 72

# Fixed menu offered to the operator in interactive mode
FORMAT_CHOICES: tuple[OutputFormat, ...] = (
    OutputFormat(48000, 128, QualityTier.HIGH),
    OutputFormat(48000, 64, QualityTier.LOW),
    OutputFormat(44100, 128, QualityTier.HIGH),
    OutputFormat(44100, 64, QualityTier.LOW),
)


def detected_sample_rates(tracks: Iterable[Track]) -> list[int]:
    return sorted({t.sample_rate for t in tracks if t.sample_rate})


def detected_bitrates_kbps(tracks: Iterable[Track]) -> list[int]:
    """Distinct input bitrates in kbps, ignoring bitrates flagged as corrupt."""
    return sorted(
        {
            t.bitrate // 1000
            for t in tracks
            if t.bitrate and t.bitrate >= 1000 and not t.corrected
        }
    )


def select_output_format(sample_rates: list[int], bitrates_kbps: list[int]) -> OutputFormat:
    """Pick one sample rate and quality tier bounded by the inputs.

    Sample rate: 48 kHz only when every input is at least 48 kHz; 44.1 kHz
    when the best input reaches it; otherwise the best input rate (44.1 kHz
    when nothing was detected). Quality: the high tier when the best input
    bitrate reaches 128 kbps, else the low tier capped at the best input.
    """
    rates = [r for r in sample_rates if r]
    kbps = [b for b in bitrates_kbps if b]

    if rates and min(rates) >= HIGH_SAMPLE_RATE:
        sample_rate = HIGH_SAMPLE_RATE
    elif rates and max(rates) >= MID_SAMPLE_RATE:
        sample_rate = MID_SAMPLE_RATE
    elif rates:
        sample_rate = max(rates)
    else:
        sample_rate = DEFAULT_SAMPLE_RATE

    best_kbps = max(kbps) if kbps else None
    if best_kbps is not None and best_kbps >= HIGH_TIER_THRESHOLD_KBPS:
        return OutputFormat(sample_rate, HIGH_TIER_KBPS, QualityTier.HIGH)
    low = LOW_TIER_KBPS if best_kbps is None else min(LOW_TIER_KBPS, best_kbps)
    return OutputFormat(sample_rate, low, QualityTier.LOW)


def upscales(fmt: OutputFormat, sample_rates: list[int], bitrates_kbps: list[int]) -> bool:
    """True when ``fmt`` exceeds the best detected input on either axis."""
    rates = [r for r in sample_rates if r]
    kbps = [b for b in bitrates_kbps if b]
    if rates and fmt.sample_rate > max(rates):
        return True
    if kbps and fmt.bitrate_kbps > max(kbps):
        return True
    return False


def run(tracks: list[Track]) -> OutputFormat:
    sample_rates = detected_sample_rates(tracks)
    bitrates = detected_bitrates_kbps(tracks)
    log.info(f"Detected sample rates: {sample_rates}")
    log.info(f"Detected bitrates: {bitrates} kbps")
    fmt = select_output_format(sample_rates, bitrates)
    log.info(f"Selected output format: {fmt}")
    return fmt
