"""Audiobook Chapterizer -- concatenate audio tracks into chapterized M4B parts.

Core modules:
    config     -- Run configuration via pydantic-settings (AB_* env vars, .env)
                  and loguru sink setup.
    cli        -- Click CLI entry point. Maps ChapterizerError subclasses to
                  stable exit codes (click usage errors -> 1).
    runner     -- Orchestration: collect -> probe -> plan -> format -> encode.
    context    -- RunContext and TempRegistry; scratch files are removed on
                  every exit path, including SIGINT/SIGTERM.
    ffprobe    -- Prober port and ffprobe implementation (stream-scoped
                  duration with container fallback, N/A handling).
    ffmpeg     -- Encoder/Muxer ports, ffmpeg implementations, tool checks.
    ffmetadata -- FFMETADATA1 side-car rendering, parsing, and escaping.
    sanitize   -- Safe single-segment output filenames.

Subpackages:
    stages -- collect, probe, plan, output_format, chapters, encode, verify
"""

__version__ = "1.0.0"
