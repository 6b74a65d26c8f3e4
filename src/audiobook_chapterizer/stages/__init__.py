"""Run stages, in execution order.

Pipeline order: collect -> probe -> plan -> format -> encode (mux + verify)

Stages:
    collect -- Enumerate input files from a source directory (recursive,
               excluding its output/ subdirectory) or from a playlist
               manifest (blank and # lines skipped, relative entries resolved
               against the manifest directory, missing entries fatal).
               Version-aware natural sort, deduplicated by resolved path.
    probe -- Probe every file once with the Prober port. Computes the median
             bitrate across the run and recomputes the duration of any file
             whose bitrate deviates from it by more than the configured
             factor (file_size * 8 / median). Zero-size, zero-duration and
             unprobeable files are batched into one InputRejected error.
             Files that resolve outside the source root are skipped.
    plan -- Greedy left-to-right split of Track durations into Parts under
            max_duration. Oversized Tracks are isolated into their own Part.
    output_format -- Choose a sample rate and quality tier that never exceed
                     the detected inputs; also exposes the fixed format menu
                     and the upscale check used by interactive selection.
    chapters -- Title resolution (tag unless empty or path-like, else file
                stem) and contiguous millisecond chapter timelines.
    encode -- Per Part: encode to an AAC stream, write the FFMETADATA1
              side-car, mux with optional cover art into <final>.partial,
              verify, and rename onto the final path.
    verify -- Post-mux checks: non-empty file, probeable as media, duration
              within max(10s, 0.2%) of plan.
"""
