"""Run context -- configuration plus a scoped registry of scratch files.

Every temporary file (concat list, intermediate AAC stream, metadata
side-car, partial container) is registered at creation and removed when the
context exits, whether the run completed, failed, or was interrupted.
SIGTERM and SIGHUP are turned into KeyboardInterrupt while the context is
active so the same unwinding path handles them as Ctrl-C.
"""

from __future__ import annotations

import os
import signal
import tempfile
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from .config import ChapterizerConfig

log = logger.bind(stage="cleanup")

_FORWARDED_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGTERM", "SIGHUP") if hasattr(signal, name)
)


class TempRegistry:
    """Tracks scratch files and removes them on cleanup.

    Removal is idempotent and tolerates files that are already gone.
    """

    def __init__(self, tmpdir: Path | None = None) -> None:
        self.tmpdir = tmpdir
        self._paths: list[Path] = []

    def __contains__(self, path: Path) -> bool:
        return path in self._paths

    def __len__(self) -> int:
        return len(self._paths)

    def create(self, suffix: str = "", prefix: str = "ab-") -> Path:
        """Create an empty scratch file and register it."""
        if self.tmpdir is not None:
            self.tmpdir.mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(suffix=suffix, prefix=prefix, dir=self.tmpdir)
        os.close(fd)
        path = Path(name)
        log.debug(f"Created temp file {path}")
        return self.track(path)

    def track(self, path: Path) -> Path:
        """Register an externally created path for cleanup."""
        if path not in self._paths:
            self._paths.append(path)
        return path

    def release(self, path: Path) -> None:
        """Stop tracking a path that has been promoted to a real output."""
        if path in self._paths:
            self._paths.remove(path)

    def remove(self, path: Path) -> None:
        self.release(path)
        _unlink(path)

    def cleanup(self) -> None:
        """Remove every registered file. Safe to call more than once."""
        while self._paths:
            _unlink(self._paths.pop())


def _unlink(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
        log.debug(f"Removed temp file {path}")
    except OSError as e:
        log.warning(f"Failed to remove temp file {path}: {e}")


def _raise_interrupt(signum, frame):
    raise KeyboardInterrupt(f"received signal {signum}")


class RunContext:
    """Configuration and scratch resources for one run.

    Use as a context manager; cleanup runs on every exit path.
    """

    def __init__(self, config: ChapterizerConfig) -> None:
        self.config = config
        self.temp = TempRegistry(config.tmpdir)
        self._previous_handlers: dict[int, object] = {}

    def __enter__(self) -> RunContext:
        if threading.current_thread() is threading.main_thread():
            for signum in _FORWARDED_SIGNALS:
                self._previous_handlers[signum] = signal.signal(signum, _raise_interrupt)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is KeyboardInterrupt:
            log.warning("Interrupted -- removing temporary files")
        self.temp.cleanup()
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)
        self._previous_handlers.clear()
