"""
Logging utilities for the FastAPI application and operational scripts.

Every record goes to stdout, to an append-only log file when one is
configured, and to an in-memory buffer that the ``/api/logs`` route serves.
"""

import logging
import sys
import threading
from collections import deque
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


class RecentLogBuffer(logging.Handler):
    """Keep the most recent formatted log lines in memory."""

    def __init__(self, capacity: int = 500) -> None:
        super().__init__()
        self._lines: deque[str] = deque(maxlen=capacity)
        self._guard = threading.Lock()

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record)
        except Exception:  # pragma: no cover - mirrors logging.Handler behaviour
            self.handleError(record)
            return
        with self._guard:
            self._lines.append(line)

    def lines(self, limit: int | None = None) -> list[str]:
        with self._guard:
            snapshot = list(self._lines)
        if limit is not None:
            return snapshot[-limit:] if limit > 0 else []
        return snapshot

    def resize(self, capacity: int) -> None:
        with self._guard:
            if capacity != self._lines.maxlen:
                self._lines = deque(self._lines, maxlen=capacity)

    def clear(self) -> None:
        with self._guard:
            self._lines.clear()


_recent_logs = RecentLogBuffer()


def get_recent_logs() -> RecentLogBuffer:
    """Return the process-wide buffer backing the log endpoint."""
    return _recent_logs


def configure_logging(
    level: str = "INFO",
    log_file: str | None = None,
    buffer_size: int | None = None,
) -> None:
    """Configure root logging with stdout, file, and in-memory handlers."""
    formatter = logging.Formatter(LOG_FORMAT)

    if buffer_size is not None:
        _recent_logs.resize(buffer_size)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout), _recent_logs]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, mode="a", encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=level.upper(), handlers=handlers, force=True)


__all__ = ["LOG_FORMAT", "RecentLogBuffer", "configure_logging", "get_recent_logs"]
