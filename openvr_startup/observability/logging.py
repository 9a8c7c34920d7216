"""Structured logging setup.

Console logs are JSON lines on stderr. Every record carries the lifecycle
`state` of the thread that emitted it.

A bounded in-memory `LogCache` keeps plain one-line copies of the records; it is
written to the log file once, at shutdown, so the worker never contends on file
I/O while it runs.
"""

from __future__ import annotations

import collections
import contextvars
import json
import logging
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable


_state_var: contextvars.ContextVar[str] = contextvars.ContextVar("state", default="SHELL")

_RESERVED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "message",
}


def set_state(state: str) -> None:
    """Set the lifecycle state reported by log records from this thread."""

    _state_var.set(state)


def get_state() -> str:
    return _state_var.get()


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        k: v
        for k, v in record.__dict__.items()
        if k not in _RESERVED_ATTRS and not k.startswith("_")
    }


class _StateFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "state"):
            record.state = get_state()
        return True


class JsonFormatter(logging.Formatter):
    """Minimal JSON log formatter suitable for structured logs."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_extra_fields(record))

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class LineFormatter(logging.Formatter):
    """One human-readable line per record, for the persisted log file."""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        fields = " ".join(f"{k}={v}" for k, v in _extra_fields(record).items() if k != "state")
        line = f"{ts} {record.levelname} [{getattr(record, 'state', '-')}] {record.getMessage()}"
        if fields:
            line = f"{line} {fields}"
        if record.exc_info:
            # Keep the file one-record-per-line.
            line = f"{line} exc={self.formatException(record.exc_info)!r}"
        return line


class LogCache(logging.Handler):
    """Ring buffer of formatted log lines, persisted on demand.

    `logging.Handler` serializes `emit()` with its own lock, so records from the
    worker and the shell thread interleave safely.
    """

    def __init__(self, capacity: int = 100, level: int = logging.NOTSET):
        super().__init__(level)
        self.capacity = max(1, int(capacity))
        self._lines: collections.deque[str] = collections.deque(maxlen=self.capacity)
        self.setFormatter(LineFormatter())
        self.addFilter(_StateFilter())

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._lines.append(self.format(record))
        except Exception:  # noqa: BLE001
            self.handleError(record)

    def set_capacity(self, capacity: int) -> None:
        with self.lock:  # type: ignore[union-attr]
            self.capacity = max(1, int(capacity))
            self._lines = collections.deque(self._lines, maxlen=self.capacity)

    def lines(self) -> list[str]:
        with self.lock:  # type: ignore[union-attr]
            return list(self._lines)

    def write_to_file(self, path: Path, max_lines: int | None = None) -> int:
        """Append cached lines to `path`, keeping only the newest `max_lines`.

        Existing file content counts towards the cap; the oldest lines are
        dropped first. Returns the number of lines written.
        """

        limit = max(1, int(max_lines or self.capacity))
        previous: list[str] = []
        if path.exists():
            previous = path.read_text(encoding="utf-8", errors="replace").splitlines()

        kept = _tail([*previous, *self.lines()], limit)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("".join(f"{line}\n" for line in kept), encoding="utf-8")
        return len(kept)


def _tail(lines: Iterable[str], limit: int) -> list[str]:
    return list(collections.deque(lines, maxlen=limit))


_configure_lock = threading.Lock()


def configure_logging(*, level: str = "INFO", cache: LogCache | None = None) -> None:
    """Configure root logging with JSON output on stderr.

    Safe to call multiple times; handlers installed by a previous call are replaced.
    """

    with _configure_lock:
        root = logging.getLogger()
        root.setLevel(level.upper())

        handler = logging.StreamHandler(stream=sys.stderr)
        handler.addFilter(_StateFilter())
        handler.setFormatter(JsonFormatter())

        # Avoid duplicate handlers if configure_logging() is called multiple times.
        root.handlers.clear()
        root.addHandler(handler)
        if cache is not None:
            root.addHandler(cache)
