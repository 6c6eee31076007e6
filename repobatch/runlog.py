"""
runlog.py

Responsibility: Durable audit trail and console status output.

- `RunLog` appends `"<timestamp> [TAG] message"` lines to a file opened once per run
  and mirrors each entry to the `repobatch` logger at the matching level.
- `configure_logging` installs a colored console handler on the `repobatch` logger.

The log is an audit record only; no flow reads it back.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Callable, TextIO

TAG_LEVELS = {
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "SUCCESS": logging.INFO,
    "EXIST": logging.INFO,
    "UPDATE": logging.INFO,
    "SYNC": logging.INFO,
    "COMMIT": logging.INFO,
    "SKIP": logging.INFO,
    "INFO": logging.INFO,
}

_TAG_COLORS = {
    "ERROR": "\033[31m",
    "WARN": "\033[33m",
    "SUCCESS": "\033[32m",
    "EXIST": "\033[36m",
    "UPDATE": "\033[35m",
    "SYNC": "\033[34m",
    "COMMIT": "\033[32m",
    "SKIP": "\033[90m",
}
_RESET = "\033[0m"


class ColorFormatter(logging.Formatter):
    """Colors a record by its run-log tag (or level when it has none)."""

    def __init__(self, use_color: bool) -> None:
        super().__init__("%(message)s")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        if not self.use_color:
            return text
        tag = getattr(record, "tag", None)
        if tag is None:
            tag = {logging.ERROR: "ERROR", logging.WARNING: "WARN"}.get(record.levelno)
        color = _TAG_COLORS.get(tag or "")
        return f"{color}{text}{_RESET}" if color else text


def configure_logging(level: str = "INFO", stream: TextIO | None = None) -> None:
    out = stream or sys.stderr
    handler = logging.StreamHandler(out)
    handler.setFormatter(ColorFormatter(use_color=bool(getattr(out, "isatty", lambda: False)())))
    root = logging.getLogger("repobatch")
    root.handlers[:] = [handler]
    root.setLevel(level)
    root.propagate = False


def _now() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


class RunLog:
    def __init__(
        self,
        path: str | Path,
        *,
        logger: logging.Logger | None = None,
        clock: Callable[[], str] = _now,
    ) -> None:
        self.path = Path(path)
        self._logger = logger or logging.getLogger("repobatch.run")
        self._clock = clock
        self._fh: TextIO | None = None

    def __enter__(self) -> RunLog:
        self.open()
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def open(self) -> TextIO:
        if self._fh is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = self.path.open("a", encoding="utf-8")
        return self._fh

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def write(self, tag: str, message: str) -> None:
        if tag not in TAG_LEVELS:
            raise ValueError(f"Unknown run-log tag: {tag}")
        fh = self.open()
        # One entry per line; multi-line captured output is folded.
        flat = " | ".join(part.strip() for part in message.splitlines() if part.strip())
        fh.write(f"{self._clock()} [{tag}] {flat}\n")
        fh.flush()
        self._logger.log(TAG_LEVELS[tag], "[%s] %s", tag, flat, extra={"tag": tag})

    def error(self, message: str) -> None:
        self.write("ERROR", message)

    def warn(self, message: str) -> None:
        self.write("WARN", message)

    def success(self, message: str) -> None:
        self.write("SUCCESS", message)

    def info(self, message: str) -> None:
        self.write("INFO", message)


class LineFile:
    """Append-only plain line file (remote dumps, ambiguity debug log), opened once."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._fh: TextIO | None = None

    def __enter__(self) -> LineFile:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def append(self, *lines: str) -> None:
        if self._fh is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = self.path.open("a", encoding="utf-8")
        for line in lines:
            self._fh.write(f"{line}\n")
        self._fh.flush()
