"""Append-only log file with timestamped, levelled lines."""

from __future__ import annotations

import enum
import time
from pathlib import Path
from types import TracebackType
from typing import TextIO, Union

LOG_FILE_PATH = "/tmp/tcp_server.log"
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

PathLike = Union[str, Path]


class LogLevel(enum.IntEnum):
    """Severity of a log entry."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3
    CRITICAL = 4


def _level_name(level: int) -> str:
    try:
        return LogLevel(level).name
    except ValueError:
        return "UNKNOWN"


class FileLogger:
    """A line-buffered log file opened for appending.

    Opening fails with ``OSError`` when the file cannot be opened. Logging
    after :meth:`close` is silently ignored.
    """

    def __init__(self, path: PathLike) -> None:
        self.path = Path(path)
        self._file: TextIO | None = open(self.path, "a", buffering=1, encoding="utf-8")

    @property
    def closed(self) -> bool:
        return self._file is None

    def log(self, level: int, message: str) -> None:
        """Append ``[timestamp] [LEVEL] message`` as one line."""
        if self._file is None:
            return
        stamp = time.strftime(TIME_FORMAT, time.localtime())
        self._file.write(f"[{stamp}] [{_level_name(level)}] {message}\n")

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> FileLogger:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def log_line(path: PathLike, level: int, message: str) -> None:
    """Open the log at ``path``, append one entry and close it again."""
    with FileLogger(path) as logger:
        logger.log(level, message)