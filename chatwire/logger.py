"""Thread-safe line logger with timestamps and thread ids."""

from __future__ import annotations

import enum
import sys
import threading
import time
from typing import TextIO


class Level(enum.Enum):
    """Severity of a log line."""

    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class Logger:
    """Writes one line per message: timestamp, thread id, level and text."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream
        self._lock = threading.Lock()

    def log(self, level: Level, message: str) -> None:
        """Write ``message`` at ``level`` to the logger's stream."""
        stamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime())
        line = f"{stamp} [tid:{threading.get_ident()}] [{Level(level).value}] {message}"
        with self._lock:
            stream = self._stream if self._stream is not None else sys.stdout
            print(line, file=stream, flush=True)