"""Thread-safe log file writer with a fallback list of directories."""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import IO, Iterable

__all__ = ["Logger"]

_log = logging.getLogger("karlyrics")
_MAX_FORMATTED = 1022


class Logger:
    """Writes timestamped DEBUG and ERROR lines to a log file."""

    FILENAME = "karlyriceditor.log"

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._file: IO[str] | None = None
        self.path: Path | None = None

    def open(self, directories: Iterable[str | Path]) -> Path:
        """Open the log file in the first writable directory and return its path."""
        last_path: Path | None = None
        last_error: OSError | None = None

        for directory in directories:
            last_path = Path(directory) / self.FILENAME
            try:
                handle = open(last_path, "w", encoding="utf-8", newline="\n")
            except OSError as exc:
                last_error = exc
                continue

            with self._lock:
                if self._file is not None:
                    self._file.close()
                self._file = handle
                self.path = last_path
            return last_path

        if last_path is None:
            raise OSError("Cannot write log file: no directory given")
        raise OSError(f"Cannot write log file to {last_path}: {last_error}")

    def close(self) -> None:
        """Close the log file; later messages go only to the logging module."""
        with self._lock:
            if self._file is not None:
                self._file.close()
            self._file = None

    def debug(self, fmt: str, *args: object) -> None:
        """Log a DEBUG message, %-formatted when arguments are given."""
        self._add("DEBUG", self._format(fmt, args))

    def error(self, fmt: str, *args: object) -> None:
        """Log an ERROR message, %-formatted when arguments are given."""
        self._add("ERROR", self._format(fmt, args))

    @staticmethod
    def _format(fmt: str, args: tuple[object, ...]) -> str:
        if not args:
            return str(fmt)
        return (fmt % args)[:_MAX_FORMATTED]

    def _add(self, kind: str, message: str) -> None:
        _log.debug("%s %s", kind, message)
        with self._lock:
            if self._file is None:
                return
            stamp = time.strftime("%Y-%m-%d %H:%M:%S")
            self._file.write(f"{stamp} {kind} {message}\n")
            self._file.flush()