"""Log output settings: level, destination file and rotation."""

from __future__ import annotations

import gzip
import logging
import os
import shutil
import sys
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import IntEnum
from pathlib import Path
from typing import Any, TextIO

import yaml

DEFAULT_MAX_LOG_SIZE = 10  # megabytes
DEFAULT_MAX_LOG_AGE = 7  # days
DEFAULT_MAX_BACKUPS = 5

log = logging.getLogger(__name__)


class LogLevel(IntEnum):
    """Severity threshold of a log."""

    PANIC = 0
    FATAL = 1
    ERROR = 2
    WARN = 3
    INFO = 4
    DEBUG = 5

    def __str__(self) -> str:
        return self.name.lower()

    @property
    def python_level(self) -> int:
        """The matching level of the standard logging module."""
        return _PYTHON_LEVELS[self]


_PYTHON_LEVELS = {
    LogLevel.PANIC: logging.CRITICAL,
    LogLevel.FATAL: logging.CRITICAL,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.WARN: logging.WARNING,
    LogLevel.INFO: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
}
_LEVEL_NAMES = {str(level): level for level in LogLevel}


def dump_log_level(level: int) -> str:
    """Serialise a log level as a YAML scalar document."""
    try:
        member = LogLevel(level)
    except ValueError as exc:
        raise ValueError(f"invalid LogLevel: {level!r}") from exc
    return f"{member}\n"


def load_log_level(text: str) -> LogLevel:
    """Read a log level from a YAML scalar; raise ValueError if invalid."""
    try:
        value = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"invalid LogLevel: {exc}") from exc
    if not isinstance(value, str) or value.lower() not in _LEVEL_NAMES:
        raise ValueError(f"invalid LogLevel: {value!r}")
    return _LEVEL_NAMES[value.lower()]


_BACKUP_TIME = "%Y-%m-%dT%H-%M-%S.%f"


class _RotatingFile:
    """A log file that rotates by size or on demand, keeping limited backups."""

    def __init__(self, filename: str, max_size: int, max_backups: int,
                 max_age: int, compress: bool) -> None:
        self.path = Path(filename)
        self.max_size = max_size
        self.max_backups = max_backups
        self.max_age = max_age
        self.compress = compress
        self._stream: TextIO | None = None
        self._size = 0

    def _open(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._stream = open(self.path, "a", encoding="utf-8")
        self._size = self.path.stat().st_size

    def write(self, text: str) -> int:
        if self._stream is None:
            self._open()
        size = len(text.encode("utf-8"))
        if self.max_size > 0 and self._size + size > self.max_size * 1024 * 1024:
            self.rotate()
        self._stream.write(text)
        self._size += size
        return len(text)

    def flush(self) -> None:
        if self._stream is not None:
            self._stream.flush()

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None

    def rotate(self) -> None:
        """Move the current file to a timestamped backup and start a new one."""
        self.close()
        if self.path.exists():
            stamp = datetime.now(timezone.utc).strftime(_BACKUP_TIME)[:-3]
            backup = self.path.with_name(f"{self.path.stem}-{stamp}{self.path.suffix}")
            os.replace(self.path, backup)
            if self.compress:
                gz_path = backup.with_name(backup.name + ".gz")
                with open(backup, "rb") as source, gzip.open(gz_path, "wb") as target:
                    shutil.copyfileobj(source, target)
                backup.unlink()
        self._open()
        self._cleanup()

    def _backups(self) -> list[tuple[datetime, Path]]:
        prefix = f"{self.path.stem}-"
        suffix = self.path.suffix
        found = []
        for entry in self.path.parent.iterdir():
            name = entry.name
            if not name.startswith(prefix):
                continue
            body = name[len(prefix):]
            if body.endswith(".gz"):
                body = body[:-3]
            if suffix:
                if not body.endswith(suffix):
                    continue
                body = body[: -len(suffix)]
            try:
                stamp = datetime.strptime(body, _BACKUP_TIME).replace(tzinfo=timezone.utc)
            except ValueError:
                continue
            found.append((stamp, entry))
        return found

    def _cleanup(self) -> None:
        backups = sorted(self._backups(), key=lambda item: item[0], reverse=True)
        kept = backups[: self.max_backups] if self.max_backups > 0 else backups
        stale = backups[len(kept):]
        if self.max_age > 0:
            cutoff = datetime.now(timezone.utc) - timedelta(days=self.max_age)
            stale += [item for item in kept if item[0] < cutoff]
        for _, path in stale:
            try:
                path.unlink()
            except OSError as exc:
                log.warning("[Log] Cannot remove old log file %s: %s", path, exc)


@dataclass
class LogSettings:
    """Where and how a log is written."""

    level: LogLevel = LogLevel.INFO
    file: str = ""
    self_rotate: bool = True
    max_size: int = DEFAULT_MAX_LOG_SIZE
    max_age: int = DEFAULT_MAX_LOG_AGE
    max_backups: int = DEFAULT_MAX_BACKUPS
    compress: bool = True
    writer: Any = field(default=None, repr=False)
    logger: logging.Logger | None = field(default=None, repr=False)
    is_stdout: bool = True
    _handler: logging.Handler | None = field(default=None, init=False, repr=False)
    _target: logging.Logger | None = field(default=None, init=False, repr=False)

    def init_log(self, logger: logging.Logger | None = None) -> None:
        """Open the output and configure ``logger`` (or the root logger)."""
        self.logger = logger
        self.check_default()
        if self.file:
            Path(self.file).parent.mkdir(parents=True, exist_ok=True)
        self.open()
        self.configure_logger()

    def check_default(self) -> None:
        """Replace unset values with the defaults."""
        if self.max_age == 0:
            self.max_age = DEFAULT_MAX_LOG_AGE
        if self.max_size == 0:
            self.max_size = DEFAULT_MAX_LOG_SIZE
        if self.max_backups == 0:
            self.max_backups = DEFAULT_MAX_BACKUPS
        if self.level == LogLevel.PANIC:
            self.level = LogLevel.INFO

    def open(self) -> None:
        """Open the writer: standard output, a self-rotating file or a plain file."""
        if not self.file:
            self.is_stdout = True
            self.writer = sys.stdout
            return
        if self.self_rotate:
            log.debug("[Log] Self Rotate log file %s", self.file)
            self.is_stdout = False
            self.writer = _RotatingFile(
                self.file, self.max_size, self.max_backups, self.max_age, self.compress
            )
            return
        try:
            fd = os.open(self.file, os.O_APPEND | os.O_CREAT | os.O_RDWR, 0o640)
            self.writer = os.fdopen(fd, "a", encoding="utf-8")
        except OSError as exc:
            log.warning("[Log] Cannot open log file: %s", exc)
            log.info("[Log] Using Standard Output as the log output...")
            self.is_stdout = True
            self.writer = sys.stdout
            return
        self.is_stdout = False

    def _detach(self) -> None:
        if self._handler is not None and self._target is not None:
            self._target.removeHandler(self._handler)
        self._handler = None
        self._target = None

    def close(self) -> None:
        """Stop logging to the writer and close it if it is a file."""
        self._detach()
        if self.writer is None or self.is_stdout:
            return
        self.writer.close()

    def get_writer(self) -> Any:
        """Return the writer, opening it first if needed."""
        if self.writer is None:
            self.open()
        return self.writer

    def rotate(self) -> None:
        """Rotate a self-managed file, or reopen a file rotated by another program."""
        if self.writer is None or self.is_stdout:
            return
        if isinstance(self.writer, _RotatingFile):
            try:
                self.writer.rotate()
            except OSError as exc:
                log.error("[Log] Rotate log file failed: %s", exc)
            return
        self._detach()
        try:
            self.writer.close()
        except OSError as exc:
            log.error("[Log] Close log file failed: %s", exc)
        self.open()
        self.configure_logger()

    def configure_logger(self) -> None:
        """Direct the configured logger, or the root logger, to the writer."""
        target = self.logger if self.logger is not None else logging.getLogger()
        self._detach()
        handler = logging.StreamHandler(self.writer)
        handler.setFormatter(
            logging.Formatter("time=%(asctime)s level=%(levelname)s msg=%(message)s")
        )
        target.setLevel(self.level.python_level)
        target.addHandler(handler)
        self._handler = handler
        self._target = target

    def log_info(self, name: str) -> None:
        """Log where this log is written and how it is rotated."""
        rotate = "Self-Rotate" if self.self_rotate else "Third-Party Rotate (e.g. logrotate)"
        if self.file:
            log.info("%s Log File [%s] - %s", name, self.file, rotate)
        else:
            log.info("%s Log File [Stdout] - %s ", name, rotate)