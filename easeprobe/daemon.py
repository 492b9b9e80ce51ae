"""PID file handling for a running probe instance."""

from __future__ import annotations

import os
import stat
import sys
from contextlib import suppress
from dataclasses import dataclass
from pathlib import Path

DEFAULT_PROG = "EaseProbe"
DEFAULT_PID_FILE = "easeprobe.pid"


class DaemonError(RuntimeError):
    """Raised when a PID file cannot be created or another instance is running."""

    def __init__(self, message: str, pid: int = -1) -> None:
        super().__init__(message)
        self.pid = pid


def process_exists(pid: int) -> bool:
    """Return True if a process with the given id is running."""
    if pid <= 0:
        return False
    if sys.platform.startswith("linux"):
        return os.path.exists(os.path.join("/proc", str(pid)))
    if os.name == "nt":
        # Without platform bindings only the current process can be confirmed.
        return pid == os.getpid()
    try:
        os.kill(pid, 0)
    except (OSError, OverflowError):
        return False
    return True


@dataclass
class PIDFile:
    """A PID file written by this process."""

    path: str

    def check(self) -> int:
        """Return -1 if no live process owns the file; raise DaemonError otherwise."""
        try:
            content = Path(self.path).read_text()
        except OSError:
            return -1
        try:
            pid = int(content.strip())
        except ValueError:
            return -1
        if process_exists(pid):
            raise DaemonError(
                f"pid file({self.path}) found, ensure {DEFAULT_PROG}({pid}) is not running",
                pid,
            )
        return -1

    def remove(self) -> None:
        """Delete the PID file."""
        os.remove(self.path)

    def __enter__(self) -> PIDFile:
        return self

    def __exit__(self, *exc_info: object) -> None:
        with suppress(FileNotFoundError):
            self.remove()


def create_pid_file(path: str | os.PathLike) -> PIDFile:
    """Write the current process id to ``path`` and return the PID file.

    A directory gets the default file name inside it; a symbolic link is
    replaced by a regular file; missing parent directories are created.
    """
    if not path:
        raise DaemonError("pid file is empty")
    target = Path(path)
    try:
        info = os.stat(target)
    except FileNotFoundError:
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise DaemonError(f"cannot create directory for {target}: {exc}") from exc
    except OSError as exc:
        raise DaemonError(f"cannot access {target}: {exc}") from exc
    else:
        if stat.S_ISDIR(info.st_mode):
            target = target / DEFAULT_PID_FILE
        if target.is_symlink():
            target.unlink()

    try:
        fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as handle:
            handle.write(str(os.getpid()))
    except OSError as exc:
        raise DaemonError(f"cannot write pid file {target}: {exc}") from exc
    return PIDFile(str(target))