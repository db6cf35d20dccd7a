"""PID file guard so only one daemon screens a state directory."""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_PID_NAME = "screenr.pid"


class PidFileError(RuntimeError):
    """Raised when another daemon already owns the PID file."""


def read_pid(path: Path) -> int | None:
    """Return the PID recorded in ``path``, or None if absent or unreadable."""

    try:
        contents = path.read_text(encoding="utf-8").strip()
    except OSError:
        return None
    return int(contents) if contents.isdigit() else None


def pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


def running_pid(path: Path) -> int | None:
    """Return the live daemon PID for ``path``, clearing stale files."""

    path = path.expanduser()
    recorded = read_pid(path)
    if recorded is None:
        return None
    if pid_alive(recorded):
        return recorded
    path.unlink(missing_ok=True)
    return None


class PidFile:
    """Context manager writing the current PID and removing it on exit."""

    def __init__(self, path: Path) -> None:
        self.path = path.expanduser()
        self.pid: int | None = None

    def __enter__(self) -> PidFile:
        self.acquire()
        return self

    def __exit__(self, _exc_type, _exc, _tb) -> None:
        self.release()

    def acquire(self) -> int:
        other = running_pid(self.path)
        if other is not None and other != os.getpid():
            raise PidFileError(f"Screenr daemon already running (PID {other}).")
        self.pid = os.getpid()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(str(self.pid), encoding="utf-8")
        return self.pid

    def release(self) -> None:
        if self.pid is not None and read_pid(self.path) == self.pid:
            self.path.unlink(missing_ok=True)
        self.pid = None


__all__ = ["DEFAULT_PID_NAME", "PidFile", "PidFileError", "pid_alive", "read_pid", "running_pid"]
