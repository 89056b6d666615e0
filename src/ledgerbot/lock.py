"""Single-instance PID lock.

Two pollers sharing one bot token would steal each other's updates, so
startup refuses to continue while another live process holds the lock.
A lock left behind by a dead process is taken over.
"""

from __future__ import annotations

import os
from pathlib import Path
from types import TracebackType

from ledgerbot.exceptions import InstanceLockedError
from ledgerbot.logging import get_logger

log = get_logger("ledgerbot.lock")


def _pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists but belongs to another user
        return True
    return True


class InstanceLock:
    """PID file guarding against a second running instance."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._pid = os.getpid()
        self._held = False

    def acquire(self) -> None:
        """Take the lock or raise InstanceLockedError."""
        try:
            content = self._path.read_text().strip()
        except FileNotFoundError:
            content = ""

        if content.isdigit():
            pid = int(content)
            if pid != self._pid and _pid_alive(pid):
                raise InstanceLockedError(pid, str(self._path))
            log.info("stale_lock_taken_over", previous_pid=pid)

        self._path.write_text(str(self._pid))
        self._held = True
        log.info("instance_lock_acquired", path=str(self._path), pid=self._pid)

    def release(self) -> None:
        """Remove the lock file if this process still owns it."""
        if not self._held:
            return
        try:
            if self._path.read_text().strip() == str(self._pid):
                self._path.unlink()
        except FileNotFoundError:
            pass
        self._held = False
        log.info("instance_lock_released", path=str(self._path))

    def __enter__(self) -> InstanceLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
