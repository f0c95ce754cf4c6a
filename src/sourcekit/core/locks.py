"""Inter-process locks guarding bootstrap slots under the tools directory.

A slot such as ``<tools_dir>/licensechecker/1.3.1`` is populated by at most
one process at a time. The owner holds ``<slot>.lock``, created exclusively
and holding the owner's process id. A lock whose owner is no longer running
(the process crashed mid-bootstrap) is broken and retaken instead of
blocking every later run until the timeout.
"""

from __future__ import annotations

import os
import time
from pathlib import Path

from .logging import Logger, get_logger

__all__ = [
    "LockError",
    "LockTimeoutError",
    "SlotLock",
    "lock_path_for",
    "read_owner",
]

LOCK_SUFFIX = ".lock"


class LockError(RuntimeError):
    """A bootstrap slot could not be locked or unlocked."""


class LockTimeoutError(LockError):
    """Another live process kept the slot locked past the timeout."""


def lock_path_for(slot: Path) -> Path:
    """Return the lock file guarding ``slot``; it sits beside the slot."""

    return slot.with_name(f"{slot.name}{LOCK_SUFFIX}")


def read_owner(lock_path: Path) -> int | None:
    """Return the process id recorded in ``lock_path``.

    ``None`` means the file is gone, unreadable or still being written.
    """

    try:
        text = lock_path.read_text(encoding="ascii").strip()
    except (OSError, UnicodeDecodeError):
        return None
    return int(text) if text.isdigit() else None


def _is_running(pid: int) -> bool:
    if pid <= 0:
        return False
    # Signal 0 terminates the target on Windows; assume the owner is alive.
    if os.name == "nt":
        return True
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except OSError:
        # EPERM: alive, owned by another user.
        return True
    return True


class SlotLock:
    """Exclusive, stale-aware lock over one bootstrap slot.

    Threads of one process must serialize among themselves before taking
    the lock: the pid check cannot tell two threads of the same process
    apart.
    """

    def __init__(
        self,
        slot: Path,
        *,
        timeout: float = 600.0,
        poll_interval: float = 0.2,
        logger: Logger | None = None,
    ) -> None:
        self.slot = slot
        self.path = lock_path_for(slot)
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._logger = logger or get_logger(__name__, component="locks")
        self._handle: int | None = None

    @property
    def locked(self) -> bool:
        return self._handle is not None

    def acquire(self) -> None:
        """Take the slot, waiting up to ``timeout`` seconds for a live owner.

        Raises:
            LockTimeoutError: If a running process still holds the slot.
            LockError: If the lock file cannot be created.
        """

        if self._handle is not None:
            return

        deadline = time.monotonic() + max(self.timeout, 0.0)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise LockError(
                f"Cannot create the parent of slot {self.slot}: {exc}"
            ) from exc

        while True:
            try:
                handle = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError:
                if self._break_if_stale():
                    continue
                if time.monotonic() >= deadline:
                    owner = read_owner(self.path)
                    raise LockTimeoutError(
                        f"Slot {self.slot} is still being prepared by "
                        f"process {owner if owner is not None else '<unknown>'} "
                        f"after {self.timeout:g}s."
                    ) from None
                time.sleep(self.poll_interval)
                continue
            except OSError as exc:
                raise LockError(f"Cannot lock slot {self.slot}: {exc}") from exc

            os.write(handle, str(os.getpid()).encode("ascii"))
            self._handle = handle
            return

    def _break_if_stale(self) -> bool:
        owner = read_owner(self.path)
        if owner is None or owner == os.getpid() or _is_running(owner):
            return False
        self._logger.warning(
            "slot-lock-stale",
            slot=str(self.slot),
            owner=owner,
        )
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise LockError(
                f"Cannot remove the stale lock of slot {self.slot} held by "
                f"process {owner}: {exc}"
            ) from exc
        return True

    def release(self) -> None:
        handle = self._handle
        if handle is None:
            return
        self._handle = None
        try:
            os.close(handle)
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            raise LockError(f"Cannot unlock slot {self.slot}: {exc}") from exc

    def __enter__(self) -> "SlotLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
