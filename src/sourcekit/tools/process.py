"""Child process execution with captured output and group termination."""

from __future__ import annotations

import os
import signal
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

from .errors import (
    ProcessCancelledError,
    ProcessError,
    ProcessTimeoutError,
    ToolResolutionError,
)

__all__ = ["ProcessCapture", "run_process"]

_POLL_INTERVAL = 0.1
_POSIX = os.name != "nt"


@dataclass(frozen=True, slots=True)
class ProcessCapture:
    """Fully captured output of a finished child process."""

    command: tuple[str, ...]
    working_dir: Path
    stdout: str
    stderr: str
    exit_code: int

    @property
    def is_success(self) -> bool:
        return self.exit_code == 0

    @property
    def is_error(self) -> bool:
        return not self.is_success

    @property
    def error_message(self) -> str:
        """Describe the failure including both output streams."""

        return (
            f"Running '{' '.join(self.command)}' in '{self.working_dir}' "
            f"failed with exit code {self.exit_code}:\n"
            f"Standard output:\n{self.stdout}\n"
            f"Standard error:\n{self.stderr}"
        )

    def require_success(self) -> "ProcessCapture":
        """Return ``self`` or raise :class:`ProcessError` on a non-zero exit."""

        if self.is_error:
            raise ProcessError(
                self.error_message,
                command=self.command,
                capture=self,
            )
        return self


def _terminate(process: subprocess.Popen[str]) -> None:
    if _POSIX:
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
    else:  # pragma: no cover - exercised on Windows only
        process.kill()
    # Reap the child and close its pipes.
    process.communicate()


def run_process(
    command: Sequence[str | os.PathLike[str]],
    *,
    working_dir: Path | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
    cancel_event: threading.Event | None = None,
) -> ProcessCapture:
    """Run ``command`` and capture its output.

    The child runs in its own session so a timeout or cancellation can kill
    every process it spawned. A non-zero exit code is not an error here;
    callers inspect :attr:`ProcessCapture.is_success`.

    Args:
        command: Program and arguments.
        working_dir: Directory to run in, defaults to the current directory.
        env: Variables overlaid on the inherited environment.
        timeout: Seconds before the process group is killed.
        cancel_event: Kills the process group once set.

    Raises:
        ToolResolutionError: If the executable does not exist.
        ProcessTimeoutError: If ``timeout`` elapsed.
        ProcessCancelledError: If ``cancel_event`` was set.
    """

    argv = tuple(os.fspath(part) for part in command)
    cwd = Path(working_dir) if working_dir is not None else Path.cwd()
    child_env = {**os.environ, **env} if env else None

    try:
        process = subprocess.Popen(
            argv,
            cwd=cwd,
            env=child_env,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            start_new_session=_POSIX,
        )
    except FileNotFoundError as exc:
        raise ToolResolutionError(
            f"Executable '{argv[0]}' was not found."
        ) from exc

    deadline = time.monotonic() + timeout if timeout is not None else None

    while True:
        wait_for: float | None = None
        if cancel_event is not None:
            wait_for = _POLL_INTERVAL
        if deadline is not None:
            remaining = max(deadline - time.monotonic(), 0.0)
            wait_for = remaining if wait_for is None else min(wait_for, remaining)

        try:
            stdout, stderr = process.communicate(timeout=wait_for)
            break
        except subprocess.TimeoutExpired:
            if cancel_event is not None and cancel_event.is_set():
                _terminate(process)
                raise ProcessCancelledError(
                    f"Running '{' '.join(argv)}' was cancelled.",
                    command=argv,
                ) from None
            if deadline is not None and time.monotonic() >= deadline:
                _terminate(process)
                raise ProcessTimeoutError(
                    f"Running '{' '.join(argv)}' timed out after "
                    f"{timeout} seconds.",
                    command=argv,
                ) from None

    return ProcessCapture(
        command=argv,
        working_dir=cwd,
        stdout=stdout,
        stderr=stderr,
        exit_code=process.returncode,
    )
