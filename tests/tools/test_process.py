"""Tests for :mod:`sourcekit.tools.process`."""

from __future__ import annotations

import sys
import threading
import time
from pathlib import Path

import pytest

from sourcekit.tools import (
    ProcessCancelledError,
    ProcessError,
    ProcessTimeoutError,
    ToolResolutionError,
    run_process,
)

pytestmark = pytest.mark.skipif(
    sys.platform == "win32", reason="process group handling is POSIX specific"
)


def test_run_process_captures_streams_and_exit_code(tmp_path: Path) -> None:
    capture = run_process(
        [sys.executable, "-c", "import sys; print('out'); print('err', file=sys.stderr); sys.exit(3)"],
        working_dir=tmp_path,
    )

    assert capture.stdout.strip() == "out"
    assert capture.stderr.strip() == "err"
    assert capture.exit_code == 3
    assert capture.is_error
    assert capture.working_dir == tmp_path
    assert "exit code 3" in capture.error_message


def test_require_success_raises_process_error() -> None:
    capture = run_process([sys.executable, "-c", "raise SystemExit(1)"])

    with pytest.raises(ProcessError) as excinfo:
        capture.require_success()

    assert excinfo.value.capture is capture
    assert excinfo.value.command == capture.command


def test_run_process_overlays_environment(tmp_path: Path) -> None:
    capture = run_process(
        [sys.executable, "-c", "import os; print(os.environ['SOURCEKIT_MARKER'])"],
        env={"SOURCEKIT_MARKER": "42"},
    )

    assert capture.require_success().stdout.strip() == "42"


def test_missing_executable_is_a_resolution_error() -> None:
    with pytest.raises(ToolResolutionError):
        run_process(["sourcekit-definitely-not-installed", "--version"])


def test_timeout_kills_the_process() -> None:
    started = time.monotonic()

    with pytest.raises(ProcessTimeoutError):
        run_process(
            [sys.executable, "-c", "import time; time.sleep(30)"],
            timeout=0.5,
        )

    assert time.monotonic() - started < 10


def test_cancel_event_kills_the_process() -> None:
    cancel = threading.Event()
    timer = threading.Timer(0.3, cancel.set)
    timer.start()
    started = time.monotonic()

    try:
        with pytest.raises(ProcessCancelledError):
            run_process(
                [sys.executable, "-c", "import time; time.sleep(30)"],
                cancel_event=cancel,
            )
    finally:
        timer.cancel()

    assert time.monotonic() - started < 10
