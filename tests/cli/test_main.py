"""Tests for the :mod:`sourcekit.__main__` entrypoint."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from sourcekit.__main__ import main


def test_main_invokes_cli(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    cache_root = tmp_path / "cache"

    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("SOURCEKIT_CACHE_ROOT", str(cache_root))
    monkeypatch.setenv("SOURCEKIT_LOG_LEVEL", "warning")
    monkeypatch.setattr(sys, "argv", ["sourcekit", "config", "--no-comments"])

    configured: dict[str, object] = {}

    def fake_configure_logging(*, level: str, log_dir: Path | None = None, console=None) -> None:
        configured["level"] = level
        configured["log_dir"] = log_dir

    monkeypatch.setattr("sourcekit.cli.configure_logging", fake_configure_logging)

    with pytest.raises(SystemExit) as exc:
        main()

    assert exc.value.code == 0
    assert configured["level"] == "WARNING"
    assert configured["log_dir"] == cache_root / "logs"
    assert 'log_level = "WARNING"' in capsys.readouterr().out
