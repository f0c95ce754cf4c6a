"""Tests for :mod:`sourcekit.scanner.licensechecker`."""

from __future__ import annotations

import json
import os
import stat
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

from sourcekit.model import Provenance, RemoteArtifact
from sourcekit.scanner import (
    LicenseChecker,
    LicenseCheckerCommand,
    LicenseCheckerOptions,
    ScanError,
)
from sourcekit.scanner.licensechecker import LC_RELEASE_URL
from sourcekit.tools import Platform, ToolResolutionError

_NOW = datetime(2024, 5, 1, tzinfo=timezone.utc)
_PROVENANCE = Provenance(
    download_time=_NOW,
    source_artifact=RemoteArtifact(url="https://h/lib-1.0.zip"),
)

_LC_OUTPUT = [
    {
        "Filename": "LICENSE",
        "LicenseGuesses": [{"LicenseId": "MIT", "Percentage": 99.1}],
    },
    {"Filename": "a.py", "LicenseGuesses": []},
    {"Filename": "b.py", "LicenseGuesses": None},
    {
        "Filename": "c.py",
        "LicenseGuesses": [{"LicenseId": "Apache-2.0"}, {"LicenseId": "MIT"}],
    },
]

_FAKE_LC = """#!/bin/sh
if [ "$1" = "--version" ]; then
  echo "licensechecker version {version}"
  exit 0
fi
printf '%s\\n' "$@" > "$(dirname "$0")/args.txt"
out=""
while [ $# -gt 0 ]; do
  if [ "$1" = "--output" ]; then
    out="$2"
  fi
  shift
done
cat > "$out" <<'JSON'
{payload}
JSON
exit {exit_code}
"""

posix_only = pytest.mark.skipif(
    sys.platform == "win32", reason="fake lc is a POSIX shell script"
)


def _fake_lc_source(version: str = "1.3.1", exit_code: int = 0) -> str:
    return _FAKE_LC.format(
        version=version,
        payload=json.dumps(_LC_OUTPUT),
        exit_code=exit_code,
    )


def _install_fake_lc(directory: Path, **kwargs) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "lc"
    path.write_text(_fake_lc_source(**kwargs), encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def lc_on_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    bin_dir = tmp_path / "bin"
    _install_fake_lc(bin_dir)
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")
    return bin_dir


def test_transform_version_strips_banner() -> None:
    command = LicenseCheckerCommand()

    assert command.transform_version("licensechecker version 1.3.1") == "1.3.1"
    assert command.transform_version("1.4.0\n") == "1.4.0"


@pytest.mark.parametrize(
    ("os_name", "suffix"),
    [
        ("linux", "x86_64-unknown-linux"),
        ("macos", "x86_64-apple-darwin"),
        ("windows", "x86_64-pc-windows"),
    ],
)
def test_release_url_per_platform(os_name: str, suffix: str) -> None:
    command = LicenseCheckerCommand(platform=Platform(os=os_name, arch="x86_64"))

    assert command.release_url() == (
        f"https://github.com/boyter/lc/releases/download/v1.3.1/lc-1.3.1-{suffix}.zip"
    )


def test_release_url_unknown_platform() -> None:
    command = LicenseCheckerCommand(platform=Platform(os="plan9", arch="x86_64"))

    with pytest.raises(ToolResolutionError, match="plan9"):
        command.release_url()


def test_generate_summary_collects_license_ids() -> None:
    scanner = LicenseChecker(LicenseCheckerCommand())

    summary = scanner.generate_summary(_NOW, _NOW, _LC_OUTPUT)

    assert summary.file_count == 4
    assert summary.licenses == ("Apache-2.0", "MIT")


def test_get_result_empty_or_missing_file(tmp_path: Path) -> None:
    scanner = LicenseChecker(LicenseCheckerCommand())
    empty = tmp_path / "empty.json"
    empty.write_text("")

    assert scanner.get_result(empty) == []
    assert scanner.get_result(tmp_path / "missing.json") == []

    invalid = tmp_path / "invalid.json"
    invalid.write_text('{"not": "a list"}')
    with pytest.raises(ScanError):
        scanner.get_result(invalid)


def test_options_validation() -> None:
    assert LicenseCheckerOptions().confidence == 0.95
    with pytest.raises(ValueError):
        LicenseCheckerOptions(confidence=1.5)


@posix_only
def test_scan_path_runs_lc(lc_on_path: Path, tmp_path: Path) -> None:
    source = tmp_path / "src"
    source.mkdir()
    results_file = tmp_path / "results" / "scan-results_licensechecker.json"
    scanner = LicenseChecker(
        LicenseCheckerCommand(),
        options=LicenseCheckerOptions(confidence=0.9),
    )

    result = scanner.scan_path(source, _PROVENANCE, results_file)

    assert result.scanner.name == "licensechecker"
    assert result.scanner.version == "1.3.1"
    assert result.scanner.configuration == "--confidence 0.9 --format json"
    assert result.summary.file_count == 4
    assert result.summary.licenses == ("Apache-2.0", "MIT")
    assert json.loads(results_file.read_text()) == _LC_OUTPUT

    args = (lc_on_path / "args.txt").read_text().splitlines()
    assert args == [
        "--confidence",
        "0.9",
        "--format",
        "json",
        "--output",
        str(results_file.resolve()),
        str(source.resolve()),
    ]


@posix_only
def test_failed_scan_removes_result_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    bin_dir = tmp_path / "bin"
    _install_fake_lc(bin_dir, exit_code=2)
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")
    results_file = tmp_path / "scan-results_licensechecker.json"

    scanner = LicenseChecker(LicenseCheckerCommand())
    with pytest.raises(ScanError, match="exit code 2"):
        scanner.run_scan(tmp_path, results_file)

    assert not results_file.exists()


def test_version_failure_is_a_scan_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(LicenseCheckerCommand, "find_in_path", lambda self: None)
    scanner = LicenseChecker(LicenseCheckerCommand())

    with pytest.raises(ScanError, match="Cannot determine the version"):
        scanner.version


@posix_only
def test_bootstrap_downloads_release(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    http_client,
    static_server,
    zip_bytes,
) -> None:
    monkeypatch.setattr(LicenseCheckerCommand, "find_in_path", lambda self: None)
    linux = Platform(os="linux", arch="x86_64")
    url = LC_RELEASE_URL.format(version="1.3.1", platform="x86_64-unknown-linux")
    static_server.add(url, zip_bytes({"lc": _fake_lc_source().encode("utf-8")}))
    tools_dir = tmp_path / "tools"

    command = LicenseCheckerCommand(
        tools_dir=tools_dir,
        http_client=http_client,
        platform=linux,
    )

    assert command.resolve_path() == tools_dir / "licensechecker" / "1.3.1"
    assert str(command.check_version()) == "1.3.1"
    assert static_server.hits(url) == 1

    again = LicenseCheckerCommand(tools_dir=tools_dir, http_client=http_client, platform=linux)
    assert again.resolve_path() == command.resolve_path()
    assert static_server.hits(url) == 1
