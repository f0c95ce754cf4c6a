"""Integration tests for the Typer application exposed by :mod:`sourcekit.cli`."""

from __future__ import annotations

import json
import tomllib
from pathlib import Path

import pytest
from typer.testing import CliRunner

from sourcekit.cli import create_app

_ARTIFACT_URL = "https://repo.example.com/lib/lib-1.0.tar.gz"


@pytest.fixture()
def runner() -> CliRunner:
    """Return a Typer CLI runner for invoking the application."""

    return CliRunner()


@pytest.fixture()
def env(tmp_path: Path) -> dict[str, str]:
    return {
        "HOME": str(tmp_path),
        "SOURCEKIT_CACHE_ROOT": str(tmp_path / "cache"),
    }


@pytest.fixture()
def analyzer_result(
    tmp_path: Path, static_server, tar_gz_bytes, sha256_hex
) -> Path:
    payload = tar_gz_bytes({"package/index.js": b"1", "package/README": b"hi"})
    static_server.add(_ARTIFACT_URL, payload)
    path = tmp_path / "analyzer-result.json"
    path.write_text(
        json.dumps(
            {
                "packages": [
                    {
                        "id": "npm::lib:1.0",
                        "source_artifact": {
                            "url": _ARTIFACT_URL,
                            "hash": sha256_hex(payload),
                            "hash_algorithm": "SHA-256",
                        },
                    }
                ]
            }
        ),
        encoding="utf-8",
    )
    return path


def test_config_command_reflects_env_overrides(
    runner: CliRunner, env: dict[str, str], tmp_path: Path
) -> None:
    env["SOURCEKIT_LOG_LEVEL"] = "warning"

    result = runner.invoke(create_app(), ["config"], env=env, catch_exceptions=False)

    assert result.exit_code == 0, result.output
    assert result.stdout.startswith("# Generated by sourcekit config")
    config = tomllib.loads(result.stdout)
    assert config["log_level"] == "WARNING"
    assert config["cache_root"] == str(tmp_path / "cache")
    assert (tmp_path / "cache" / "logs").is_dir()


def test_config_command_reads_user_file_and_cli_flags(
    runner: CliRunner, env: dict[str, str], tmp_path: Path
) -> None:
    config_file = tmp_path / "custom.toml"
    config_file.write_text(
        '[scanner]\nname = "file-counter"\n[downloader]\nmax_concurrency = 9\n',
        encoding="utf-8",
    )

    result = runner.invoke(
        create_app(),
        ["--config", str(config_file), "--log-level", "error", "config", "--no-comments"],
        env=env,
        catch_exceptions=False,
    )

    assert result.exit_code == 0, result.output
    assert not result.stdout.startswith("#")
    config = tomllib.loads(result.stdout)
    assert config["log_level"] == "ERROR"
    assert config["scanner"]["name"] == "file-counter"
    assert config["downloader"]["max_concurrency"] == 9


def test_invalid_log_level_is_rejected(runner: CliRunner, env: dict[str, str]) -> None:
    result = runner.invoke(create_app(), ["--log-level", "chatty", "config"], env=env)

    assert result.exit_code == 2


def test_invalid_config_file_exits_with_error(
    runner: CliRunner, env: dict[str, str], tmp_path: Path
) -> None:
    config_file = tmp_path / "broken.toml"
    config_file.write_text("[downloader\n", encoding="utf-8")

    result = runner.invoke(create_app(), ["--config", str(config_file), "config"], env=env)

    assert result.exit_code == 1
    assert "Failed to read config" in result.output


def test_download_command_fetches_artifacts(
    runner: CliRunner,
    env: dict[str, str],
    tmp_path: Path,
    static_server,
    analyzer_result: Path,
) -> None:
    output_dir = tmp_path / "out"
    cache_root = tmp_path / "flag-cache"

    result = runner.invoke(
        create_app(transport=static_server.transport),
        [
            "--cache-root",
            str(cache_root),
            "download",
            str(analyzer_result),
            "--output-dir",
            str(output_dir),
        ],
        env=env,
        catch_exceptions=False,
    )

    assert result.exit_code == 0, result.output
    assert "npm::lib:1.0: artifact" in result.stdout
    assert (output_dir / "npm" / "unknown" / "lib" / "1.0" / "package" / "index.js").is_file()
    assert (cache_root / "downloader" / "cache" / "http").is_dir()
    assert (cache_root / "logs" / "sourcekit.log").is_file()


def test_download_command_reports_failures(
    runner: CliRunner, env: dict[str, str], tmp_path: Path, static_server
) -> None:
    analyzer = tmp_path / "analyzer-result.json"
    analyzer.write_text(json.dumps({"packages": [{"id": "npm::ghost:0.1"}]}))

    result = runner.invoke(
        create_app(transport=static_server.transport),
        ["download", str(analyzer), "-o", str(tmp_path / "out")],
        env=env,
    )

    assert result.exit_code == 1
    assert "npm::ghost:0.1: failed" in result.stdout
    assert "no VCS URL and no source artifact URL" in result.stdout


def test_download_command_with_nothing_to_do(
    runner: CliRunner, env: dict[str, str], tmp_path: Path
) -> None:
    analyzer = tmp_path / "analyzer-result.json"
    analyzer.write_text("{}")

    result = runner.invoke(
        create_app(),
        ["download", str(analyzer), "-o", str(tmp_path / "out"), "--entity", "projects"],
        env=env,
        catch_exceptions=False,
    )

    assert result.exit_code == 0, result.output
    assert "No projects to download." in result.stdout


def test_download_command_rejects_malformed_analyzer_result(
    runner: CliRunner, env: dict[str, str], tmp_path: Path
) -> None:
    analyzer = tmp_path / "analyzer-result.json"
    analyzer.write_text('{"packages": [{"source_artifact": {}}]}')

    result = runner.invoke(
        create_app(),
        ["download", str(analyzer), "-o", str(tmp_path / "out")],
        env=env,
    )

    assert result.exit_code == 1
    assert "Cannot read analyzer result" in result.output


def test_scan_command_writes_report(
    runner: CliRunner,
    env: dict[str, str],
    tmp_path: Path,
    static_server,
    analyzer_result: Path,
) -> None:
    output_dir = tmp_path / "scan"

    result = runner.invoke(
        create_app(transport=static_server.transport),
        ["scan", str(analyzer_result), "-o", str(output_dir), "--scanner", "file-counter"],
        env=env,
        catch_exceptions=False,
    )

    assert result.exit_code == 0, result.output
    assert "npm::lib:1.0: 2 files" in result.stdout

    report = json.loads((output_dir / "scan-report.json").read_text())
    (entry,) = report
    assert entry["package"] == "npm::lib:1.0"
    assert entry["reused"] is False
    assert entry["result"]["summary"]["file_count"] == 2
    assert entry["result"]["scanner"]["name"] == "file-counter"
    assert "raw_result" not in entry["result"]
    assert (
        output_dir
        / "scan-results"
        / "npm"
        / "unknown"
        / "lib"
        / "1.0"
        / "scan-results_file-counter.json"
    ).is_file()


def test_scan_command_unknown_scanner(
    runner: CliRunner, env: dict[str, str], tmp_path: Path, analyzer_result: Path
) -> None:
    result = runner.invoke(
        create_app(),
        ["scan", str(analyzer_result), "-o", str(tmp_path / "scan"), "-s", "scancode"],
        env=env,
    )

    assert result.exit_code == 1
    assert "Scanner error" in result.stdout
