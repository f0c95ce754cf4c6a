"""Tests for :mod:`sourcekit.core.paths`."""

from __future__ import annotations

from pathlib import Path

import pytest

from sourcekit.core.paths import CachePaths, resolve_cache_paths


def test_resolve_cache_paths_defaults_to_home_dot_sourcekit(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Resolver defaults to ``$HOME/.sourcekit`` when overrides are absent."""

    fake_home = Path("/tmp/sourcekit-home")
    monkeypatch.setenv("HOME", fake_home.as_posix())
    monkeypatch.setenv("USERPROFILE", fake_home.as_posix())

    paths = resolve_cache_paths()

    expected = (fake_home / ".sourcekit").resolve(strict=False)
    assert paths.root == expected
    assert paths.config_file == expected / "sourcekit.toml"
    assert paths.logs_dir == expected / "logs"
    assert paths.tools_dir == expected / "tools"


def test_resolve_cache_paths_precedence(tmp_path: Path) -> None:
    """CLI beats environment, which beats the configured root."""

    cli = tmp_path / "cli"
    env = tmp_path / "env"
    configured = tmp_path / "configured"

    assert resolve_cache_paths(
        cache_override=cli, env_override=env, configured=configured
    ).root == cli.resolve(strict=False)
    assert resolve_cache_paths(
        env_override=env, configured=configured
    ).root == env.resolve(strict=False)
    assert resolve_cache_paths(configured=configured).root == configured.resolve(
        strict=False
    )


def test_resolve_cache_paths_supports_relative_paths(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.chdir(tmp_path)
    paths = resolve_cache_paths(cache_override=Path("caches/relative"))

    assert paths.root == (tmp_path / "caches/relative").resolve(strict=False)


def test_resolve_cache_paths_rejects_file_path(tmp_path: Path) -> None:
    file_path = tmp_path / "cache-as-file"
    file_path.write_text("not a directory")

    with pytest.raises(ValueError):
        resolve_cache_paths(cache_override=file_path)


def test_cache_paths_ensure_creates_directories(tmp_path: Path) -> None:
    paths = resolve_cache_paths(cache_override=tmp_path / "cache")

    assert paths.ensure() is paths
    assert paths.root.is_dir()
    assert paths.logs_dir.is_dir()
    assert paths.tools_dir.is_dir()
    assert not paths.config_file.exists()


def test_cache_paths_helpers() -> None:
    paths = CachePaths(
        root=Path("/tmp/cache"),
        config_file=Path("/tmp/cache/sourcekit.toml"),
        logs_dir=Path("/tmp/cache/logs"),
        tools_dir=Path("/tmp/cache/tools"),
    )

    names = {path.name for path in paths.iter_all()}
    assert names == {"cache", "sourcekit.toml", "logs", "tools"}
    assert paths.tool_dir("licensechecker") == Path("/tmp/cache/tools/licensechecker")
