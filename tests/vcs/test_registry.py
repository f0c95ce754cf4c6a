"""Tests for :mod:`sourcekit.vcs.registry`."""

from __future__ import annotations

from pathlib import Path

import pytest

from sourcekit.model import Package, VcsInfo
from sourcekit.vcs import (
    Git,
    VcsRegistry,
    VcsRegistryError,
    VersionControlSystem,
    WorkingTree,
    create_default_vcs_registry,
)


class _Tree:
    def __init__(self, root: Path, vcs_type: str) -> None:
        self.root = root
        self.vcs_type = vcs_type

    def get_revision(self) -> str:
        return "0" * 40

    def get_remote_url(self) -> str:
        return "https://hg.example.org/repo"


class Mercurial:
    type = "Mercurial"
    aliases = ("hg",)

    def claims_type(self, name: str) -> bool:
        return name.strip().lower() in {"mercurial", "hg"}

    def claims_url(self, url: str) -> bool:
        return url.startswith("https://hg.")

    def download(
        self,
        package: Package,
        target_dir: Path,
        *,
        allow_moving_revisions: bool = False,
    ) -> _Tree:
        return _Tree(target_dir, self.type)


def test_fakes_satisfy_protocols(tmp_path: Path) -> None:
    backend = Mercurial()

    assert isinstance(backend, VersionControlSystem)
    assert isinstance(backend.download(Package(id="x::y:1"), tmp_path), WorkingTree)
    assert isinstance(Git(), VersionControlSystem)


def test_register_and_lookup() -> None:
    registry = VcsRegistry([Git(), Mercurial()])

    assert set(registry.snapshot()) == {"git", "mercurial"}
    assert registry.for_type("HG").type == "Mercurial"
    assert registry.for_type("git").type == "Git"
    assert registry.for_type("Subversion") is None
    assert registry.for_type("  ") is None
    assert registry.for_url("https://hg.example.org/repo").type == "Mercurial"
    assert registry.for_url("https://github.com/org/repo").type == "Git"
    assert registry.for_url("") is None


def test_resolve_prefers_type_then_url() -> None:
    registry = VcsRegistry([Git(), Mercurial()])

    by_type = VcsInfo(type="hg", url="https://github.com/org/repo.git")
    by_url = VcsInfo(url="https://example.org/project.git")
    unknown = VcsInfo(type="Subversion", url="https://example.org/svn/trunk")

    assert registry.resolve(by_type).type == "Mercurial"
    assert registry.resolve(by_url).type == "Git"
    assert registry.resolve(unknown) is None


def test_duplicate_registration_rejected() -> None:
    registry = VcsRegistry([Git()])

    with pytest.raises(VcsRegistryError):
        registry.register(Git())

    registry.unregister("GIT")
    registry.register(Git())
    assert list(registry.snapshot()) == ["git"]


def test_snapshot_is_read_only() -> None:
    snapshot = create_default_vcs_registry().snapshot()

    with pytest.raises(TypeError):
        snapshot["svn"] = Mercurial()  # type: ignore[index]
    assert list(snapshot) == ["git"]
