"""Fixtures for downloader tests: scripted VCS backends and packages."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from sourcekit.downloader import Downloader
from sourcekit.http import HttpClient
from sourcekit.model import Package
from sourcekit.vcs import CheckoutError, VcsRegistry

RESOLVED_REVISION = "c0ffee" * 6 + "beef"


@dataclass
class FakeTree:
    root: Path
    vcs_type: str
    revision: str = RESOLVED_REVISION

    def get_revision(self) -> str:
        return self.revision

    def get_remote_url(self) -> str:
        return "fake://remote"


@dataclass
class FakeVcs:
    """Backend for ``fake://`` URLs that writes a marker file or fails."""

    fail_with: str | None = None
    type: str = "Fake"
    aliases: tuple[str, ...] = ()
    calls: list[dict[str, object]] = field(default_factory=list)

    def claims_type(self, name: str) -> bool:
        return name.strip().lower() == "fake"

    def claims_url(self, url: str) -> bool:
        return url.startswith("fake://")

    def download(
        self,
        package: Package,
        target_dir: Path,
        *,
        allow_moving_revisions: bool = False,
    ) -> FakeTree:
        self.calls.append(
            {
                "package": package,
                "target_dir": target_dir,
                "allow_moving_revisions": allow_moving_revisions,
            }
        )
        target_dir.mkdir(parents=True, exist_ok=True)
        (target_dir / "from-vcs.txt").write_text(package.vcs_processed.url)
        if self.fail_with is not None:
            raise CheckoutError(self.fail_with)
        return FakeTree(root=target_dir, vcs_type=self.type)


@pytest.fixture
def fake_vcs() -> FakeVcs:
    return FakeVcs()


@pytest.fixture
def downloader(fake_vcs: FakeVcs, http_client: HttpClient) -> Downloader:
    return Downloader(VcsRegistry([fake_vcs]), http_client, max_concurrency=2)


@pytest.fixture
def resolved_revision() -> str:
    return RESOLVED_REVISION
