"""Contracts shared by version control backends."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from sourcekit.model import Package

__all__ = [
    "GIT_REPO_TYPE",
    "VersionControlSystem",
    "WorkingTree",
]

# Type whose ``path`` names a manifest file inside the fetched tree rather
# than a sub-directory to check out.
GIT_REPO_TYPE = "GitRepo"


@runtime_checkable
class WorkingTree(Protocol):
    """A checked-out directory and the backend type that produced it."""

    root: Path
    vcs_type: str

    def get_revision(self) -> str:
        """Return the commit identifier currently checked out."""

    def get_remote_url(self) -> str:
        """Return the URL the tree was fetched from."""


@runtime_checkable
class VersionControlSystem(Protocol):
    """Boundary contract for version control backends.

    Backends report failures only as
    :class:`~sourcekit.vcs.errors.CheckoutError`.
    """

    type: str
    aliases: tuple[str, ...]

    def claims_type(self, name: str) -> bool:
        """Return ``True`` when ``name`` denotes this backend."""

    def claims_url(self, url: str) -> bool:
        """Return ``True`` when ``url`` looks like a repository of this type."""

    def download(
        self,
        package: Package,
        target_dir: Path,
        *,
        allow_moving_revisions: bool = False,
    ) -> WorkingTree:
        """Check out ``package.vcs_processed`` into ``target_dir``."""
