"""Version control backends and their registry."""

from __future__ import annotations

from .base import GIT_REPO_TYPE, VersionControlSystem, WorkingTree
from .errors import CheckoutError, VcsRegistryError
from .git import Git, GitCommand, GitWorkingTree
from .registry import VcsRegistry, create_default_vcs_registry

__all__ = [
    "CheckoutError",
    "GIT_REPO_TYPE",
    "Git",
    "GitCommand",
    "GitWorkingTree",
    "VcsRegistry",
    "VcsRegistryError",
    "VersionControlSystem",
    "WorkingTree",
    "create_default_vcs_registry",
]
