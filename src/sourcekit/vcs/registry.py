"""Explicit registry of version control backends."""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping

from sourcekit.model import VcsInfo

from .base import VersionControlSystem
from .errors import VcsRegistryError

__all__ = ["VcsRegistry", "create_default_vcs_registry"]


class VcsRegistry:
    """Ordered collection of backends resolved by type, then by URL."""

    def __init__(
        self,
        backends: Iterable[VersionControlSystem] | None = None,
    ) -> None:
        self._backends: dict[str, VersionControlSystem] = {}
        for backend in backends or ():
            self.register(backend)

    @staticmethod
    def _normalize_key(key: str) -> str:
        normalized = key.strip().lower()
        if not normalized:
            raise ValueError("VCS type cannot be empty")
        return normalized

    def register(self, backend: VersionControlSystem) -> None:
        """Register ``backend``; errors if its type is already present."""

        normalized = self._normalize_key(backend.type)
        if normalized in self._backends:
            raise VcsRegistryError(
                f"VCS backend {backend.type!r} already registered",
            )
        self._backends[normalized] = backend

    def unregister(self, vcs_type: str) -> None:
        self._backends.pop(self._normalize_key(vcs_type), None)

    def for_type(self, name: str) -> VersionControlSystem | None:
        """Return the first backend claiming the type ``name``."""

        if not name.strip():
            return None
        for backend in self._backends.values():
            if backend.claims_type(name):
                return backend
        return None

    def for_url(self, url: str) -> VersionControlSystem | None:
        """Return the first backend recognizing ``url``."""

        if not url.strip():
            return None
        for backend in self._backends.values():
            if backend.claims_url(url):
                return backend
        return None

    def resolve(self, vcs: VcsInfo) -> VersionControlSystem | None:
        """Resolve a backend by ``vcs.type`` and fall back to ``vcs.url``."""

        return self.for_type(vcs.type) or self.for_url(vcs.url)

    def snapshot(self) -> Mapping[str, VersionControlSystem]:
        """Return an immutable view of the registered backends."""

        return MappingProxyType(dict(self._backends))


def create_default_vcs_registry(
    backends: Iterable[VersionControlSystem] | None = None,
) -> VcsRegistry:
    """Return a registry holding the built-in backends.

    ``backends`` replaces the built-ins, mainly to inject configured
    instances.
    """

    if backends is None:
        from .git import Git

        backends = (Git(),)
    return VcsRegistry(backends)
