"""Errors raised by version control backends and their registry."""

from __future__ import annotations

from sourcekit.errors import SourceKitError

__all__ = ["CheckoutError", "VcsRegistryError"]


class CheckoutError(SourceKitError):
    """Raised when a backend cannot produce the requested working tree."""


class VcsRegistryError(SourceKitError):
    """Raised for invalid registrations in :class:`VcsRegistry`."""
