"""Errors raised by scanner plugins and their registry."""

from __future__ import annotations

from sourcekit.errors import SourceKitError

__all__ = ["ScanError", "ScannerNotRegisteredError", "ScannerRegistryError"]


class ScanError(SourceKitError):
    """Raised when a scanner fails to produce or read its result."""


class ScannerRegistryError(SourceKitError):
    """Base error type raised when interacting with the scanner registry."""


class ScannerNotRegisteredError(ScannerRegistryError):
    """Raised when a scanner lookup fails for the requested name."""
