"""Errors raised while verifying and unpacking source archives."""

from __future__ import annotations

from sourcekit.errors import SourceKitError

__all__ = ["ArchiveError", "IntegrityError", "UnpackError"]


class ArchiveError(SourceKitError):
    """Base error for archive handling failures."""


class IntegrityError(ArchiveError):
    """Raised when a file's digest differs from the expected checksum."""

    def __init__(
        self,
        message: str,
        *,
        algorithm: str | None = None,
        expected: str | None = None,
        actual: str | None = None,
    ) -> None:
        super().__init__(message)
        self.algorithm = algorithm
        self.expected = expected
        self.actual = actual


class UnpackError(ArchiveError):
    """Raised for corrupt, unsafe or unsupported archives."""
