"""Checksum verification and archive extraction."""

from __future__ import annotations

from .checksum import calculate_digest, digest_stream, verify_checksum
from .errors import ArchiveError, IntegrityError, UnpackError
from .unpack import archive_kind, is_nested_archive, unpack, unpack_gem

__all__ = [
    "ArchiveError",
    "IntegrityError",
    "UnpackError",
    "archive_kind",
    "calculate_digest",
    "digest_stream",
    "is_nested_archive",
    "unpack",
    "unpack_gem",
    "verify_checksum",
]
