"""Checksum verification for downloaded source artifacts."""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Iterable, Iterator

from sourcekit.core.logging import get_logger
from sourcekit.model import HashAlgorithm

from .errors import IntegrityError

__all__ = [
    "calculate_digest",
    "digest_stream",
    "verify_checksum",
]

_CHUNK_SIZE = 1024 * 128

_logger = get_logger(__name__, component="checksum")


def _normalize_chunks(chunks: Iterable[bytes]) -> Iterator[bytes]:
    for chunk in chunks:
        if not isinstance(chunk, (bytes, bytearray)):
            raise TypeError("digest chunks must be bytes")
        if chunk:
            yield bytes(chunk)


def _new_digest(algorithm: HashAlgorithm) -> "hashlib._Hash":
    name = algorithm.hashlib_name
    try:
        return hashlib.new(name)  # type: ignore[arg-type]
    except ValueError as exc:
        # MD2 is absent from most OpenSSL builds.
        raise IntegrityError(
            f"Hash algorithm {algorithm.value} is not supported by this "
            "interpreter.",
            algorithm=algorithm.value,
        ) from exc


def digest_stream(chunks: Iterable[bytes], algorithm: HashAlgorithm) -> str:
    """Return the lowercase hex digest of ``chunks`` under ``algorithm``.

    Example:
        >>> digest_stream([b"abc"], HashAlgorithm.MD5)
        '900150983cd24fb0d6963f7d28e17f72'
        >>> digest_stream([b"abc"], HashAlgorithm.UNKNOWN)
        ''
    """

    if algorithm is HashAlgorithm.UNKNOWN:
        return ""
    digest = _new_digest(algorithm)
    for chunk in _normalize_chunks(chunks):
        digest.update(chunk)
    return digest.hexdigest()


def calculate_digest(
    path: Path,
    algorithm: HashAlgorithm,
    *,
    chunk_size: int = _CHUNK_SIZE,
) -> str:
    """Hash a file's contents using streaming IO."""

    with path.open("rb") as stream:
        chunks = iter(lambda: stream.read(chunk_size), b"")
        return digest_stream(chunks, algorithm)


def verify_checksum(
    path: Path,
    expected: str,
    algorithm: HashAlgorithm,
) -> str:
    """Verify ``path`` against ``expected`` and return the computed digest.

    An ``UNKNOWN`` algorithm yields an empty digest, so only a blank
    expected hash is accepted for it.

    Raises:
        IntegrityError: If the digests differ or the algorithm is unusable.
    """

    if algorithm is HashAlgorithm.UNKNOWN:
        _logger.warning("checksum-unknown-algorithm", file=str(path))

    actual = calculate_digest(path, algorithm)
    expected_normalized = expected.strip().lower()
    if actual != expected_normalized:
        raise IntegrityError(
            f"Calculated {algorithm.value} hash '{actual}' differs from "
            f"expected hash '{expected_normalized}'.",
            algorithm=algorithm.value,
            expected=expected_normalized,
            actual=actual,
        )
    return actual
