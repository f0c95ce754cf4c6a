"""Base error type and helpers shared by every :mod:`sourcekit` package."""

from __future__ import annotations

__all__ = ["SourceKitError", "collect_messages"]


class SourceKitError(RuntimeError):
    """Base error for sourcekit failures."""


def collect_messages(error: BaseException) -> str:
    """Join the messages of ``error`` and its ``__cause__`` chain.

    Example:
        >>> try:
        ...     try:
        ...         raise OSError("disk full")
        ...     except OSError as exc:
        ...         raise SourceKitError("write failed") from exc
        ... except SourceKitError as exc:
        ...     collect_messages(exc)
        'SourceKitError: write failed\\nCaused by: OSError: disk full'
    """

    lines: list[str] = []
    seen: set[int] = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        prefix = "Caused by: " if lines else ""
        message = str(current) or "<no message>"
        lines.append(f"{prefix}{type(current).__name__}: {message}")
        current = current.__cause__
    return "\n".join(lines)
