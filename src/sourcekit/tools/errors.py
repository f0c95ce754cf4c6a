"""Errors raised while resolving and running managed external tools."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from sourcekit.errors import SourceKitError

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .process import ProcessCapture

__all__ = [
    "ProcessCancelledError",
    "ProcessError",
    "ProcessTimeoutError",
    "ToolError",
    "ToolResolutionError",
    "VersionMismatchError",
]


class ToolError(SourceKitError):
    """Base error for managed tool failures."""


class ToolResolutionError(ToolError):
    """Raised when a tool is missing and cannot be bootstrapped."""


class VersionMismatchError(ToolError):
    """Raised when a tool reports a version outside its required range."""


class ProcessError(ToolError):
    """Raised when a child process fails or has to be terminated."""

    def __init__(
        self,
        message: str,
        *,
        command: Sequence[str],
        capture: "ProcessCapture | None" = None,
    ) -> None:
        super().__init__(message)
        self.command = tuple(command)
        self.capture = capture


class ProcessTimeoutError(ProcessError):
    """Raised when a child process exceeds its timeout."""


class ProcessCancelledError(ProcessError):
    """Raised when a child process is stopped by a cancellation signal."""
