"""Errors raised by the HTTP download layer."""

from __future__ import annotations

from sourcekit.errors import SourceKitError

__all__ = ["HttpDownloadError"]


class HttpDownloadError(SourceKitError):
    """Raised when a download fails at the transport or HTTP level."""

    def __init__(
        self,
        message: str,
        *,
        url: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code
