"""HTTP downloads with a shared on-disk response cache."""

from __future__ import annotations

from .cache import HttpCache
from .client import FetchedFile, HttpClient
from .errors import HttpDownloadError

__all__ = [
    "FetchedFile",
    "HttpCache",
    "HttpClient",
    "HttpDownloadError",
]
