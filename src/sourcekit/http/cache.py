"""Shared on-disk HTTP response cache backed by :mod:`hishel`."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Any

import hishel
import httpx

from sourcekit.core.logging import Logger, get_logger

__all__ = ["CACHEABLE_STATUS_CODES", "HttpCache", "TolerantFileStorage"]

CACHEABLE_STATUS_CODES = (200,)


class TolerantFileStorage(hishel.FileStorage):
    """File storage whose I/O failures are logged and treated as misses."""

    def __init__(self, *, logger: Logger, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._logger = logger

    def retrieve(self, *args: Any, **kwargs: Any) -> Any:
        try:
            return super().retrieve(*args, **kwargs)
        except (OSError, ValueError, KeyError) as exc:
            self._logger.warning("http-cache-read-failed", error=str(exc))
            return None

    def store(self, *args: Any, **kwargs: Any) -> None:
        try:
            super().store(*args, **kwargs)
        except OSError as exc:
            self._logger.warning("http-cache-store-failed", error=str(exc))

    def update_metadata(self, *args: Any, **kwargs: Any) -> None:
        try:
            super().update_metadata(*args, **kwargs)
        except OSError as exc:
            self._logger.warning("http-cache-store-failed", error=str(exc))


class HttpCache:
    """Handle on one namespace of the response cache.

    Responses live below ``<root>/<namespace>/cache/http``; hishel keys them
    by request method and URL. The handle is created once per application
    context and injected into every :class:`~sourcekit.http.HttpClient` that
    shares it. Cached entries are served without revalidation since source
    archives are immutable per URL.
    """

    def __init__(
        self,
        root: Path,
        namespace: str,
        *,
        max_age: float | None = None,
        logger: Logger | None = None,
    ) -> None:
        self.namespace = namespace
        self.directory = root / namespace / "cache" / "http"
        self.max_age = max_age
        self._logger = logger or get_logger(
            __name__, component="http-cache", namespace=namespace
        )
        self.storage = self._open_storage()

    def _open_storage(self) -> TolerantFileStorage | None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            return TolerantFileStorage(
                base_path=self.directory,
                ttl=self.max_age,
                logger=self._logger,
            )
        except OSError as exc:
            self._logger.warning(
                "http-cache-unavailable",
                directory=str(self.directory),
                error=str(exc),
            )
            return None

    @property
    def available(self) -> bool:
        return self.storage is not None

    def controller(self) -> hishel.Controller:
        return hishel.Controller(
            cacheable_methods=["GET"],
            cacheable_status_codes=list(CACHEABLE_STATUS_CODES),
            force_cache=True,
        )

    def wrap(self, transport: httpx.BaseTransport) -> httpx.BaseTransport:
        """Route ``transport`` through the cache; unchanged when unavailable."""

        if self.storage is None:
            return transport
        return hishel.CacheTransport(
            transport=transport,
            storage=self.storage,
            controller=self.controller(),
        )

    def clear(self) -> None:
        """Remove every cached response, keeping the directory itself."""

        if not self.directory.is_dir():
            return
        for entry in self.directory.iterdir():
            if entry.name == ".gitignore":
                continue
            if entry.is_dir():
                shutil.rmtree(entry, ignore_errors=True)
            else:
                entry.unlink(missing_ok=True)
