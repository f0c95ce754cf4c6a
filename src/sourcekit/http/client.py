"""Streaming HTTP downloads routed through the shared response cache."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Mapping

import httpx

from sourcekit.core.config import HttpSettings
from sourcekit.core.logging import Logger, get_logger

from .cache import HttpCache
from .errors import HttpDownloadError

__all__ = ["FetchedFile", "HttpClient"]

# Ask for the bytes as stored; transparent decompression would turn a
# ``.tar.gz`` into a plain tar that no longer matches its checksum.
_IDENTITY_HEADERS = {"Accept-Encoding": "identity"}


def _raw_chunks(response: httpx.Response) -> Iterator[bytes]:
    # Responses replayed from memory arrive already read.
    if response.is_stream_consumed:
        yield response.content
    else:
        yield from response.iter_raw()


@dataclass(frozen=True, slots=True)
class FetchedFile:
    """A response body written to ``path``."""

    path: Path
    url: str
    status_code: int
    size: int
    from_cache: bool = False


class HttpClient:
    """Thin wrapper around :class:`httpx.Client` for file downloads."""

    def __init__(
        self,
        *,
        cache: HttpCache | None = None,
        timeout: float = 60.0,
        proxy: str | None = None,
        user_agent: str = "sourcekit",
        transport: httpx.BaseTransport | None = None,
        logger: Logger | None = None,
    ) -> None:
        base_transport = transport or httpx.HTTPTransport(proxy=proxy or None)
        self.cache = cache
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": user_agent},
            follow_redirects=True,
            transport=cache.wrap(base_transport) if cache is not None else base_transport,
        )
        self._logger = logger or get_logger(__name__, component="http")

    @classmethod
    def from_settings(
        cls,
        settings: HttpSettings,
        *,
        cache: HttpCache | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> "HttpClient":
        return cls(
            cache=cache,
            timeout=settings.timeout,
            proxy=settings.proxy,
            user_agent=settings.user_agent,
            transport=transport,
        )

    def download(
        self,
        url: str,
        destination: Path,
        *,
        headers: Mapping[str, str] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> FetchedFile:
        """Download ``url`` to ``destination`` without content decoding.

        Raises:
            HttpDownloadError: On transport errors, non-2xx responses, empty
                bodies or cancellation. Partial files are removed.
        """

        request_headers = {**_IDENTITY_HEADERS, **dict(headers or {})}
        destination.parent.mkdir(parents=True, exist_ok=True)
        self._logger.debug("http-download-start", url=url)

        try:
            with self._client.stream("GET", url, headers=request_headers) as response:
                if not response.is_success:
                    raise HttpDownloadError(
                        f"GET {url} returned HTTP {response.status_code}.",
                        url=url,
                        status_code=response.status_code,
                    )
                size = 0
                with destination.open("wb") as stream:
                    for chunk in _raw_chunks(response):
                        if cancel_event is not None and cancel_event.is_set():
                            raise HttpDownloadError(
                                f"Download of {url} was cancelled.",
                                url=url,
                            )
                        stream.write(chunk)
                        size += len(chunk)
                status_code = response.status_code
                from_cache = bool(response.extensions.get("from_cache", False))
        except HttpDownloadError:
            destination.unlink(missing_ok=True)
            raise
        except (httpx.HTTPError, httpx.StreamError) as exc:
            destination.unlink(missing_ok=True)
            raise HttpDownloadError(
                f"GET {url} failed: {exc}",
                url=url,
            ) from exc

        if size == 0:
            destination.unlink(missing_ok=True)
            raise HttpDownloadError(
                f"GET {url} returned an empty body.",
                url=url,
                status_code=status_code,
            )

        self._logger.info(
            "http-cache-hit" if from_cache else "http-download-complete",
            url=url,
            size=size,
        )
        return FetchedFile(
            path=destination,
            url=url,
            status_code=status_code,
            size=size,
            from_cache=from_cache,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
