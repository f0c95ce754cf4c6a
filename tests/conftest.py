"""Shared pytest fixtures for sourcekit tests."""

from __future__ import annotations

import contextlib
import hashlib
import io
import logging
import tarfile
import zipfile
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Mapping

import httpx
import pytest
import structlog

from sourcekit.core.paths import CachePaths, resolve_cache_paths
from sourcekit.http import HttpCache, HttpClient


def _clear_root_handlers() -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        with contextlib.suppress(OSError, ValueError):
            handler.close()


@pytest.fixture(autouse=True)
def reset_logging_state() -> Iterator[None]:
    """Run every test against default structlog and bare root logging."""

    _clear_root_handlers()
    structlog.reset_defaults()
    yield
    _clear_root_handlers()
    structlog.reset_defaults()


@pytest.fixture
def cache_paths(tmp_path: Path) -> CachePaths:
    """Provide a cache root below ``tmp_path`` with its directories created."""

    return resolve_cache_paths(cache_override=tmp_path / "cache").ensure()


def _tar_bytes(files: Mapping[str, bytes], mode: str = "w:gz") -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode=mode) as archive:
        for name, payload in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(payload)
            info.mode = 0o644
            archive.addfile(info, io.BytesIO(payload))
    return buffer.getvalue()


def _zip_bytes(files: Mapping[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, payload in files.items():
            archive.writestr(name, payload)
    return buffer.getvalue()


@pytest.fixture
def tar_gz_bytes() -> Callable[[Mapping[str, bytes]], bytes]:
    """Build an in-memory ``.tar.gz`` from a name to payload mapping."""

    return _tar_bytes


@pytest.fixture
def zip_bytes() -> Callable[[Mapping[str, bytes]], bytes]:
    """Build an in-memory ``.zip`` from a name to payload mapping."""

    return _zip_bytes


@pytest.fixture
def gem_bytes() -> Callable[[Mapping[str, bytes]], bytes]:
    """Build a Ruby gem: a plain tar wrapping ``data.tar.gz``."""

    def _build(files: Mapping[str, bytes]) -> bytes:
        return _tar_bytes(
            {
                "metadata.gz": b"",
                "data.tar.gz": _tar_bytes(files),
            },
            mode="w",
        )

    return _build


@pytest.fixture
def sha256_hex() -> Callable[[bytes], str]:
    return lambda payload: hashlib.sha256(payload).hexdigest()


class ChunkedBody(httpx.SyncByteStream):
    """An unread response body delivered in small chunks, like a socket."""

    def __init__(self, payload: bytes, chunk_size: int = 4) -> None:
        self._payload = payload
        self._chunk_size = chunk_size

    def __iter__(self) -> Iterator[bytes]:
        for start in range(0, len(self._payload), self._chunk_size):
            yield self._payload[start : start + self._chunk_size]


class StaticServer:
    """Serve fixed responses through :class:`httpx.MockTransport`."""

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, bytes]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, url: str, content: bytes, status_code: int = 200) -> str:
        self.routes[url] = (status_code, content)
        return url

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status_code, content = self.routes.get(str(request.url), (404, b"not found"))
        return httpx.Response(status_code, stream=ChunkedBody(content))

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def hits(self, url: str) -> int:
        return sum(1 for request in self.requests if str(request.url) == url)


@pytest.fixture
def static_server() -> StaticServer:
    return StaticServer()


@pytest.fixture
def http_client(
    cache_paths: CachePaths,
    static_server: StaticServer,
) -> Iterator[HttpClient]:
    """An :class:`HttpClient` with an on-disk cache and no network access."""

    client = HttpClient(
        cache=HttpCache(cache_paths.root, "test"),
        transport=static_server.transport,
    )
    try:
        yield client
    finally:
        client.close()
