"""Application context wiring caches, clients, registries and services."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import httpx
import typer

from sourcekit.core.config import AppConfig
from sourcekit.core.logging import Logger, get_logger
from sourcekit.core.paths import CachePaths, resolve_cache_paths
from sourcekit.downloader import Downloader
from sourcekit.http import HttpCache, HttpClient
from sourcekit.scanner import (
    LocalScanner,
    ScannerRegistry,
    ScanService,
    ToolEnvironment,
    create_default_scanner_registry,
)
from sourcekit.vcs import Git, GitCommand, VcsRegistry, create_default_vcs_registry

__all__ = [
    "CliState",
    "DOWNLOADER_NAMESPACE",
    "SCANNER_NAMESPACE",
    "SourceKitContext",
    "require_state",
]

DOWNLOADER_NAMESPACE = "downloader"
SCANNER_NAMESPACE = "scanner"


@dataclass(slots=True)
class SourceKitContext:
    """Everything a command needs, built once per invocation."""

    config: AppConfig
    paths: CachePaths
    logger: Logger
    downloader_http: HttpClient
    scanner_http: HttpClient
    vcs_registry: VcsRegistry
    downloader: Downloader
    scanner_registry: ScannerRegistry

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        *,
        paths: CachePaths | None = None,
        transport: httpx.BaseTransport | None = None,
        logger: Logger | None = None,
    ) -> "SourceKitContext":
        """Build the context for ``config``.

        ``transport`` replaces the network layer of both HTTP clients,
        mainly for tests.
        """

        resolved = (paths or resolve_cache_paths(configured=config.cache_root)).ensure()
        log = logger or get_logger(__name__, component="context")

        downloader_http = HttpClient.from_settings(
            config.http,
            cache=HttpCache(resolved.root, DOWNLOADER_NAMESPACE),
            transport=transport,
        )
        scanner_http = HttpClient.from_settings(
            config.http,
            cache=HttpCache(resolved.root, SCANNER_NAMESPACE),
            transport=transport,
        )

        git = GitCommand(
            tools_dir=resolved.tools_dir,
            settings=config.tool_settings(GitCommand.name),
        )
        vcs_registry = create_default_vcs_registry((Git(git),))

        downloader = Downloader(
            vcs_registry,
            downloader_http,
            allow_moving_revisions=config.downloader.allow_moving_revisions,
            max_concurrency=config.downloader.max_concurrency,
        )

        log.debug(
            "context-ready",
            cache_root=str(resolved.root),
            vcs=sorted(vcs_registry.snapshot()),
        )
        return cls(
            config=config,
            paths=resolved,
            logger=log,
            downloader_http=downloader_http,
            scanner_http=scanner_http,
            vcs_registry=vcs_registry,
            downloader=downloader,
            scanner_registry=create_default_scanner_registry(),
        )

    def tool_environment(self) -> ToolEnvironment:
        return ToolEnvironment(
            tools_dir=self.paths.tools_dir,
            http_client=self.scanner_http,
            settings=self.config.tools,
        )

    def create_scanner(self, name: str | None = None) -> LocalScanner:
        """Instantiate the scanner ``name`` or the configured default."""

        scanner_name = name or self.config.scanner.name
        return self.scanner_registry.create(
            scanner_name,
            logger=get_logger(__name__, component="scanner", scanner=scanner_name),
            options=self.config.scanner_options(scanner_name),
            tools=self.tool_environment(),
        )

    def create_scan_service(self, scanner: LocalScanner) -> ScanService:
        return ScanService(
            scanner,
            self.downloader,
            reuse_results=self.config.scanner.reuse_results,
            max_concurrency=self.config.scanner.max_concurrency,
        )

    def close(self) -> None:
        self.downloader_http.close()
        self.scanner_http.close()

    def __enter__(self) -> "SourceKitContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


@dataclass(slots=True)
class CliState:
    """Resolved configuration carried from the root callback to commands."""

    config: AppConfig
    paths: CachePaths
    config_file: Path
    transport: httpx.BaseTransport | None = None

    def build_context(self) -> SourceKitContext:
        return SourceKitContext.from_config(
            self.config,
            paths=self.paths,
            transport=self.transport,
        )


def require_state(ctx: typer.Context) -> CliState:
    state = getattr(ctx, "obj", None)
    if not isinstance(state, CliState):
        typer.secho("Internal error: CLI context not initialized.", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    return state
