"""Command-line interface for :mod:`sourcekit`.

This module exposes the Typer application behind the ``sourcekit`` console
script. The root callback resolves configuration and logging once; the
commands build a :class:`SourceKitContext` from it.

Example:
    >>> import typer
    >>> from sourcekit.cli import create_app
    >>> app = create_app()
    >>> isinstance(app, typer.Typer)
    True
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path

import httpx
import typer
from pydantic import ValidationError

from sourcekit.core.config import (
    ENV_CACHE_ROOT,
    ENV_LOG_LEVEL,
    env_overrides,
    load_config,
    load_packaged_defaults,
    load_user_config,
    render_user_config,
)
from sourcekit.core.logging import configure_logging
from sourcekit.core.paths import resolve_cache_paths

from .context import CliState, SourceKitContext, require_state
from .download import download_command
from .scan import scan_command

_app_help = (
    "Acquire package sources from VCS or source archives and scan them."
    "\n\n"
    "Configuration is read from `sourcekit.toml` below the cache root; "
    f"{ENV_CACHE_ROOT} and {ENV_LOG_LEVEL} override it."
)


def _resolve_state(
    *,
    config_file: Path | None,
    cache_root: Path | None,
    log_level: str | None,
    transport: httpx.BaseTransport | None,
) -> CliState:
    env_layer = env_overrides(os.environ)
    env_cache_root = env_layer.get("cache_root")

    try:
        default_paths = resolve_cache_paths(
            cache_override=cache_root,
            env_override=Path(env_cache_root).expanduser() if env_cache_root else None,
        )
    except ValueError as exc:
        typer.secho(f"Cache root error: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc

    user_config_path = config_file or default_paths.config_file
    try:
        user_layer = load_user_config(user_config_path)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        typer.secho(
            f"Failed to read config '{user_config_path}': {exc}",
            fg=typer.colors.RED,
        )
        raise typer.Exit(code=1) from exc

    cli_layer: dict[str, object] = {}
    if cache_root is not None:
        cli_layer["cache_root"] = str(cache_root)
    if log_level:
        cli_layer["log_level"] = log_level

    try:
        config = load_config(
            defaults=load_packaged_defaults(),
            user_config=user_layer,
            env_config=env_layer,
            cli_overrides=cli_layer,
        )
        paths = resolve_cache_paths(configured=config.cache_root)
    except (ValidationError, TypeError, ValueError) as exc:
        typer.secho(f"Invalid configuration: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc

    return CliState(
        config=config,
        paths=paths,
        config_file=user_config_path,
        transport=transport,
    )


def create_app(*, transport: httpx.BaseTransport | None = None) -> "typer.Typer":
    """Return the Typer application powering the ``sourcekit`` CLI.

    Args:
        transport: Optional HTTP transport used by every download, mainly
            for tests.

    Returns:
        A configured Typer application ready to be invoked by ``sourcekit``.
    """

    app = typer.Typer(
        help=_app_help,
        no_args_is_help=True,
        rich_markup_mode="rich",
        invoke_without_command=False,
        cls=typer.core.TyperGroup,
    )

    @app.callback()
    def main_callback(
        ctx: typer.Context,
        config_file: Path | None = typer.Option(
            None,
            "--config",
            "-c",
            dir_okay=False,
            help="Read settings from this TOML file instead of the cache root.",
        ),
        cache_root: Path | None = typer.Option(
            None,
            "--cache-root",
            file_okay=False,
            help=f"Override the cache root (defaults to ~/.sourcekit or {ENV_CACHE_ROOT}).",
        ),
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            "-l",
            help="Override the logging level (DEBUG/INFO/WARNING/ERROR).",
        ),
    ) -> None:
        state = _resolve_state(
            config_file=config_file,
            cache_root=cache_root,
            log_level=log_level,
            transport=transport,
        )
        try:
            configure_logging(
                level=state.config.log_level,
                log_dir=state.paths.logs_dir,
            )
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--log-level") from exc
        ctx.obj = state

    app.command(
        "download",
        help="Download package sources from VCS or source artifacts.",
    )(download_command)
    app.command(
        "scan",
        help="Download packages and scan their sources.",
    )(scan_command)

    @app.command("config", help="Print the effective configuration as TOML.")
    def config_command(
        ctx: typer.Context,
        comments: bool = typer.Option(
            True,
            "--comments/--no-comments",
            help="Include explanatory comments in the output.",
        ),
    ) -> None:
        state = require_state(ctx)
        typer.echo(
            render_user_config(state.config, include_comments=comments),
            nl=False,
        )

    return app


__all__ = ["CliState", "SourceKitContext", "create_app"]
