"""``sourcekit download``: fetch the sources of analyzed packages."""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Mapping

import typer
from pydantic import ValidationError

from sourcekit.core.logging import get_logger
from sourcekit.downloader import AcquisitionError, consolidate_projects
from sourcekit.model import AnalyzerResult, DownloadResult, Package

from .context import require_state

__all__ = [
    "Entity",
    "download_command",
    "emit_download_summary",
    "load_analyzer_result",
    "select_packages",
]


class Entity(StrEnum):
    """Which part of the analyzer result to process."""

    PACKAGES = "packages"
    PROJECTS = "projects"


def load_analyzer_result(path: Path) -> AnalyzerResult:
    try:
        return AnalyzerResult.from_file(path)
    except (OSError, ValidationError) as exc:
        typer.secho(f"Cannot read analyzer result '{path}': {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc


def select_packages(result: AnalyzerResult, entity: Entity) -> list[Package]:
    """Return the packages to process; projects are consolidated first."""

    if entity is Entity.PROJECTS:
        return list(consolidate_projects(result.projects))
    return list(result.packages)


def _describe_download(result: DownloadResult) -> str:
    if result.vcs_info is not None:
        vcs = result.vcs_info
        return f"{vcs.type} {vcs.url} @ {vcs.resolved_revision or vcs.revision}"
    artifact_url = result.source_artifact.url if result.source_artifact else ""
    return f"artifact {artifact_url}"


def emit_download_summary(
    outcomes: Mapping[Package, DownloadResult | AcquisitionError],
) -> int:
    """Print one line per package and return the number of failures."""

    failures = 0
    for package, outcome in outcomes.items():
        if isinstance(outcome, AcquisitionError):
            failures += 1
            typer.secho(f"  - {package.id}: failed", fg=typer.colors.RED)
            for line in str(outcome).splitlines():
                typer.echo(f"      {line}")
        else:
            typer.secho(
                f"  - {package.id}: {_describe_download(outcome)}",
                fg=typer.colors.GREEN,
            )
    return failures


def download_command(
    ctx: typer.Context,
    analyzer_result: Path = typer.Argument(
        ...,
        metavar="ANALYZER_RESULT",
        exists=True,
        dir_okay=False,
        help="JSON file listing the projects and packages to download.",
    ),
    output_dir: Path = typer.Option(
        ...,
        "--output-dir",
        "-o",
        file_okay=False,
        help="Directory receiving one source tree per package.",
    ),
    allow_moving_revisions: bool | None = typer.Option(
        None,
        "--allow-moving-revisions/--no-allow-moving-revisions",
        help="Allow VCS downloads of branches whose commit can change.",
    ),
    entity: Entity = typer.Option(
        Entity.PACKAGES,
        "--entity",
        "-e",
        case_sensitive=False,
        help="Download packages, or consolidated projects.",
    ),
    concurrency: int | None = typer.Option(
        None,
        "--concurrency",
        min=1,
        help="Number of parallel downloads (defaults to configuration).",
    ),
) -> None:
    """Download package sources from VCS, falling back to source artifacts."""

    state = require_state(ctx)
    logger = get_logger(__name__, command="download")
    result = load_analyzer_result(analyzer_result)
    packages = select_packages(result, entity)

    if not packages:
        typer.echo(f"No {entity.value} to download.")
        return

    output_dir = output_dir.expanduser().resolve()
    with state.build_context() as context:
        outcomes = context.downloader.download_all(
            packages,
            output_dir,
            allow_moving_revisions=allow_moving_revisions,
            max_concurrency=concurrency,
        )

    typer.secho(f"Downloaded {entity.value} into {output_dir}", bold=True)
    failures = emit_download_summary(outcomes)
    logger.info(
        "download-complete",
        total=len(outcomes),
        failed=failures,
        output_dir=str(output_dir),
    )
    if failures:
        raise typer.Exit(code=1)
