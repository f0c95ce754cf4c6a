"""``sourcekit scan``: download packages and run a scanner on them."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

import typer

from sourcekit.core.logging import get_logger
from sourcekit.errors import SourceKitError
from sourcekit.model import Package
from sourcekit.scanner import ScannerNotRegisteredError, ScanOutcome

from .context import require_state
from .download import Entity, load_analyzer_result, select_packages

__all__ = ["emit_scan_summary", "scan_command", "write_scan_report"]

DOWNLOADS_DIRNAME = "downloads"
RESULTS_DIRNAME = "scan-results"
REPORT_FILENAME = "scan-report.json"


def _report_entry(outcome: ScanOutcome) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "package": str(outcome.package.id),
        "shared_with": [str(package.id) for package in outcome.shared_with],
    }
    if outcome.result is not None:
        entry["result"] = outcome.result.model_dump(
            mode="json",
            exclude={"raw_result"},
        )
        entry["reused"] = outcome.reused
    if outcome.error is not None:
        entry["error"] = str(outcome.error)
    return entry


def write_scan_report(outcomes: Mapping[Package, ScanOutcome], path: Path) -> Path:
    """Write the scan results, without raw scanner output, as JSON."""

    report = [_report_entry(outcome) for outcome in outcomes.values()]
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report, indent=2, sort_keys=True), encoding="utf-8")
    return path


def emit_scan_summary(outcomes: Mapping[Package, ScanOutcome]) -> int:
    """Print one line per package and return the number of failures."""

    failures = 0
    for package, outcome in outcomes.items():
        if not outcome.ok:
            failures += 1
            typer.secho(f"  - {package.id}: failed", fg=typer.colors.RED)
            for line in str(outcome.error).splitlines():
                typer.echo(f"      {line}")
            continue

        summary = outcome.result.summary
        licenses = ", ".join(summary.licenses) or "none"
        note = " (cached)" if outcome.reused else ""
        typer.secho(
            f"  - {package.id}: {summary.file_count} files, "
            f"licenses: {licenses}{note}",
            fg=typer.colors.GREEN,
        )
        for other in outcome.shared_with:
            typer.echo(f"      shared with {other.id}")
    return failures


def scan_command(
    ctx: typer.Context,
    analyzer_result: Path = typer.Argument(
        ...,
        metavar="ANALYZER_RESULT",
        exists=True,
        dir_okay=False,
        help="JSON file listing the projects and packages to scan.",
    ),
    output_dir: Path = typer.Option(
        ...,
        "--output-dir",
        "-o",
        file_okay=False,
        help="Directory receiving downloads, raw results and the report.",
    ),
    scanner_name: str | None = typer.Option(
        None,
        "--scanner",
        "-s",
        help="Registered scanner to run (defaults to configuration).",
    ),
    entity: Entity = typer.Option(
        Entity.PACKAGES,
        "--entity",
        "-e",
        case_sensitive=False,
        help="Scan packages, or consolidated projects.",
    ),
) -> None:
    """Download the sources of each package and scan them."""

    state = require_state(ctx)
    logger = get_logger(__name__, command="scan")
    result = load_analyzer_result(analyzer_result)

    output_dir = output_dir.expanduser().resolve()
    download_dir = output_dir / DOWNLOADS_DIRNAME
    results_dir = output_dir / RESULTS_DIRNAME

    with state.build_context() as context:
        try:
            scanner = context.create_scanner(scanner_name)
        except (ScannerNotRegisteredError, ValueError) as exc:
            typer.secho(f"Scanner error: {exc}", fg=typer.colors.RED)
            raise typer.Exit(code=1) from exc

        service = context.create_scan_service(scanner)
        try:
            if entity is Entity.PROJECTS:
                outcomes = service.scan_projects(
                    result.projects,
                    download_dir,
                    results_dir,
                )
            else:
                outcomes = service.scan_all(
                    select_packages(result, entity),
                    download_dir,
                    results_dir,
                )
        except SourceKitError as exc:
            typer.secho(f"Scan failed: {exc}", fg=typer.colors.RED)
            raise typer.Exit(code=1) from exc

    if not outcomes:
        typer.echo(f"No {entity.value} to scan.")
        return

    report = write_scan_report(outcomes, output_dir / REPORT_FILENAME)
    typer.secho(f"Scanned {entity.value} with {scanner.name}", bold=True)
    failures = emit_scan_summary(outcomes)
    typer.echo(f"Report: {report}")
    logger.info(
        "scan-complete",
        scanner=scanner.name,
        total=len(outcomes),
        failed=failures,
        report=str(report),
    )
    if failures:
        raise typer.Exit(code=1)
