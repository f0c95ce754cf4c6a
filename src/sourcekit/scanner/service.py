"""Download packages and scan the resulting source trees."""

from __future__ import annotations

import concurrent.futures
import dataclasses
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from sourcekit.core.logging import Logger, get_logger
from sourcekit.downloader import AcquisitionError, Downloader, consolidate_projects
from sourcekit.errors import SourceKitError
from sourcekit.model import DownloadResult, Package, Project, ScanResult

from .base import LocalScanner

__all__ = ["ScanOutcome", "ScanService"]


@dataclass(frozen=True, slots=True)
class ScanOutcome:
    """Result of downloading and scanning one package."""

    package: Package
    download: DownloadResult | None = None
    result: ScanResult | None = None
    error: BaseException | None = None
    reused: bool = False
    shared_with: tuple[Package, ...] = ()

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None


class ScanService:
    """Coordinate the downloader and one scanner over many packages."""

    def __init__(
        self,
        scanner: LocalScanner,
        downloader: Downloader,
        *,
        reuse_results: bool = True,
        max_concurrency: int = 2,
        logger: Logger | None = None,
    ) -> None:
        self.scanner = scanner
        self.downloader = downloader
        self.reuse_results = reuse_results
        self.max_concurrency = max(1, max_concurrency)
        self._logger = logger or get_logger(
            __name__,
            component="scan-service",
            scanner=scanner.name,
        )

    def results_file(self, package: Package, results_dir: Path) -> Path:
        return (
            results_dir
            / package.id.to_path()
            / self.scanner.results_file_name()
        )

    def scan_package(
        self,
        package: Package,
        download_dir: Path,
        results_dir: Path,
        *,
        cancel_event: threading.Event | None = None,
    ) -> ScanOutcome:
        """Download ``package`` and scan it; failures end up in the outcome."""

        try:
            download = self.downloader.download(
                package,
                download_dir,
                cancel_event=cancel_event,
            )
        except AcquisitionError as exc:
            self._logger.error(
                "scan-download-failed",
                package=str(package.id),
                error=str(exc),
            )
            return ScanOutcome(package=package, error=exc)

        provenance = download.provenance()
        results_file = self.results_file(package, results_dir)

        if (
            self.reuse_results
            and results_file.is_file()
            and results_file.stat().st_size > 0
        ):
            try:
                result = self.scanner.summary_from_file(results_file, provenance)
            except SourceKitError as exc:
                self._logger.warning(
                    "scan-result-unreadable",
                    package=str(package.id),
                    path=str(results_file),
                    error=str(exc),
                )
            else:
                self._logger.info(
                    "scan-result-reused",
                    package=str(package.id),
                    path=str(results_file),
                )
                return ScanOutcome(
                    package=package,
                    download=download,
                    result=result,
                    reused=True,
                )

        try:
            result = self.scanner.scan_path(
                download.download_directory,
                provenance,
                results_file,
                cancel_event=cancel_event,
            )
        except SourceKitError as exc:
            self._logger.error(
                "scan-failed",
                package=str(package.id),
                error=str(exc),
            )
            return ScanOutcome(package=package, download=download, error=exc)

        return ScanOutcome(package=package, download=download, result=result)

    def scan_all(
        self,
        packages: Iterable[Package],
        download_dir: Path,
        results_dir: Path,
        *,
        cancel_event: threading.Event | None = None,
    ) -> dict[Package, ScanOutcome]:
        """Scan ``packages`` with a bounded worker pool."""

        ordered = sorted(set(packages))
        outcomes: dict[Package, ScanOutcome] = {}

        with concurrent.futures.ThreadPoolExecutor(
            max_workers=self.max_concurrency,
            thread_name_prefix="scanner",
        ) as executor:
            future_map: dict[concurrent.futures.Future[ScanOutcome], Package] = {
                executor.submit(
                    self.scan_package,
                    package,
                    download_dir,
                    results_dir,
                    cancel_event=cancel_event,
                ): package
                for package in ordered
            }
            for future in concurrent.futures.as_completed(future_map):
                package = future_map[future]
                try:
                    outcome = future.result()
                except Exception as exc:  # pragma: no cover - executor path
                    self._logger.exception(
                        "scan-thread-error",
                        package=str(package.id),
                        error=str(exc),
                    )
                    outcome = ScanOutcome(package=package, error=exc)
                outcomes[package] = outcome

        return {package: outcomes[package] for package in ordered}

    def scan_projects(
        self,
        projects: Iterable[Project],
        download_dir: Path,
        results_dir: Path,
        *,
        cancel_event: threading.Event | None = None,
    ) -> dict[Package, ScanOutcome]:
        """Scan each distinct working tree of ``projects`` once."""

        groups = consolidate_projects(projects)
        self._logger.info(
            "scan-projects-consolidated",
            projects=sum(1 + len(others) for others in groups.values()),
            working_trees=len(groups),
        )
        outcomes = self.scan_all(
            groups,
            download_dir,
            results_dir,
            cancel_event=cancel_event,
        )
        return {
            reference: dataclasses.replace(
                outcome,
                shared_with=tuple(groups[reference]),
            )
            for reference, outcome in outcomes.items()
        }
