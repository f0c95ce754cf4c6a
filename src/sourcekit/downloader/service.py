"""Acquire package sources from VCS with a source artifact fallback."""

from __future__ import annotations

import concurrent.futures
import shutil
import tempfile
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from sourcekit.archive import verify_checksum
from sourcekit.archive import unpack as unpack_archive
from sourcekit.core.logging import Logger, get_logger
from sourcekit.errors import SourceKitError
from sourcekit.http import HttpClient
from sourcekit.model import DownloadResult, Package, VcsInfo
from sourcekit.vcs import CheckoutError, VcsRegistry

from .errors import AcquisitionError

__all__ = ["DownloadCancelledError", "Downloader"]


class DownloadCancelledError(SourceKitError):
    """Raised for packages skipped because the run was cancelled."""


@dataclass(frozen=True, slots=True)
class _Attempt:
    """Outcome of one acquisition mechanism."""

    result: DownloadResult | None = None
    error: BaseException | None = None


class Downloader:
    """Download package sources into per-package directories.

    VCS checkouts are preferred; on failure the target directory is reset
    and the source artifact is downloaded, verified and unpacked instead.
    """

    def __init__(
        self,
        vcs_registry: VcsRegistry,
        http_client: HttpClient,
        *,
        allow_moving_revisions: bool = False,
        max_concurrency: int = 4,
        logger: Logger | None = None,
    ) -> None:
        self.vcs_registry = vcs_registry
        self.http_client = http_client
        self.allow_moving_revisions = allow_moving_revisions
        self.max_concurrency = max(1, max_concurrency)
        self._logger = logger or get_logger(__name__, component="downloader")

    def target_directory(self, package: Package, output_dir: Path) -> Path:
        return output_dir / package.id.to_path()

    def download(
        self,
        package: Package,
        output_dir: Path,
        *,
        allow_moving_revisions: bool | None = None,
        cancel_event: threading.Event | None = None,
    ) -> DownloadResult:
        """Download the sources of ``package`` below ``output_dir``.

        Raises:
            AcquisitionError: If neither mechanism produced the sources.
        """

        if allow_moving_revisions is None:
            allow_moving_revisions = self.allow_moving_revisions

        target_dir = self.target_directory(package, output_dir)
        target_dir.mkdir(parents=True, exist_ok=True)

        vcs_error: BaseException | None = None
        if package.vcs_processed.url.strip():
            attempt = self._download_from_vcs(
                package,
                target_dir,
                allow_moving_revisions=allow_moving_revisions,
            )
            if attempt.result is not None:
                return attempt.result
            vcs_error = attempt.error
            self._logger.info(
                "download-vcs-failed",
                package=str(package.id),
                error=str(vcs_error),
            )
            self._reset_directory(target_dir)
        else:
            self._logger.debug("download-vcs-skipped", package=str(package.id))

        if not package.source_artifact.url.strip():
            raise AcquisitionError(package.id, vcs_error=vcs_error)

        attempt = self._download_source_artifact(
            package,
            target_dir,
            cancel_event=cancel_event,
        )
        if attempt.result is not None:
            return attempt.result

        raise AcquisitionError(
            package.id,
            vcs_error=vcs_error,
            artifact_error=attempt.error,
        )

    def _download_from_vcs(
        self,
        package: Package,
        target_dir: Path,
        *,
        allow_moving_revisions: bool,
    ) -> _Attempt:
        started_at = datetime.now(timezone.utc)
        processed = package.vcs_processed

        backend = self.vcs_registry.resolve(processed)
        if backend is None:
            return _Attempt(
                error=CheckoutError(
                    f"Unsupported VCS type '{processed.type}' for URL "
                    f"'{processed.url}'."
                )
            )

        self._logger.info(
            "download-vcs-start",
            package=str(package.id),
            vcs=backend.type,
            url=processed.url,
            revision=processed.revision,
        )
        try:
            tree = backend.download(
                package,
                target_dir,
                allow_moving_revisions=allow_moving_revisions,
            )
            resolved_revision = tree.get_revision()
        except CheckoutError as exc:
            return _Attempt(error=exc)

        vcs_info = VcsInfo(
            type=backend.type,
            url=processed.url,
            revision=processed.revision or resolved_revision,
            resolved_revision=resolved_revision,
            path=processed.path,
        )
        original = None if processed.same_pointer(vcs_info) else processed

        self._logger.info(
            "download-vcs-complete",
            package=str(package.id),
            revision=vcs_info.revision,
            resolved_revision=resolved_revision,
        )
        return _Attempt(
            result=DownloadResult(
                started_at=started_at,
                download_directory=target_dir,
                vcs_info=vcs_info,
                original_vcs_info=original,
            )
        )

    def _download_source_artifact(
        self,
        package: Package,
        target_dir: Path,
        *,
        cancel_event: threading.Event | None,
    ) -> _Attempt:
        started_at = datetime.now(timezone.utc)
        artifact = package.source_artifact
        scratch = Path(tempfile.mkdtemp(prefix="sourcekit-download-"))

        self._logger.info(
            "download-artifact-start",
            package=str(package.id),
            url=artifact.url,
        )
        try:
            archive = scratch / (artifact.file_name or "artifact")
            self.http_client.download(
                artifact.url,
                archive,
                cancel_event=cancel_event,
            )
            verify_checksum(archive, artifact.hash, artifact.hash_algorithm)
            unpack_archive(archive, target_dir)
        except (SourceKitError, OSError) as exc:
            return _Attempt(error=exc)
        finally:
            self._remove_best_effort(scratch)

        self._logger.info(
            "download-artifact-complete",
            package=str(package.id),
            url=artifact.url,
        )
        return _Attempt(
            result=DownloadResult(
                started_at=started_at,
                download_directory=target_dir,
                source_artifact=artifact,
            )
        )

    def _remove_best_effort(self, path: Path) -> None:
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            self._logger.warning(
                "download-cleanup-failed",
                path=str(path),
                error=str(exc),
            )

    def _reset_directory(self, target_dir: Path) -> None:
        self._remove_best_effort(target_dir)
        target_dir.mkdir(parents=True, exist_ok=True)

    def download_all(
        self,
        packages: Iterable[Package],
        output_dir: Path,
        *,
        allow_moving_revisions: bool | None = None,
        max_concurrency: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> dict[Package, DownloadResult | AcquisitionError]:
        """Download ``packages`` concurrently; failures are returned, not raised."""

        ordered = sorted(set(packages))
        workers = max(1, max_concurrency or self.max_concurrency)
        outcomes: dict[Package, DownloadResult | AcquisitionError] = {}

        def _download_one(package: Package) -> DownloadResult | AcquisitionError:
            if cancel_event is not None and cancel_event.is_set():
                return AcquisitionError(
                    package.id,
                    artifact_error=DownloadCancelledError(
                        f"Download of '{package.id}' was cancelled."
                    ),
                )
            try:
                return self.download(
                    package,
                    output_dir,
                    allow_moving_revisions=allow_moving_revisions,
                    cancel_event=cancel_event,
                )
            except AcquisitionError as exc:
                return exc

        with concurrent.futures.ThreadPoolExecutor(
            max_workers=workers,
            thread_name_prefix="downloader",
        ) as executor:
            future_map: dict[
                concurrent.futures.Future[DownloadResult | AcquisitionError],
                Package,
            ] = {
                executor.submit(_download_one, package): package
                for package in ordered
            }
            for future in concurrent.futures.as_completed(future_map):
                package = future_map[future]
                outcome = future.result()
                if isinstance(outcome, AcquisitionError):
                    self._logger.error(
                        "download-failed",
                        package=str(package.id),
                        error=str(outcome),
                    )
                outcomes[package] = outcome

        return {package: outcomes[package] for package in ordered}
