"""Scanner plugin contract."""

from __future__ import annotations

import abc
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from sourcekit.core.config import ToolSettings
from sourcekit.core.logging import Logger, get_logger
from sourcekit.http import HttpClient
from sourcekit.model import Provenance, ScannerDetails, ScanResult, ScanSummary

__all__ = ["LocalScanner", "ToolEnvironment"]


@dataclass(frozen=True, slots=True)
class ToolEnvironment:
    """Where scanners install their tools and how they download them."""

    tools_dir: Path | None = None
    http_client: HttpClient | None = None
    settings: Mapping[str, ToolSettings] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "settings", MappingProxyType(dict(self.settings)))

    def settings_for(self, name: str) -> ToolSettings:
        return self.settings.get(name, ToolSettings())


class LocalScanner(abc.ABC):
    """A scanner that runs on a local source tree and writes a result file.

    Subclasses implement :meth:`run_scan`, :meth:`get_result` and
    :meth:`generate_summary`. Result files can be re-read later through
    :meth:`summary_from_file` without scanning again.
    """

    name: str = ""
    result_file_ext: str = "json"

    def __init__(self, *, logger: Logger | None = None) -> None:
        self._logger = logger or get_logger(
            __name__,
            component="scanner",
            scanner=self.name,
        )

    @property
    @abc.abstractmethod
    def version(self) -> str:
        """Version of the scanner implementation or its external tool."""

    @property
    def configuration(self) -> str:
        return ""

    def details(self) -> ScannerDetails:
        return ScannerDetails(
            name=self.name,
            version=self.version,
            configuration=self.configuration,
        )

    def results_file_name(self) -> str:
        return f"scan-results_{self.name}.{self.result_file_ext}"

    @abc.abstractmethod
    def run_scan(
        self,
        path: Path,
        results_file: Path,
        *,
        cancel_event: threading.Event | None = None,
    ) -> None:
        """Scan ``path`` and write the raw result to ``results_file``."""

    @abc.abstractmethod
    def get_result(self, results_file: Path) -> Any:
        """Parse a result file written by :meth:`run_scan`."""

    @abc.abstractmethod
    def generate_summary(
        self,
        start_time: datetime,
        end_time: datetime,
        raw_result: Any,
    ) -> ScanSummary:
        """Condense ``raw_result`` into a :class:`ScanSummary`."""

    def scan_path(
        self,
        path: Path,
        provenance: Provenance,
        results_file: Path,
        *,
        cancel_event: threading.Event | None = None,
    ) -> ScanResult:
        """Scan ``path``, keep the raw output in ``results_file`` and summarize.

        Raises:
            ScanError: If the scan fails or its output cannot be parsed.
        """

        details = self.details()
        results_file.parent.mkdir(parents=True, exist_ok=True)

        self._logger.info("scan-start", path=str(path), version=details.version)
        start_time = datetime.now(timezone.utc)
        self.run_scan(path, results_file, cancel_event=cancel_event)
        end_time = datetime.now(timezone.utc)

        raw_result = self.get_result(results_file)
        summary = self.generate_summary(start_time, end_time, raw_result)
        self._logger.info(
            "scan-complete",
            path=str(path),
            file_count=summary.file_count,
            licenses=len(summary.license_findings),
        )
        return ScanResult(
            provenance=provenance,
            scanner=details,
            summary=summary,
            raw_result=raw_result,
        )

    def summary_from_file(
        self,
        results_file: Path,
        provenance: Provenance,
    ) -> ScanResult:
        """Rebuild a scan result from an existing result file."""

        stamp = datetime.fromtimestamp(results_file.stat().st_mtime, tz=timezone.utc)
        raw_result = self.get_result(results_file)
        return ScanResult(
            provenance=provenance,
            scanner=self.details(),
            summary=self.generate_summary(stamp, stamp, raw_result),
            raw_result=raw_result,
        )
