"""License scanner backed by boyter's ``lc`` (licensechecker) tool."""

from __future__ import annotations

import json
import threading
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, Field

from sourcekit.core.logging import Logger
from sourcekit.model import LicenseFinding, ScanSummary
from sourcekit.tools import CommandLineTool, ToolError, ToolResolutionError

from .base import LocalScanner, ToolEnvironment
from .errors import ScanError

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .registry import ScannerInitContext

__all__ = [
    "LC_RELEASE_URL",
    "LicenseChecker",
    "LicenseCheckerCommand",
    "LicenseCheckerOptions",
    "licensechecker_factory",
]

LC_RELEASE_URL = (
    "https://github.com/boyter/lc/releases/download/"
    "v{version}/lc-{version}-{platform}.zip"
)

_RELEASE_PLATFORMS = {
    "linux": "x86_64-unknown-linux",
    "macos": "x86_64-apple-darwin",
    "windows": "x86_64-pc-windows",
}

_VERSION_PREFIX = "licensechecker version "


class LicenseCheckerCommand(CommandLineTool):
    """The ``lc`` executable, bootstrapped from its GitHub release."""

    name = "licensechecker"
    executable = "lc"
    version_arguments = ("--version",)
    required_version_range = ">=1.3.1"
    preferred_version = "1.3.1"
    can_bootstrap = True

    def transform_version(self, output: str) -> str:
        """Strip the tool name from the version banner.

        Example:
            >>> LicenseCheckerCommand().transform_version(
            ...     "licensechecker version 1.3.1"
            ... )
            '1.3.1'
        """

        _, found, version = output.partition(_VERSION_PREFIX)
        return (version if found else output).strip()

    def release_url(self) -> str:
        try:
            platform = _RELEASE_PLATFORMS[self.platform.os]
        except KeyError:
            raise ToolResolutionError(
                f"No {self.name} release for operating system "
                f"'{self.platform.os}'."
            ) from None
        return LC_RELEASE_URL.format(version=self.preferred_version, platform=platform)

    def bootstrap(self, work_dir: Path) -> Path:
        url = self.release_url()
        self._logger.info("tool-bootstrap-download", url=url)
        return self.install_release_archive(url, work_dir)


class LicenseCheckerOptions(BaseModel):
    """Options recognized by the ``licensechecker`` scanner."""

    confidence: float = Field(
        default=0.95,
        ge=0.0,
        le=1.0,
        description="Cut-off value to only keep the most relevant matches.",
    )
    output_format: Literal["json"] = Field(
        default="json",
        description="Result file format; only JSON can be summarized.",
    )

    model_config = {"frozen": True}


class LicenseChecker(LocalScanner):
    """Detect licenses per file using the ``lc`` tool."""

    name = "licensechecker"
    result_file_ext = "json"

    def __init__(
        self,
        command: LicenseCheckerCommand,
        *,
        options: LicenseCheckerOptions | None = None,
        logger: Logger | None = None,
    ) -> None:
        super().__init__(logger=logger)
        self.command = command
        self.options = options or LicenseCheckerOptions()
        self._version: str | None = None
        self._version_lock = threading.Lock()

    @property
    def version(self) -> str:
        with self._version_lock:
            if self._version is None:
                try:
                    self._version = str(self.command.check_version())
                except ToolError as exc:
                    raise ScanError(
                        f"Cannot determine the version of '{self.command.name}'."
                    ) from exc
            return self._version

    @property
    def configuration_options(self) -> tuple[str, ...]:
        return (
            "--confidence",
            str(self.options.confidence),
            "--format",
            self.options.output_format,
        )

    @property
    def configuration(self) -> str:
        return " ".join(self.configuration_options)

    def run_scan(
        self,
        path: Path,
        results_file: Path,
        *,
        cancel_event: threading.Event | None = None,
    ) -> None:
        try:
            capture = self.command.run(
                *self.configuration_options,
                "--output",
                str(results_file.resolve()),
                str(path.resolve()),
                cancel_event=cancel_event,
            )
        except ToolError as exc:
            results_file.unlink(missing_ok=True)
            raise ScanError(f"Running {self.name} on '{path}' failed.") from exc

        if capture.stderr.strip():
            self._logger.debug("scan-tool-stderr", stderr=capture.stderr.strip())
        if not capture.is_success:
            results_file.unlink(missing_ok=True)
            raise ScanError(capture.error_message)

    def get_result(self, results_file: Path) -> list[dict[str, Any]]:
        if not results_file.is_file() or results_file.stat().st_size == 0:
            return []
        try:
            payload = json.loads(results_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ScanError(f"Cannot read result file '{results_file}'.") from exc
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise ScanError(f"Result file '{results_file}' is not a JSON list.")
        return payload

    def generate_summary(
        self,
        start_time: datetime,
        end_time: datetime,
        raw_result: Any,
    ) -> ScanSummary:
        findings: list[LicenseFinding] = []
        for entry in raw_result:
            for guess in entry.get("LicenseGuesses") or ():
                license_id = (guess or {}).get("LicenseId")
                if license_id:
                    findings.append(LicenseFinding(license=license_id))
        return ScanSummary(
            start_time=start_time,
            end_time=end_time,
            file_count=len(raw_result),
            license_findings=tuple(findings),
        )


def licensechecker_factory(context: "ScannerInitContext") -> LicenseChecker:
    tools = context.tools or ToolEnvironment()
    command = LicenseCheckerCommand(
        tools_dir=tools.tools_dir,
        http_client=tools.http_client,
        settings=tools.settings_for(LicenseCheckerCommand.name),
        logger=context.logger,
    )
    return LicenseChecker(
        command,
        options=LicenseCheckerOptions.model_validate(dict(context.options)),
        logger=context.logger,
    )
