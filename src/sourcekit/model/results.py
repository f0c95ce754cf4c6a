"""Download and scan result records."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator

from .package import RemoteArtifact, VcsInfo

__all__ = [
    "DownloadResult",
    "LicenseFinding",
    "Provenance",
    "ScanResult",
    "ScanSummary",
    "ScannerDetails",
]


def _require_single_origin(
    source_artifact: RemoteArtifact | None,
    vcs_info: VcsInfo | None,
    original_vcs_info: VcsInfo | None,
) -> None:
    if (source_artifact is None) == (vcs_info is None):
        raise ValueError(
            "Either source_artifact or vcs_info must be set, but not both."
        )
    if original_vcs_info is not None and vcs_info is None:
        raise ValueError("original_vcs_info requires vcs_info.")


class DownloadResult(BaseModel):
    """What a single download attempt put into ``download_directory``.

    Exactly one of ``source_artifact`` and ``vcs_info`` is set.
    ``original_vcs_info`` holds the requested pointer when it differs from
    the one that was actually checked out.
    """

    started_at: datetime
    download_directory: Path
    source_artifact: RemoteArtifact | None = None
    vcs_info: VcsInfo | None = None
    original_vcs_info: VcsInfo | None = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_origin(self) -> "DownloadResult":
        _require_single_origin(
            self.source_artifact,
            self.vcs_info,
            self.original_vcs_info,
        )
        return self

    def provenance(self) -> "Provenance":
        """Return the provenance record describing this download."""

        return Provenance(
            download_time=self.started_at,
            source_artifact=self.source_artifact,
            vcs_info=self.vcs_info,
            original_vcs_info=self.original_vcs_info,
        )


class Provenance(BaseModel):
    """Which mechanism produced a scanned source tree."""

    download_time: datetime
    source_artifact: RemoteArtifact | None = None
    vcs_info: VcsInfo | None = None
    original_vcs_info: VcsInfo | None = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_origin(self) -> "Provenance":
        _require_single_origin(
            self.source_artifact,
            self.vcs_info,
            self.original_vcs_info,
        )
        return self


class LicenseFinding(BaseModel):
    """A license identifier detected somewhere in the scanned tree."""

    license: str

    model_config = {"frozen": True, "str_strip_whitespace": True}

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, LicenseFinding):
            return NotImplemented
        return self.license < other.license


class ScannerDetails(BaseModel):
    """Name, version and configuration of the scanner that ran."""

    name: str
    version: str
    configuration: str = ""

    model_config = {"frozen": True}


class ScanSummary(BaseModel):
    """Condensed outcome of one scan."""

    start_time: datetime
    end_time: datetime
    file_count: int = Field(default=0, ge=0)
    license_findings: tuple[LicenseFinding, ...] = ()
    errors: tuple[str, ...] = ()

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _normalize(self) -> "ScanSummary":
        object.__setattr__(
            self,
            "license_findings",
            tuple(sorted(set(self.license_findings))),
        )
        return self

    @property
    def licenses(self) -> tuple[str, ...]:
        return tuple(finding.license for finding in self.license_findings)


class ScanResult(BaseModel):
    """A scan summary plus the raw scanner output it was derived from."""

    provenance: Provenance
    scanner: ScannerDetails
    summary: ScanSummary
    raw_result: Any = None

    model_config = {"frozen": True}
