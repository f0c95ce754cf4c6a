"""Data model shared by the downloader and scanners."""

from __future__ import annotations

from .package import (
    EMPTY_REMOTE_ARTIFACT,
    EMPTY_VCS_INFO,
    AnalyzerResult,
    HashAlgorithm,
    Package,
    PackageIdentity,
    Project,
    RemoteArtifact,
    VcsInfo,
)
from .results import (
    DownloadResult,
    LicenseFinding,
    Provenance,
    ScanResult,
    ScanSummary,
    ScannerDetails,
)

__all__ = [
    "AnalyzerResult",
    "DownloadResult",
    "EMPTY_REMOTE_ARTIFACT",
    "EMPTY_VCS_INFO",
    "HashAlgorithm",
    "LicenseFinding",
    "Package",
    "PackageIdentity",
    "Project",
    "Provenance",
    "RemoteArtifact",
    "ScanResult",
    "ScanSummary",
    "ScannerDetails",
    "VcsInfo",
]
