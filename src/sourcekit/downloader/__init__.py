"""Source acquisition and provenance consolidation."""

from __future__ import annotations

from .consolidate import consolidate_projects, working_tree_key
from .errors import AcquisitionError
from .service import DownloadCancelledError, Downloader

__all__ = [
    "AcquisitionError",
    "DownloadCancelledError",
    "Downloader",
    "consolidate_projects",
    "working_tree_key",
]
