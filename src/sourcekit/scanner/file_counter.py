"""In-process scanner that only counts files."""

from __future__ import annotations

import json
import threading
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sourcekit.model import ScanSummary

from .base import LocalScanner
from .errors import ScanError

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .registry import ScannerInitContext

__all__ = ["FileCounter", "file_counter_factory"]


class FileCounter(LocalScanner):
    """Count regular files below the scanned path.

    Much faster than any real scanner, which makes it handy for exercising
    the scan pipeline.
    """

    name = "file-counter"

    @property
    def version(self) -> str:
        return "1.0"

    def run_scan(
        self,
        path: Path,
        results_file: Path,
        *,
        cancel_event: threading.Event | None = None,
    ) -> None:
        count = 0
        for entry in path.rglob("*"):
            if cancel_event is not None and cancel_event.is_set():
                raise ScanError(f"Counting files in '{path}' was cancelled.")
            if entry.is_file():
                count += 1
        results_file.write_text(
            json.dumps({"file_count": count}),
            encoding="utf-8",
        )

    def get_result(self, results_file: Path) -> dict[str, Any]:
        try:
            payload = json.loads(results_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ScanError(f"Cannot read result file '{results_file}'.") from exc
        if not isinstance(payload, dict) or not isinstance(
            payload.get("file_count"), int
        ):
            raise ScanError(f"Result file '{results_file}' has no file count.")
        return payload

    def generate_summary(
        self,
        start_time: datetime,
        end_time: datetime,
        raw_result: Any,
    ) -> ScanSummary:
        return ScanSummary(
            start_time=start_time,
            end_time=end_time,
            file_count=raw_result["file_count"],
        )


def file_counter_factory(context: "ScannerInitContext") -> FileCounter:
    return FileCounter(logger=context.logger)
