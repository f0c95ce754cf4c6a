"""Managed external tools: version checks, bootstrap and process runs."""

from __future__ import annotations

from .base import CommandLineTool
from .errors import (
    ProcessCancelledError,
    ProcessError,
    ProcessTimeoutError,
    ToolError,
    ToolResolutionError,
    VersionMismatchError,
)
from .platform import Platform, current_platform
from .process import ProcessCapture, run_process

__all__ = [
    "CommandLineTool",
    "Platform",
    "ProcessCancelledError",
    "ProcessCapture",
    "ProcessError",
    "ProcessTimeoutError",
    "ToolError",
    "ToolResolutionError",
    "VersionMismatchError",
    "current_platform",
    "run_process",
]
