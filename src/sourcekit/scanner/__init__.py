"""Scanner plugins and the scan orchestration service."""

from __future__ import annotations

from .base import LocalScanner, ToolEnvironment
from .errors import ScanError, ScannerNotRegisteredError, ScannerRegistryError
from .file_counter import FileCounter, file_counter_factory
from .licensechecker import (
    LicenseChecker,
    LicenseCheckerCommand,
    LicenseCheckerOptions,
    licensechecker_factory,
)
from .registry import (
    ScannerFactory,
    ScannerInitContext,
    ScannerRegistry,
    create_default_scanner_registry,
    register_builtin_scanners,
)
from .service import ScanOutcome, ScanService

__all__ = [
    "FileCounter",
    "LicenseChecker",
    "LicenseCheckerCommand",
    "LicenseCheckerOptions",
    "LocalScanner",
    "ScanError",
    "ScanOutcome",
    "ScanService",
    "ScannerFactory",
    "ScannerInitContext",
    "ScannerNotRegisteredError",
    "ScannerRegistry",
    "ScannerRegistryError",
    "ToolEnvironment",
    "create_default_scanner_registry",
    "file_counter_factory",
    "licensechecker_factory",
    "register_builtin_scanners",
]
