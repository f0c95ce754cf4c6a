"""Core utilities shared across :mod:`sourcekit` packages.

The core namespace provides seams for configuration loading, logging setup,
cache path resolution and slot locks so feature packages stay lightweight.
"""

from __future__ import annotations

from .config import AppConfig, load_config
from .locks import SlotLock
from .logging import configure_logging, get_logger
from .paths import CachePaths, resolve_cache_paths

__all__ = [
    "AppConfig",
    "CachePaths",
    "SlotLock",
    "configure_logging",
    "get_logger",
    "load_config",
    "resolve_cache_paths",
]
