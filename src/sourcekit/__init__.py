"""Top-level package for :mod:`sourcekit`.

The package exposes version metadata so downstream tooling can record which
build produced a download or scan result.

Example:
    >>> from sourcekit import __version__
    >>> __version__.split(".")[0]
    '0'
"""

from importlib import metadata

try:
    __version__ = metadata.version("sourcekit")
except metadata.PackageNotFoundError:  # pragma: no cover - fallback for editable installs
    __version__ = "0.0.0"

__all__ = ["__version__"]
