"""Data files shipped inside the :mod:`sourcekit` distribution."""

from __future__ import annotations

from importlib import resources
from importlib.resources.abc import Traversable
import tomllib
from typing import Any


def get_resource(relative_path: str) -> Traversable:
    """Locate a bundled data file, raising ``FileNotFoundError`` if absent.

    Example:
        >>> get_resource("sourcekit.defaults.toml").name
        'sourcekit.defaults.toml'
    """

    located = resources.files(__package__).joinpath(relative_path)
    if not located.is_file():
        raise FileNotFoundError(
            f"sourcekit does not bundle a resource named {relative_path!r}"
        )
    return located


def read_text(relative_path: str) -> str:
    return get_resource(relative_path).read_text(encoding="utf-8")


def read_toml(relative_path: str) -> dict[str, Any]:
    """Parse a bundled TOML document into plain dictionaries."""

    return tomllib.loads(read_text(relative_path))


__all__ = ["get_resource", "read_text", "read_toml"]
