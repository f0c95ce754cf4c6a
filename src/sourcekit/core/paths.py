"""Cache directory layout helpers for :mod:`sourcekit`."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

__all__ = [
    "CachePaths",
    "resolve_cache_paths",
]


@dataclass(frozen=True, slots=True)
class CachePaths:
    """Resolved locations below a cache root.

    Example:
        >>> from pathlib import Path
        >>> paths = resolve_cache_paths(cache_override=Path("/tmp/sk"))
        >>> paths.tool_dir("lc").as_posix()
        '/tmp/sk/tools/lc'
    """

    root: Path
    config_file: Path
    logs_dir: Path
    tools_dir: Path

    def iter_all(self) -> Iterable[Path]:
        """Yield every directory or file managed below the cache root."""

        yield from (
            self.root,
            self.config_file,
            self.logs_dir,
            self.tools_dir,
        )

    def tool_dir(self, name: str) -> Path:
        """Return the bootstrap installation slot for the tool ``name``."""

        return self.tools_dir / name

    def ensure(self) -> "CachePaths":
        """Create the managed directories if they are missing."""

        self.root.mkdir(parents=True, exist_ok=True)
        self.logs_dir.mkdir(parents=True, exist_ok=True)
        self.tools_dir.mkdir(parents=True, exist_ok=True)
        return self


def resolve_cache_paths(
    *,
    cache_override: Path | None = None,
    env_override: Path | None = None,
    configured: Path | None = None,
) -> CachePaths:
    """Resolve canonical cache locations.

    Args:
        cache_override: Optional override provided by CLI flags.
        env_override: Optional override from ``SOURCEKIT_CACHE_ROOT``.
        configured: Cache root from the loaded configuration.

    Returns:
        Resolved cache paths after precedence rules are applied.

    Raises:
        ValueError: If the resolved cache root points to a regular file.
    """

    def _normalize(candidate: Path) -> Path:
        raw = Path(candidate).expanduser()
        if raw.is_absolute():
            return raw.resolve(strict=False)
        return (Path.cwd() / raw).resolve(strict=False)

    base = (
        cache_override
        or env_override
        or configured
        or Path.home() / ".sourcekit"
    )
    root = _normalize(base)

    if root.exists() and root.is_file():
        raise ValueError(f"Cache root must be a directory: {root}")

    return CachePaths(
        root=root,
        config_file=root / "sourcekit.toml",
        logs_dir=root / "logs",
        tools_dir=root / "tools",
    )
