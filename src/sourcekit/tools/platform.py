"""Operating system and architecture detection for tool downloads."""

from __future__ import annotations

import platform as _platform
from dataclasses import dataclass

__all__ = ["Platform", "current_platform"]

_OS_ALIASES = {
    "linux": "linux",
    "darwin": "macos",
    "windows": "windows",
}

_ARCH_ALIASES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "arm64": "aarch64",
    "aarch64": "aarch64",
    "i386": "x86",
    "i686": "x86",
}


@dataclass(frozen=True, slots=True)
class Platform:
    """Normalized ``os``/``arch`` pair.

    Example:
        >>> Platform(os="windows", arch="x86_64").executable("lc")
        'lc.exe'
        >>> Platform(os="linux", arch="x86_64").executable("lc")
        'lc'
    """

    os: str
    arch: str

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    def executable(self, name: str) -> str:
        """Return the file name of executable ``name`` on this platform."""

        return f"{name}.exe" if self.is_windows else name


def current_platform() -> Platform:
    """Detect the platform of the running interpreter."""

    system = _platform.system().lower()
    machine = _platform.machine().lower()
    return Platform(
        os=_OS_ALIASES.get(system, system),
        arch=_ARCH_ALIASES.get(machine, machine),
    )
