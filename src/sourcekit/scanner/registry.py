"""Registry mapping scanner names to factories."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Mapping

from sourcekit.core.logging import Logger

from .base import LocalScanner, ToolEnvironment
from .errors import ScannerNotRegisteredError, ScannerRegistryError

__all__ = [
    "ScannerFactory",
    "ScannerInitContext",
    "ScannerRegistry",
    "create_default_scanner_registry",
    "register_builtin_scanners",
]


@dataclass(frozen=True, slots=True)
class ScannerInitContext:
    """Construction context supplied to scanner factories."""

    logger: Logger
    options: Mapping[str, Any] | None = None
    tools: ToolEnvironment | None = None

    def __post_init__(self) -> None:
        options = dict(self.options or {})
        object.__setattr__(self, "options", MappingProxyType(options))


ScannerFactory = Callable[[ScannerInitContext], LocalScanner]
"""Factory callable responsible for instantiating scanners."""


class ScannerRegistry:
    """Mutable registry mapping scanner names to factory callables."""

    def __init__(
        self,
        factories: Mapping[str, ScannerFactory] | None = None,
    ) -> None:
        self._factories: dict[str, ScannerFactory] = {}
        if factories:
            for key, factory in factories.items():
                self.register(key, factory)

    @staticmethod
    def _normalize_key(key: str) -> str:
        normalized = key.strip().lower()
        if not normalized:
            raise ValueError("scanner name cannot be empty")
        return normalized

    def register(self, key: str, factory: ScannerFactory) -> None:
        """Register ``factory`` under ``key``; errors if key already present."""

        normalized = self._normalize_key(key)
        if normalized in self._factories:
            raise ScannerRegistryError(
                f"Scanner {normalized!r} already registered",
            )
        self._factories[normalized] = factory

    def unregister(self, key: str) -> None:
        self._factories.pop(self._normalize_key(key), None)

    def get_factory(self, key: str) -> ScannerFactory:
        """Return the factory registered for ``key`` or raise."""

        normalized = self._normalize_key(key)
        try:
            return self._factories[normalized]
        except KeyError as exc:
            raise ScannerNotRegisteredError(
                f"No scanner registered under name {normalized!r}",
            ) from exc

    def create(
        self,
        key: str,
        *,
        logger: Logger,
        options: Mapping[str, Any] | None = None,
        tools: ToolEnvironment | None = None,
    ) -> LocalScanner:
        """Instantiate the scanner registered under ``key``."""

        factory = self.get_factory(key)
        context = ScannerInitContext(logger=logger, options=options, tools=tools)
        return factory(context)

    def snapshot(self) -> Mapping[str, ScannerFactory]:
        """Return an immutable view of registered scanner factories."""

        return MappingProxyType(dict(self._factories))


def register_builtin_scanners(registry: ScannerRegistry) -> ScannerRegistry:
    from .file_counter import FileCounter, file_counter_factory
    from .licensechecker import LicenseChecker, licensechecker_factory

    registry.register(FileCounter.name, file_counter_factory)
    registry.register(LicenseChecker.name, licensechecker_factory)
    return registry


def create_default_scanner_registry() -> ScannerRegistry:
    """Return a registry populated with the built-in scanners."""

    return register_builtin_scanners(ScannerRegistry())
