"""Configuration models and loaders for :mod:`sourcekit`."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from pathlib import Path
from typing import Any, Mapping

import tomllib
import tomlkit
from pydantic import BaseModel, Field, field_validator, model_validator

from sourcekit.resources import read_text, read_toml

DEFAULTS_RESOURCE_NAME = "sourcekit.defaults.toml"
ENV_CACHE_ROOT = "SOURCEKIT_CACHE_ROOT"
ENV_LOG_LEVEL = "SOURCEKIT_LOG_LEVEL"


class HttpSettings(BaseModel):
    """Transport settings shared by every HTTP download."""

    timeout: float = Field(
        default=60.0,
        gt=0.0,
        description="Seconds before connect/read operations time out.",
    )
    proxy: str | None = Field(
        default=None,
        description="Optional proxy URL routed for every request.",
    )
    user_agent: str = Field(
        default="sourcekit",
        description="User-Agent header sent with requests.",
    )

    model_config = {"frozen": True, "str_strip_whitespace": True}

    @field_validator("proxy")
    @classmethod
    def _blank_proxy_is_none(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value


class DownloaderSettings(BaseModel):
    """Source acquisition settings."""

    allow_moving_revisions: bool = Field(
        default=False,
        description=(
            "Whether VCS downloads may follow branch names whose target "
            "commit can change."
        ),
    )
    max_concurrency: int = Field(
        default=4,
        ge=1,
        description="Number of packages downloaded in parallel.",
    )

    model_config = {"frozen": True}


class ScannerSettings(BaseModel):
    """Scan orchestration settings."""

    name: str = Field(
        default="licensechecker",
        description="Registered scanner used by `sourcekit scan`.",
    )
    max_concurrency: int = Field(
        default=2,
        ge=1,
        description="Number of packages scanned in parallel.",
    )
    reuse_results: bool = Field(
        default=True,
        description="Re-read existing result files instead of rescanning.",
    )

    model_config = {"frozen": True, "str_strip_whitespace": True}


class ToolSettings(BaseModel):
    """Per-tool settings for managed external executables."""

    timeout: float | None = Field(
        default=None,
        gt=0.0,
        description="Seconds before a tool invocation is killed.",
    )
    ignore_version: bool = Field(
        default=False,
        description="Only warn when the tool version is unsupported.",
    )
    required_version: str | None = Field(
        default=None,
        description="npm-style version range overriding the tool default.",
    )

    model_config = {"frozen": True, "str_strip_whitespace": True}


class AppConfig(BaseModel):
    """Root configuration for the :mod:`sourcekit` application."""

    log_level: str = Field(
        default="INFO",
        description="Default logging level for the application runtime.",
    )
    cache_root: Path = Field(
        default_factory=lambda: Path("~/.sourcekit").expanduser(),
        description="Root for HTTP caches, tool installs and logs.",
    )
    http: HttpSettings = Field(default_factory=HttpSettings)
    downloader: DownloaderSettings = Field(default_factory=DownloaderSettings)
    scanner: ScannerSettings = Field(default_factory=ScannerSettings)
    tools: dict[str, ToolSettings] = Field(
        default_factory=dict,
        description="Managed tool settings keyed by tool name.",
    )
    scanners: dict[str, dict[str, Any]] = Field(
        default_factory=dict,
        description="Opaque per-scanner option tables keyed by scanner name.",
    )

    model_config = {
        "str_strip_whitespace": True,
        "validate_assignment": True,
    }

    @model_validator(mode="after")
    def _post_process(self) -> "AppConfig":
        object.__setattr__(self, "log_level", self.log_level.upper())
        object.__setattr__(self, "cache_root", self.cache_root.expanduser())
        return self

    def tool_settings(self, name: str) -> ToolSettings:
        """Return settings for the tool ``name`` or defaults."""

        return self.tools.get(name, ToolSettings())

    def scanner_options(self, name: str) -> Mapping[str, Any]:
        """Return the option table configured for scanner ``name``."""

        return dict(self.scanners.get(name, {}))


def read_packaged_defaults_text() -> str:
    """Return the raw packaged defaults TOML content."""

    return read_text(DEFAULTS_RESOURCE_NAME)


def load_packaged_defaults() -> dict[str, Any]:
    """Load the packaged defaults as a plain dictionary.

    Example:
        >>> load_packaged_defaults()["log_level"]
        'INFO'
    """

    return read_toml(DEFAULTS_RESOURCE_NAME)


def load_user_config(path: Path) -> dict[str, Any]:
    """Parse the user ``sourcekit.toml`` at ``path``; missing files are empty."""

    if not path.exists():
        return {}
    with path.open("rb") as handle:
        return tomllib.load(handle)


def env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Translate recognized environment variables into a config layer."""

    layer: dict[str, Any] = {}
    cache_root = environ.get(ENV_CACHE_ROOT)
    if cache_root:
        layer["cache_root"] = cache_root
    log_level = environ.get(ENV_LOG_LEVEL)
    if log_level:
        layer["log_level"] = log_level
    return layer


def _deep_merge(
    base: Mapping[str, Any],
    overlay: Mapping[str, Any],
) -> dict[str, Any]:
    """Recursively merge ``overlay`` into ``base`` returning a new dict."""

    merged: dict[str, Any] = dict(base)
    for key, value in overlay.items():
        if (
            key in merged
            and isinstance(merged[key], MappingABC)
            and isinstance(value, MappingABC)
        ):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(
    *,
    defaults: Mapping[str, Any],
    user_config: Mapping[str, Any] | None = None,
    env_config: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> AppConfig:
    """Load configuration according to the precedence stack.

    Args:
        defaults: Packaged defaults shipped with the application.
        user_config: Parsed user ``sourcekit.toml`` content.
        env_config: Settings derived from environment variables.
        cli_overrides: Settings supplied via CLI flags.

    Returns:
        A validated :class:`AppConfig` instance.
    """

    stack = dict(defaults)
    for layer in (user_config, env_config, cli_overrides):
        if layer:
            stack = _deep_merge(stack, layer)

    tools_raw = stack.pop("tools", None) or {}
    if not isinstance(tools_raw, MappingABC):
        raise TypeError(f"Unsupported tools configuration: {tools_raw!r}")
    stack["tools"] = {
        name: value if isinstance(value, ToolSettings) else ToolSettings(**value)
        for name, value in tools_raw.items()
    }

    return AppConfig(**stack)


def _settings_table(model: BaseModel) -> tomlkit.items.Table:
    table = tomlkit.table()
    for key, value in model.model_dump().items():
        if value is None:
            continue
        table[key] = value
    return table


def render_user_config(config: AppConfig, *, include_comments: bool = True) -> str:
    """Render a ``sourcekit.toml`` document for ``config``."""

    document = tomlkit.document()

    if include_comments:
        document.add(tomlkit.comment("Generated by sourcekit config"))
        document.add(
            tomlkit.comment(
                "Precedence: CLI flags > env vars > sourcekit.toml > defaults"
            )
        )
        document.add(tomlkit.comment("Environment overrides:"))
        document.add(tomlkit.comment(f"  {ENV_CACHE_ROOT}=/path/to/cache"))
        document.add(tomlkit.comment(f"  {ENV_LOG_LEVEL}=debug"))
        document.add(tomlkit.nl())

    document["log_level"] = config.log_level
    document["cache_root"] = str(config.cache_root)
    document["http"] = _settings_table(config.http)
    document["downloader"] = _settings_table(config.downloader)
    document["scanner"] = _settings_table(config.scanner)

    if config.tools:
        tools_table = tomlkit.table(is_super_table=True)
        for name in sorted(config.tools):
            tools_table.add(name, _settings_table(config.tools[name]))
        document["tools"] = tools_table

    if config.scanners:
        scanners_table = tomlkit.table(is_super_table=True)
        for name in sorted(config.scanners):
            entry = tomlkit.table()
            for key, value in sorted(config.scanners[name].items()):
                entry[key] = value
            scanners_table.add(name, entry)
        document["scanners"] = scanners_table

    return tomlkit.dumps(document)


__all__ = [
    "AppConfig",
    "DEFAULTS_RESOURCE_NAME",
    "DownloaderSettings",
    "ENV_CACHE_ROOT",
    "ENV_LOG_LEVEL",
    "HttpSettings",
    "ScannerSettings",
    "ToolSettings",
    "env_overrides",
    "load_config",
    "load_packaged_defaults",
    "load_user_config",
    "read_packaged_defaults_text",
    "render_user_config",
]
