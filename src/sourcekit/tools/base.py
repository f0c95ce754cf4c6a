"""Managed external command line tools with on-demand bootstrap."""

from __future__ import annotations

import os
import shutil
import stat
import threading
from pathlib import Path
from typing import Mapping
from urllib.parse import urlsplit

from semantic_version import NpmSpec, Version

from sourcekit.archive import unpack
from sourcekit.core.config import ToolSettings
from sourcekit.core.locks import LockError, SlotLock
from sourcekit.core.logging import Logger, get_logger
from sourcekit.errors import SourceKitError
from sourcekit.http import HttpClient

from .errors import ToolError, ToolResolutionError, VersionMismatchError
from .platform import Platform, current_platform
from .process import ProcessCapture, run_process

__all__ = ["CommandLineTool", "INSTALLED_MARKER"]

# Relative path of the directory holding the executable, written into a slot
# once its bootstrap has finished.
INSTALLED_MARKER = ".installed"


class CommandLineTool:
    """Base class for an external executable with a required version range.

    Subclasses describe the tool through class attributes and override
    :meth:`transform_version` and :meth:`bootstrap` where needed. The first
    call to :meth:`resolve_path` decides which installation is used: a
    satisfying executable on ``PATH`` or, failing that, a bootstrapped copy
    under ``<tools_dir>/<name>``. The decision is memoized per instance.
    """

    name: str = ""
    executable: str = ""
    version_arguments: tuple[str, ...] = ("--version",)
    mandatory_arguments: tuple[str, ...] = ()
    required_version_range: str = "*"
    preferred_version: str | None = None
    can_bootstrap: bool = False

    def __init__(
        self,
        *,
        tools_dir: Path | None = None,
        http_client: HttpClient | None = None,
        settings: ToolSettings | None = None,
        platform: Platform | None = None,
        logger: Logger | None = None,
    ) -> None:
        self.tools_dir = tools_dir
        self.http_client = http_client
        self.settings = settings or ToolSettings()
        self.platform = platform or current_platform()
        self._logger = logger or get_logger(
            __name__,
            component="tools",
            tool=self.name,
        )
        self._state_lock = threading.Lock()
        self._resolved_dir: Path | None = None

    @property
    def executable_name(self) -> str:
        return self.platform.executable(self.executable or self.name)

    @property
    def required_version(self) -> NpmSpec:
        """Version range the tool must satisfy; configuration may override it."""

        return NpmSpec(self.settings.required_version or self.required_version_range)

    @property
    def timeout(self) -> float | None:
        return self.settings.timeout

    def transform_version(self, output: str) -> str:
        """Extract the version string from the version probe output."""

        return output.strip()

    def find_in_path(self) -> Path | None:
        """Return the ``PATH`` directory containing the executable, if any."""

        found = shutil.which(self.executable_name)
        return Path(found).parent if found else None

    def command_path(self, command_dir: Path | None = None) -> str:
        if command_dir is None:
            return self.executable_name
        return str(command_dir / self.executable_name)

    def get_version(self, command_dir: Path | None = None) -> Version:
        """Probe the executable and parse its version loosely.

        Raises:
            ProcessError: If the probe exits with a non-zero code.
            VersionMismatchError: If no version can be parsed from the output.
        """

        capture = run_process(
            [self.command_path(command_dir), *self.version_arguments],
            timeout=self.timeout,
        ).require_success()
        output = capture.stdout.strip() or capture.stderr.strip()
        raw = self.transform_version(output)
        try:
            return Version.coerce(raw)
        except ValueError as exc:
            raise VersionMismatchError(
                f"Could not parse a version of '{self.name}' from {raw!r}."
            ) from exc

    def satisfies(self, version: Version) -> bool:
        return version in self.required_version

    def bootstrap(self, work_dir: Path) -> Path:
        """Install the tool into ``work_dir`` and return its directory."""

        raise ToolResolutionError(f"Tool '{self.name}' cannot be bootstrapped.")

    def resolve_path(self) -> Path:
        """Return the directory holding a usable executable.

        Raises:
            ToolResolutionError: If the tool is missing or unsatisfactory and
                bootstrapping is unsupported or failed.
        """

        with self._state_lock:
            if self._resolved_dir is None:
                self._resolved_dir = self._resolve_unlocked()
            return self._resolved_dir

    def ensure_ready(self) -> "CommandLineTool":
        self.resolve_path()
        return self

    def _resolve_unlocked(self) -> Path:
        found = self.find_in_path()
        if found is not None:
            try:
                version = self.get_version(found)
            except ToolError as exc:
                self._logger.warning(
                    "tool-version-probe-failed",
                    path=str(found),
                    error=str(exc),
                )
            else:
                if self.satisfies(version):
                    self._logger.debug(
                        "tool-resolved",
                        path=str(found),
                        version=str(version),
                    )
                    return found
                self._logger.info(
                    "tool-version-unsatisfied",
                    path=str(found),
                    version=str(version),
                    required=str(self.required_version),
                )

        if not self.can_bootstrap:
            raise ToolResolutionError(
                f"Tool '{self.name}' was not found in PATH with a version "
                f"matching '{self.required_version}' and cannot be "
                "bootstrapped."
            )
        if self.tools_dir is None:
            raise ToolResolutionError(
                f"Tool '{self.name}' needs bootstrapping but no tools "
                "directory is configured."
            )
        return self._bootstrap_into_slot(self.tools_dir)

    def _bootstrap_into_slot(self, tools_dir: Path) -> Path:
        slot = tools_dir / self.name / (self.preferred_version or "latest")
        try:
            with SlotLock(slot, logger=self._logger):
                reused = self._installed_directory(slot)
                if reused is not None:
                    self._logger.debug("tool-bootstrap-reused", path=str(reused))
                    return reused

                shutil.rmtree(slot, ignore_errors=True)
                slot.mkdir(parents=True, exist_ok=True)
                self._logger.info(
                    "tool-bootstrap-start",
                    version=self.preferred_version,
                    path=str(slot),
                )
                try:
                    directory = self.bootstrap(slot)
                    self._record_installation(slot, directory)
                except BaseException:
                    shutil.rmtree(slot, ignore_errors=True)
                    raise
                self._logger.info("tool-bootstrap-complete", path=str(directory))
                return directory
        except ToolResolutionError:
            raise
        except (LockError, SourceKitError, OSError) as exc:
            raise ToolResolutionError(
                f"Bootstrapping '{self.name}' failed: {exc}"
            ) from exc

    def _installed_directory(self, slot: Path) -> Path | None:
        """Return the directory a finished bootstrap recorded in ``slot``."""

        try:
            relative = (slot / INSTALLED_MARKER).read_text(encoding="utf-8").strip()
        except OSError:
            return None
        directory = slot / relative
        if not directory.resolve().is_relative_to(slot.resolve()):
            return None
        if not (directory / self.executable_name).is_file():
            return None
        return directory

    def _record_installation(self, slot: Path, directory: Path) -> None:
        try:
            relative = directory.resolve().relative_to(slot.resolve())
        except ValueError:
            raise ToolResolutionError(
                f"Tool '{self.name}' was installed to {directory}, outside "
                f"its slot {slot}."
            ) from None
        # Written last: a slot without the marker is an interrupted bootstrap.
        (slot / INSTALLED_MARKER).write_text(
            f"{relative.as_posix()}\n", encoding="utf-8"
        )

    def check_version(self, *, ignore_actual_version: bool | None = None) -> Version:
        """Verify the resolved executable's version against the range.

        Raises:
            VersionMismatchError: If unsupported and not ignored.
        """

        if ignore_actual_version is None:
            ignore_actual_version = self.settings.ignore_version

        version = self.get_version(self.resolve_path())
        if not self.satisfies(version):
            message = (
                f"Version {version} of '{self.name}' does not match the "
                f"required range '{self.required_version}'."
            )
            if not ignore_actual_version:
                raise VersionMismatchError(message)
            self._logger.warning(
                "tool-version-ignored",
                version=str(version),
                required=str(self.required_version),
            )
        return version

    def run(
        self,
        *args: str | os.PathLike[str],
        working_dir: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ProcessCapture:
        """Run the tool; a non-zero exit code is returned, not raised."""

        command = [
            self.command_path(self.resolve_path()),
            *self.mandatory_arguments,
            *args,
        ]
        return run_process(
            command,
            working_dir=working_dir,
            env=env,
            timeout=timeout if timeout is not None else self.timeout,
            cancel_event=cancel_event,
        )

    def install_release_archive(self, url: str, work_dir: Path) -> Path:
        """Download and unpack a release archive into ``work_dir``.

        Returns the directory containing the executable.
        """

        if self.http_client is None:
            raise ToolResolutionError(
                f"Tool '{self.name}' needs an HTTP client to bootstrap."
            )

        archive = work_dir / Path(urlsplit(url).path).name
        self.http_client.download(url, archive)
        try:
            unpack(archive, work_dir)
        finally:
            archive.unlink(missing_ok=True)

        executable = work_dir / self.executable_name
        if not executable.is_file():
            matches = sorted(work_dir.rglob(self.executable_name))
            if not matches:
                raise ToolResolutionError(
                    f"Release archive '{url}' does not contain "
                    f"'{self.executable_name}'."
                )
            executable = matches[0]

        # Zip archives built without Unix metadata lose the executable bit.
        if not self.platform.is_windows:
            mode = executable.stat().st_mode
            executable.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

        return executable.parent
