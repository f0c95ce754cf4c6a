"""Extraction of zip and tar based source archives."""

from __future__ import annotations

import os
import shutil
import tarfile
import tempfile
import zipfile
from pathlib import Path

from sourcekit.core.logging import get_logger

from .errors import UnpackError

__all__ = [
    "ArchiveKind",
    "GEM_DATA_ARCHIVE",
    "archive_kind",
    "is_nested_archive",
    "unpack",
    "unpack_gem",
]

ArchiveKind = str

GEM_DATA_ARCHIVE = "data.tar.gz"

_SUFFIX_KINDS: tuple[tuple[str, ArchiveKind], ...] = (
    (".tar.gz", "tar"),
    (".tar.bz2", "tar"),
    (".tar.xz", "tar"),
    (".tgz", "tar"),
    (".tbz2", "tar"),
    (".tbz", "tar"),
    (".txz", "tar"),
    (".crate", "tar"),
    (".tar", "tar"),
    (".gem", "gem"),
    (".zip", "zip"),
    (".jar", "zip"),
    (".war", "zip"),
    (".whl", "zip"),
    (".nupkg", "zip"),
)

_logger = get_logger(__name__, component="unpack")


def archive_kind(path: Path | str) -> ArchiveKind | None:
    """Return ``"zip"``, ``"tar"`` or ``"gem"`` for a file name, else ``None``.

    Example:
        >>> archive_kind("lib-1.0.TAR.GZ")
        'tar'
        >>> archive_kind("lc-1.3.1-x86_64-unknown-linux.zip")
        'zip'
        >>> archive_kind("README.md") is None
        True
    """

    name = Path(path).name.lower()
    for suffix, kind in _SUFFIX_KINDS:
        if name.endswith(suffix):
            return kind
    return None


def is_nested_archive(path: Path | str) -> bool:
    """Return ``True`` for formats wrapping the payload in an inner archive."""

    return archive_kind(path) == "gem"


def _safe_destination(root: Path, member_name: str) -> Path | None:
    normalized = member_name.replace("\\", "/").lstrip("/")
    parts = [part for part in normalized.split("/") if part not in ("", ".")]
    if not parts:
        return None
    destination = root.joinpath(*parts)
    resolved = destination.resolve(strict=False)
    if not resolved.is_relative_to(root.resolve(strict=False)):
        raise UnpackError(f"Archive member escapes target directory: {member_name}")
    return destination


def _unpack_zip(archive: Path, target_dir: Path) -> None:
    with zipfile.ZipFile(archive) as zf:
        for member in zf.infolist():
            destination = _safe_destination(target_dir, member.filename)
            if destination is None:
                continue
            if member.is_dir():
                destination.mkdir(parents=True, exist_ok=True)
                continue
            destination.parent.mkdir(parents=True, exist_ok=True)
            with zf.open(member, "r") as src, destination.open("wb") as dst:
                shutil.copyfileobj(src, dst)

            # Zips built on Windows carry no Unix mode bits.
            mode = (member.external_attr >> 16) & 0o777
            if mode:
                os.chmod(destination, mode)


def _unpack_tar(archive: Path, target_dir: Path) -> None:
    with tarfile.open(archive, mode="r:*") as tf:
        for member in tf:
            destination = _safe_destination(target_dir, member.name)
            if destination is None:
                continue
            if member.isdir():
                destination.mkdir(parents=True, exist_ok=True)
                continue
            if not member.isfile():
                _logger.debug(
                    "unpack-skip-member",
                    archive=str(archive),
                    member=member.name,
                )
                continue
            source = tf.extractfile(member)
            if source is None:  # pragma: no cover - regular files always have data
                continue
            destination.parent.mkdir(parents=True, exist_ok=True)
            with source, destination.open("wb") as dst:
                shutil.copyfileobj(source, dst)
            mode = member.mode & 0o777
            if mode:
                os.chmod(destination, mode | 0o200)


def unpack_gem(gem: Path, target_dir: Path) -> None:
    """Unpack the inner ``data.tar.gz`` of a Ruby gem into ``target_dir``."""

    scratch = Path(tempfile.mkdtemp(prefix="sourcekit-gem-"))
    try:
        _unpack_tar(gem, scratch)
        data_archive = scratch / GEM_DATA_ARCHIVE
        if not data_archive.is_file():
            raise UnpackError(f"Gem '{gem.name}' has no {GEM_DATA_ARCHIVE}.")
        _unpack_tar(data_archive, target_dir)
    finally:
        try:
            shutil.rmtree(scratch)
        except OSError as exc:
            _logger.warning(
                "unpack-cleanup-failed",
                path=str(scratch),
                error=str(exc),
            )


def unpack(archive: Path, target_dir: Path) -> None:
    """Extract ``archive`` into ``target_dir`` based on its file name.

    Raises:
        UnpackError: If the archive is unsupported, corrupt or unsafe.
    """

    kind = archive_kind(archive)
    if kind is None:
        raise UnpackError(f"Unsupported archive format: '{archive.name}'.")

    target_dir.mkdir(parents=True, exist_ok=True)
    _logger.debug(
        "unpack-start",
        archive=str(archive),
        target=str(target_dir),
        kind=kind,
    )

    try:
        if kind == "zip":
            _unpack_zip(archive, target_dir)
        elif kind == "gem":
            unpack_gem(archive, target_dir)
        else:
            _unpack_tar(archive, target_dir)
    except UnpackError:
        raise
    except (zipfile.BadZipFile, tarfile.TarError, EOFError, OSError) as exc:
        raise UnpackError(
            f"Could not unpack '{archive.name}': {exc}"
        ) from exc
