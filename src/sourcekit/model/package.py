"""Package, project and pointer models consumed by the downloader."""

from __future__ import annotations

import re
from enum import StrEnum
from pathlib import Path
from typing import Any
from urllib.parse import quote

from pydantic import BaseModel, Field, field_validator, model_validator

__all__ = [
    "AnalyzerResult",
    "EMPTY_REMOTE_ARTIFACT",
    "EMPTY_VCS_INFO",
    "HashAlgorithm",
    "Package",
    "PackageIdentity",
    "Project",
    "RemoteArtifact",
    "VcsInfo",
]


class HashAlgorithm(StrEnum):
    """Digest algorithms a source artifact checksum may be declared with."""

    MD2 = "MD2"
    MD5 = "MD5"
    SHA1 = "SHA1"
    SHA256 = "SHA256"
    SHA384 = "SHA384"
    SHA512 = "SHA512"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_string(cls, raw: str | None) -> "HashAlgorithm":
        """Parse ``raw`` leniently, e.g. ``"sha-256"`` or ``"Sha1"``.

        Example:
            >>> HashAlgorithm.from_string("sha-256")
            <HashAlgorithm.SHA256: 'SHA256'>
            >>> HashAlgorithm.from_string("crc32")
            <HashAlgorithm.UNKNOWN: 'UNKNOWN'>
        """

        if not raw:
            return cls.UNKNOWN
        normalized = re.sub(r"[-_\s]", "", raw).upper()
        try:
            return cls(normalized)
        except ValueError:
            return cls.UNKNOWN

    @property
    def hashlib_name(self) -> str | None:
        """Return the :mod:`hashlib` constructor name, if any."""

        if self is HashAlgorithm.UNKNOWN:
            return None
        return self.value.lower()


_UNKNOWN_COMPONENT = "unknown"


def _encode_component(component: str) -> str:
    if not component:
        return _UNKNOWN_COMPONENT
    encoded = quote(component, safe="")
    if encoded in {".", ".."}:
        encoded = encoded.replace(".", "%2E")
    return encoded


class PackageIdentity(BaseModel):
    """Immutable identity of a package (or project) version.

    Example:
        >>> ident = PackageIdentity(type="npm", namespace="@babel", name="core", version="7.0.0")
        >>> str(ident)
        'npm:@babel:core:7.0.0'
        >>> ident.to_path()
        'npm/%40babel/core/7.0.0'
    """

    type: str = ""
    namespace: str = ""
    name: str = ""
    version: str = ""

    model_config = {"frozen": True, "str_strip_whitespace": True}

    @model_validator(mode="before")
    @classmethod
    def _coerce_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            return cls.parse(value).model_dump()
        return value

    @classmethod
    def parse(cls, raw: str) -> "PackageIdentity":
        """Parse the ``type:namespace:name:version`` notation."""

        parts = raw.strip().split(":", 3)
        parts += [""] * (4 - len(parts))
        return cls(
            type=parts[0],
            namespace=parts[1],
            name=parts[2],
            version=parts[3],
        )

    def components(self) -> tuple[str, str, str, str]:
        return (self.type, self.namespace, self.name, self.version)

    def to_path(self) -> str:
        """Return a deterministic relative filesystem path for this identity."""

        return "/".join(_encode_component(part) for part in self.components())

    def __str__(self) -> str:
        return ":".join(self.components())

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, PackageIdentity):
            return NotImplemented
        return self.components() < other.components()


_SCP_LIKE_URL = re.compile(r"^(?P<user>[\w.-]+)@(?P<host>[\w.-]+):(?P<path>[^/].*)$")
_VCS_SCHEME_PREFIX = re.compile(r"^(?P<type>git|hg|svn)\+(?=[a-z]+://)")


class VcsInfo(BaseModel):
    """A pointer into a version control system.

    ``path`` is a sub-directory to check out for most VCS types; for the
    manifest-based ``GitRepo`` type it names the manifest file instead.
    ``resolved_revision`` is only filled in after a checkout.
    """

    type: str = ""
    url: str = ""
    revision: str = ""
    resolved_revision: str | None = None
    path: str = ""

    model_config = {"frozen": True, "str_strip_whitespace": True}

    @property
    def is_empty(self) -> bool:
        return not (self.type or self.url or self.revision or self.path)

    def pointer(self) -> "VcsInfo":
        """Return the requestable pointer without the resolved revision."""

        if self.resolved_revision is None:
            return self
        return self.model_copy(update={"resolved_revision": None})

    def same_pointer(self, other: "VcsInfo") -> bool:
        """Compare type, URL, revision and path; ignore resolution state."""

        return self.pointer() == other.pointer()

    def normalize(self) -> "VcsInfo":
        """Return a copy with common URL spellings canonicalized.

        Example:
            >>> VcsInfo(url="git@github.com:org/repo.git").normalize().url
            'https://github.com/org/repo.git'
            >>> VcsInfo(url="git+https://host/x.git").normalize().type
            'git'
        """

        vcs_type = self.type
        url = self.url.rstrip("/")

        prefix = _VCS_SCHEME_PREFIX.match(url)
        if prefix is not None:
            url = url[prefix.end():]
            vcs_type = vcs_type or prefix.group("type")

        scp = _SCP_LIKE_URL.match(url)
        if scp is not None and "://" not in url:
            url = f"https://{scp.group('host')}/{scp.group('path')}"

        if url.startswith("git://github.com/"):
            url = "https://" + url[len("git://"):]

        path = self.path.strip("/")
        if (vcs_type, url, path) == (self.type, self.url, self.path):
            return self
        return self.model_copy(update={"type": vcs_type, "url": url, "path": path})


EMPTY_VCS_INFO = VcsInfo()


class RemoteArtifact(BaseModel):
    """A downloadable source archive and its declared checksum."""

    url: str = ""
    hash: str = ""
    hash_algorithm: HashAlgorithm = HashAlgorithm.UNKNOWN

    model_config = {"frozen": True, "str_strip_whitespace": True}

    @field_validator("hash_algorithm", mode="before")
    @classmethod
    def _parse_algorithm(cls, value: Any) -> Any:
        if isinstance(value, str):
            return HashAlgorithm.from_string(value)
        return value

    @field_validator("hash")
    @classmethod
    def _lowercase_hash(cls, value: str) -> str:
        return value.lower()

    @property
    def file_name(self) -> str:
        """Return the last URL path segment, query stripped."""

        tail = self.url.split("?", 1)[0].rstrip("/")
        return tail.rsplit("/", 1)[-1]


EMPTY_REMOTE_ARTIFACT = RemoteArtifact()


def _fill_processed_vcs(value: Any) -> Any:
    if not isinstance(value, dict) or value.get("vcs_processed") is not None:
        return value
    data = dict(value)
    declared = data.get("vcs") or EMPTY_VCS_INFO
    if not isinstance(declared, VcsInfo):
        declared = VcsInfo.model_validate(declared)
    data["vcs_processed"] = declared.normalize()
    return data


class Package(BaseModel):
    """A package whose sources can be acquired from VCS or an archive.

    ``vcs`` is the pointer as declared by the package metadata;
    ``vcs_processed`` is what the downloader actually uses and defaults to
    the normalized declared pointer.
    """

    id: PackageIdentity
    vcs: VcsInfo = Field(default=EMPTY_VCS_INFO)
    vcs_processed: VcsInfo = Field(default=EMPTY_VCS_INFO)
    source_artifact: RemoteArtifact = Field(default=EMPTY_REMOTE_ARTIFACT)

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def _default_processed(cls, value: Any) -> Any:
        return _fill_processed_vcs(value)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Package):
            return NotImplemented
        return self.id < other.id


class Project(BaseModel):
    """A project found by the analyzer, located by its definition file."""

    id: PackageIdentity
    definition_file_path: str = ""
    vcs: VcsInfo = Field(default=EMPTY_VCS_INFO)
    vcs_processed: VcsInfo = Field(default=EMPTY_VCS_INFO)
    homepage_url: str = ""

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def _default_processed(cls, value: Any) -> Any:
        return _fill_processed_vcs(value)

    def to_package(self) -> Package:
        """Return the package form used for downloading this project."""

        return Package(
            id=self.id,
            vcs=self.vcs,
            vcs_processed=self.vcs_processed,
        )


class AnalyzerResult(BaseModel):
    """Projects and packages handed over by the analyzer."""

    projects: tuple[Project, ...] = ()
    packages: tuple[Package, ...] = ()

    model_config = {"frozen": True}

    @classmethod
    def from_file(cls, path: Path) -> "AnalyzerResult":
        """Load an analyzer result from a JSON file."""

        return cls.model_validate_json(path.read_text(encoding="utf-8"))
