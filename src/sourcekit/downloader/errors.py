"""Errors raised by the source downloader."""

from __future__ import annotations

from sourcekit.errors import SourceKitError, collect_messages
from sourcekit.model import PackageIdentity

__all__ = ["AcquisitionError"]


def _indent(text: str) -> str:
    return "\n".join(f"    {line}" for line in text.splitlines())


class AcquisitionError(SourceKitError):
    """Raised when neither VCS nor source artifact produced the sources.

    The message reports both failures. ``__cause__`` is the artifact
    failure when there is one; the VCS failure is chained below it unless
    the artifact failure already has a cause of its own.
    """

    def __init__(
        self,
        package_id: PackageIdentity,
        *,
        vcs_error: BaseException | None = None,
        artifact_error: BaseException | None = None,
    ) -> None:
        self.package_id = package_id
        self.vcs_error = vcs_error
        self.artifact_error = artifact_error
        super().__init__(self._compose_message())

        if (
            artifact_error is not None
            and vcs_error is not None
            and artifact_error.__cause__ is None
            and artifact_error is not vcs_error
        ):
            artifact_error.__cause__ = vcs_error
        self.__cause__ = artifact_error or vcs_error

    def _compose_message(self) -> str:
        if self.vcs_error is None and self.artifact_error is None:
            return (
                f"Package '{self.package_id}' has no VCS URL and no source "
                "artifact URL."
            )

        lines = [f"Download of package '{self.package_id}' failed."]
        if self.vcs_error is not None:
            lines.append("VCS download failed:")
            lines.append(_indent(collect_messages(self.vcs_error)))
        if self.artifact_error is not None:
            lines.append("Source artifact download failed:")
            lines.append(_indent(collect_messages(self.artifact_error)))
        else:
            lines.append("No source artifact URL is available as a fallback.")
        return "\n".join(lines)
