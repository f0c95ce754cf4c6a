"""Git backend driven by the ``git`` command line tool."""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlsplit

from sourcekit.core.logging import Logger, get_logger
from sourcekit.model import Package
from sourcekit.tools import CommandLineTool, ProcessCapture, ToolError

from .errors import CheckoutError

__all__ = ["Git", "GitCommand", "GitWorkingTree"]

_COMMIT_ID = re.compile(r"^[0-9a-f]{7,40}$")
_GIT_HOSTS = frozenset({"github.com", "gitlab.com", "bitbucket.org"})

# Never block on credential prompts for private or missing repositories.
_GIT_ENV = {"GIT_TERMINAL_PROMPT": "0"}


class GitCommand(CommandLineTool):
    """The ``git`` executable."""

    name = "git"
    executable = "git"
    version_arguments = ("--version",)
    required_version_range = ">=2.0.0"

    def transform_version(self, output: str) -> str:
        # "git version 2.39.2 (Apple Git-143)" or "git version 2.45.1.windows.1"
        return output.removeprefix("git version").strip().split(" ")[0]


@dataclass(slots=True)
class GitWorkingTree:
    """A git checkout rooted at ``root``."""

    root: Path
    git: GitCommand
    vcs_type: str = "Git"

    def _run(self, *args: str) -> str:
        try:
            capture = self.git.run(*args, working_dir=self.root, env=_GIT_ENV)
        except ToolError as exc:
            raise CheckoutError(f"Running git in '{self.root}' failed: {exc}") from exc
        if not capture.is_success:
            raise CheckoutError(capture.error_message)
        return capture.stdout.strip()

    def get_revision(self) -> str:
        return self._run("rev-parse", "HEAD")

    def get_remote_url(self) -> str:
        return self._run("remote", "get-url", "origin")


@dataclass(slots=True)
class _RemoteRefs:
    heads: set[str] = field(default_factory=set)
    tags: set[str] = field(default_factory=set)


class Git:
    """Version control backend for git repositories."""

    type = "Git"
    aliases: tuple[str, ...] = ("git",)

    def __init__(
        self,
        git: GitCommand | None = None,
        *,
        cancel_event: threading.Event | None = None,
        logger: Logger | None = None,
    ) -> None:
        self.git = git or GitCommand()
        self.cancel_event = cancel_event
        self._logger = logger or get_logger(__name__, component="vcs", vcs="git")

    def claims_type(self, name: str) -> bool:
        normalized = name.strip().lower()
        return normalized == self.type.lower() or normalized in self.aliases

    def claims_url(self, url: str) -> bool:
        """Recognize common git URL spellings.

        Example:
            >>> backend = Git()
            >>> backend.claims_url("https://example.org/project.git")
            True
            >>> backend.claims_url("https://github.com/org/repo")
            True
            >>> backend.claims_url("https://example.org/archive.zip")
            False
        """

        candidate = url.strip()
        lowered = candidate.lower()
        if not lowered:
            return False
        if lowered.startswith(("git://", "git+")):
            return True
        if lowered.rstrip("/").endswith(".git"):
            return True
        host = (urlsplit(candidate).hostname or "").lower()
        return host in _GIT_HOSTS

    def _git(self, work_dir: Path, *args: str) -> ProcessCapture:
        try:
            return self.git.run(
                *args,
                working_dir=work_dir,
                env=_GIT_ENV,
                cancel_event=self.cancel_event,
            )
        except ToolError as exc:
            raise CheckoutError(f"Running 'git {' '.join(args)}' failed: {exc}") from exc

    def _git_checked(self, work_dir: Path, *args: str) -> str:
        capture = self._git(work_dir, *args)
        if not capture.is_success:
            raise CheckoutError(capture.error_message)
        return capture.stdout

    def _list_remote_refs(self, work_dir: Path) -> _RemoteRefs:
        refs = _RemoteRefs()
        output = self._git_checked(work_dir, "ls-remote", "origin")
        for line in output.splitlines():
            _, _, ref = line.partition("\t")
            if ref.startswith("refs/heads/"):
                refs.heads.add(ref.removeprefix("refs/heads/"))
            elif ref.startswith("refs/tags/"):
                refs.tags.add(ref.removeprefix("refs/tags/").removesuffix("^{}"))
        return refs

    def _configure_sparse_checkout(self, work_dir: Path, path: str) -> None:
        self._git_checked(work_dir, "config", "core.sparseCheckout", "true")
        sparse_file = work_dir / ".git" / "info" / "sparse-checkout"
        try:
            sparse_file.parent.mkdir(parents=True, exist_ok=True)
            sparse_file.write_text(f"/{path.strip('/')}\n", encoding="utf-8")
        except OSError as exc:
            raise CheckoutError(
                f"Writing the sparse checkout of '{path}' failed: {exc}"
            ) from exc

    def _fetch_and_checkout(self, work_dir: Path, revision: str) -> None:
        fetch_ref = revision or "HEAD"
        shallow = self._git(work_dir, "fetch", "--depth", "1", "origin", fetch_ref)
        if shallow.is_success:
            self._git_checked(work_dir, "checkout", "--force", "FETCH_HEAD")
            return

        self._logger.info(
            "git-shallow-fetch-failed",
            revision=revision,
            error=shallow.stderr.strip(),
        )
        self._git_checked(work_dir, "fetch", "--tags", "origin")
        for candidate in (revision, f"origin/{revision}"):
            found = self._git(
                work_dir,
                "rev-parse",
                "--verify",
                "--quiet",
                f"{candidate}^{{commit}}",
            )
            if found.is_success:
                self._git_checked(
                    work_dir,
                    "checkout",
                    "--force",
                    found.stdout.strip(),
                )
                return
        raise CheckoutError(
            f"Revision '{revision}' was not found in the fetched repository."
        )

    def download(
        self,
        package: Package,
        target_dir: Path,
        *,
        allow_moving_revisions: bool = False,
    ) -> GitWorkingTree:
        """Check out the package's processed VCS pointer into ``target_dir``.

        Raises:
            CheckoutError: If the revision is moving but moving revisions are
                not allowed, or if any git operation fails.
        """

        vcs = package.vcs_processed
        revision = vcs.revision.strip()

        if not revision and not allow_moving_revisions:
            raise CheckoutError(
                f"No revision given for '{vcs.url}'; refusing to check out "
                "the moving default branch."
            )

        try:
            target_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CheckoutError(
                f"Cannot create checkout directory {target_dir}: {exc}"
            ) from exc
        self._logger.info(
            "git-download-start",
            package=str(package.id),
            url=vcs.url,
            revision=revision,
            path=vcs.path,
        )

        self._git_checked(target_dir, "init", "--quiet")
        self._git_checked(target_dir, "remote", "add", "origin", vcs.url)

        if revision and not _COMMIT_ID.match(revision):
            refs = self._list_remote_refs(target_dir)
            is_branch = revision in refs.heads and revision not in refs.tags
            if is_branch and not allow_moving_revisions:
                raise CheckoutError(
                    f"Revision '{revision}' of '{vcs.url}' is a branch, which "
                    "is a moving revision."
                )

        if vcs.path:
            self._configure_sparse_checkout(target_dir, vcs.path)

        self._fetch_and_checkout(target_dir, revision)

        tree = GitWorkingTree(root=target_dir, git=self.git, vcs_type=self.type)
        self._logger.info(
            "git-download-complete",
            package=str(package.id),
            resolved_revision=tree.get_revision(),
        )
        return tree
