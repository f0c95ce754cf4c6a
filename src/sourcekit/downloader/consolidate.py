"""Group projects that live in the same VCS working tree."""

from __future__ import annotations

from typing import Iterable

from sourcekit.model import Package, Project, VcsInfo
from sourcekit.vcs import GIT_REPO_TYPE

__all__ = ["consolidate_projects", "working_tree_key"]


def working_tree_key(vcs: VcsInfo) -> VcsInfo:
    """Return the pointer identifying the working tree behind ``vcs``.

    The path is dropped unless it names a manifest file.

    Example:
        >>> working_tree_key(VcsInfo(type="Git", url="u", path="sub")).path
        ''
        >>> working_tree_key(VcsInfo(type="GitRepo", url="u", path="a.xml")).path
        'a.xml'
    """

    pointer = vcs.pointer()
    if pointer.type == GIT_REPO_TYPE or not pointer.path:
        return pointer
    return pointer.model_copy(update={"path": ""})


def consolidate_projects(
    projects: Iterable[Project],
) -> dict[Package, list[Package]]:
    """Map one reference package per working tree to the packages sharing it.

    The reference is the first member whose processed path is empty, else
    the first member; it carries the shared pointer. The other members take
    the shared type, URL and revision but keep their own path.
    """

    groups: dict[VcsInfo, list[Package]] = {}
    for project in sorted(projects, key=lambda item: item.id):
        package = project.to_package()
        groups.setdefault(working_tree_key(package.vcs_processed), []).append(package)

    consolidated: dict[Package, list[Package]] = {}
    for key, members in groups.items():
        reference_index = next(
            (
                index
                for index, member in enumerate(members)
                if not member.vcs_processed.path
            ),
            0,
        )
        reference = members[reference_index].model_copy(
            update={"vcs_processed": key}
        )
        others = [
            member.model_copy(
                update={
                    "vcs_processed": member.vcs_processed.model_copy(
                        update={
                            "type": key.type,
                            "url": key.url,
                            "revision": key.revision,
                        }
                    )
                }
            )
            for index, member in enumerate(members)
            if index != reference_index
        ]
        consolidated[reference] = others

    return consolidated
