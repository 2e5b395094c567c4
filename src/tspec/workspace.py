"""
Workspace members and their classification.

Members come from ``cargo metadata --no-deps``. Each one is classified by
its name and its location relative to the project root; the batch engine
picks members through the buildable / runnable / test views.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any, Optional, Sequence

from .config import Config
from .exceptions import PathNotFoundError
from . import toolchain

__all__ = ["MemberKind", "Member", "WorkspaceInfo", "classify_member"]

logger = logging.getLogger(__name__)


class MemberKind(str, Enum):
    """Member classification."""

    APP = "app"
    LIB = "lib"
    TOOL = "tool"
    TEST = "test"
    BUILD_TOOL = "build-tool"


@dataclass
class Member:
    """A package inside the project tree."""

    name: str
    directory: Path
    has_binary: bool
    kind: MemberKind


def _segments(directory: Path, root: Path) -> PurePosixPath:
    try:
        return PurePosixPath(directory.relative_to(root).as_posix())
    except ValueError:
        return PurePosixPath(directory.as_posix())


def classify_member(
    name: str,
    directory: Path,
    root: Path,
    single_member: bool = False,
    build_tools: Sequence[str] = ("tspec", "xt", "xtask"),
) -> MemberKind:
    """First matching rule wins.

    1. only member -> app
    2. member at the project root -> app
    3. configured build-tool name -> build-tool
    4. a ``tests`` path segment, or a name ending in ``-tests`` -> test
    5-7. an ``apps``, ``libs`` or ``tools`` path segment -> app, lib, tool
    8. otherwise lib
    """
    if single_member:
        return MemberKind.APP
    if directory == root:
        return MemberKind.APP
    if name in build_tools:
        return MemberKind.BUILD_TOOL

    parts = _segments(directory, root).parts
    if "tests" in parts or name.endswith("-tests"):
        return MemberKind.TEST
    if "apps" in parts:
        return MemberKind.APP
    if "libs" in parts:
        return MemberKind.LIB
    if "tools" in parts:
        return MemberKind.TOOL
    return MemberKind.LIB


@dataclass
class WorkspaceInfo:
    """Project root plus its classified members, in metadata order."""

    root: Path
    members: list[Member] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.root.name

    @classmethod
    def from_metadata(
        cls,
        metadata: dict[str, Any],
        root: Optional[Path] = None,
        build_tools: Sequence[str] = ("tspec", "xt", "xtask"),
    ) -> "WorkspaceInfo":
        """Build from parsed ``cargo metadata`` JSON."""
        root = Path(metadata.get("workspace_root") or root or ".")
        member_ids = set(metadata.get("workspace_members") or [])
        packages = [
            p for p in metadata.get("packages", []) if not member_ids or p.get("id") in member_ids
        ]
        single = len(packages) == 1

        members = []
        for package in packages:
            directory = Path(package["manifest_path"]).parent
            has_binary = any(
                "bin" in target.get("kind", []) for target in package.get("targets", [])
            )
            kind = classify_member(package["name"], directory, root, single, build_tools)
            members.append(Member(package["name"], directory, has_binary, kind))
            logger.debug("Member %s (%s) at %s", package["name"], kind.value, directory)
        return cls(root=root, members=members)

    @classmethod
    def discover(cls, project_root: Path, config: Optional[Config] = None) -> "WorkspaceInfo":
        config = config or Config()
        metadata = toolchain.cargo_metadata(project_root, config)
        return cls.from_metadata(metadata, project_root, config.workspace.build_tools)

    def buildable_members(self) -> list[Member]:
        return [m for m in self.members if m.kind is not MemberKind.BUILD_TOOL]

    def runnable_members(self) -> list[Member]:
        return [m for m in self.members if m.has_binary and m.kind is MemberKind.APP]

    def test_members(self) -> list[Member]:
        return [m for m in self.members if m.kind is MemberKind.TEST]

    def find_member(self, name: str) -> Member:
        for member in self.members:
            if member.name == name:
                return member
        raise PathNotFoundError(f"package '{name}' is not a workspace member", self.root)
