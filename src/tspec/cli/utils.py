"""Shared utilities for CLI commands."""

from __future__ import annotations

import sys
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from tspec.config import Config
from tspec.exceptions import TspecError
from tspec.paths import (
    current_package_dir,
    find_package_dir,
    find_project_root,
    get_package_name,
    resolve_manifest_path,
)
from tspec.workspace import Member, MemberKind, WorkspaceInfo

if TYPE_CHECKING:
    from rich.console import Console

__all__ = [
    "format_error",
    "print_error",
    "get_error_console",
    "load_config",
    "project_root_for",
    "PackageSelection",
    "select_package",
    "single_member_workspace",
]

# Module-level console for error output, created lazily
_error_console: Console | None = None


def get_error_console() -> Console:
    """Get or create the Rich console for error output.

    The console writes to stderr and is cached for reuse.
    """
    global _error_console
    if _error_console is None:
        from rich.console import Console

        _error_console = Console(stderr=True, force_terminal=None)
    return _error_console


def print_error(
    e: Exception,
    verbose: bool = False,
    use_rich: bool | None = None,
) -> None:
    """
    Print an exception with Rich formatting when available.

    Uses Rich console for error output on TTY terminals, falls back to
    plain text for non-TTY (pipes, CI logs).

    Args:
        e: The exception to print
        verbose: If True, include full stack trace
        use_rich: Override automatic TTY detection (None = auto-detect)
    """
    console = get_error_console()

    if use_rich is None:
        use_rich = console.is_terminal

    if verbose:
        print(traceback.format_exc(), file=sys.stderr)
        return

    if use_rich and isinstance(e, TspecError):
        console.print(e)
    else:
        print(format_error(e), file=sys.stderr)


def format_error(e: Exception, verbose: bool = False) -> str:
    """
    Format an exception for user-friendly display (plain text).

    Args:
        e: The exception to format
        verbose: If True, include full stack trace
    """
    if verbose:
        return traceback.format_exc()

    if isinstance(e, TspecError):
        return f"Error: {e}"

    return f"Error: {type(e).__name__}: {e}"


def load_config(args) -> Config:
    """Config loaded by ``main``, or a fresh load for direct handler calls."""
    config = getattr(args, "config", None)
    if config is None:
        config = Config.load()
        args.config = config
    return config


def project_root_for(args) -> Path:
    manifest_path = getattr(args, "manifest_path", None)
    if manifest_path:
        return resolve_manifest_path(Path(manifest_path))
    return find_project_root(Path.cwd())


@dataclass
class PackageSelection:
    """One package picked from the command line or the current directory."""

    name: str
    directory: Path


def select_package(args, project_root: Path) -> Optional[PackageSelection]:
    """``--all`` > ``-p`` > package containing the cwd > None (every member)."""
    if getattr(args, "all_packages", False):
        return None

    package = getattr(args, "package", None)
    if package:
        directory = find_package_dir(project_root, package)
        return PackageSelection(get_package_name(directory) or package, directory)

    directory = current_package_dir(Path.cwd(), project_root)
    if directory is None:
        return None
    return PackageSelection(get_package_name(directory) or directory.name, directory)


def single_member_workspace(project_root: Path, selection: PackageSelection) -> WorkspaceInfo:
    """Workspace view holding just the selected package, without running cargo metadata."""
    member = Member(selection.name, selection.directory, has_binary=True, kind=MemberKind.APP)
    return WorkspaceInfo(root=project_root, members=[member])
