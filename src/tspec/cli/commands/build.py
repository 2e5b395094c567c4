"""Build and compare command handlers."""

from __future__ import annotations

from typing import Optional

from rich.console import Console

from tspec import batch, report
from tspec.batch import BatchOptions, BatchResult
from tspec.build import build_package
from tspec.config import Config
from tspec.paths import find_spec, is_glob, normalize_patterns
from tspec.spec.parser import spec_name_from_path
from tspec.workspace import WorkspaceInfo

from ..utils import (
    PackageSelection,
    load_config,
    project_root_for,
    select_package,
    single_member_workspace,
)

__all__ = [
    "run_build_command",
    "run_compare_command",
    "needs_batch",
    "batch_options",
    "workspace_for",
    "print_empty",
]


def needs_batch(patterns: list[str]) -> bool:
    """Several patterns or a glob go through the batch engine even for one package."""
    return len(patterns) > 1 or any(is_glob(p) for p in patterns)


def batch_options(args, config: Config) -> BatchOptions:
    return BatchOptions(
        patterns=list(getattr(args, "tspec", None) or []),
        release=getattr(args, "release", False) or config.defaults.release,
        strip=getattr(args, "strip", False),
        fail_fast=getattr(args, "fail_fast", False) or config.defaults.fail_fast,
        quiet=getattr(args, "quiet", False),
        test_args=list(getattr(args, "test_args", None) or []),
        run_args=list(getattr(args, "run_args", None) or []),
    )


def workspace_for(project_root, selection: Optional[PackageSelection], config: Config) -> WorkspaceInfo:
    if selection is not None:
        return single_member_workspace(project_root, selection)
    return WorkspaceInfo.discover(project_root, config)


def print_empty(
    console: Console, options: BatchOptions, config: Config, nothing: str = "Nothing to do"
) -> None:
    """Explain an empty batch; silent when the shell-expansion warning was shown."""
    if not options.patterns:
        console.print(nothing)
    elif not normalize_patterns(options.patterns, config.spec.suffix).likely_shell_expansion:
        console.print(f"No spec matches {', '.join(options.patterns)}")


def run_build_command(args) -> int:
    """Handle build command."""
    config = load_config(args)
    root = project_root_for(args)
    selection = select_package(args, root)
    options = batch_options(args, config)
    console = Console()

    if selection is None or needs_batch(options.patterns):
        workspace = workspace_for(root, selection, config)
        results = batch.build_all(workspace, options, config, console)
        if not results:
            print_empty(console, options, config)
            return 0
        report.print_build_summary(results, console)
        return report.exit_code(results)

    explicit = options.patterns[0] if options.patterns else None
    spec_path = find_spec(selection.directory, explicit, config)
    outcome = build_package(
        root,
        selection.name,
        selection.directory,
        spec_path,
        config=config,
        release=options.release,
        strip=options.strip,
    )

    label = f" ({spec_name_from_path(spec_path, config.spec.suffix)})" if spec_path else ""
    if outcome.binary is not None:
        console.print(
            f"[green]Built[/green] {selection.name}{label}: {outcome.binary} "
            f"({report.format_size(outcome.size or 0)})"
        )
    else:
        console.print(f"[green]Built[/green] {selection.name}{label}")
    return 0


def run_compare_command(args) -> int:
    """Handle compare command."""
    config = load_config(args)
    root = project_root_for(args)
    selection = select_package(args, root)
    options = batch_options(args, config)
    console = Console()

    workspace = workspace_for(root, selection, config)
    results: list[BatchResult] = batch.compare_all(workspace, options, config, console)
    if not results:
        print_empty(console, options, config)
        return 0
    report.print_compare_summary(results, console)
    return report.exit_code(results)
