"""Test command handler."""

from __future__ import annotations

from rich.console import Console

from tspec import batch, build, report
from tspec.paths import find_spec

from ..utils import load_config, project_root_for, select_package
from .build import batch_options, needs_batch, print_empty, workspace_for

__all__ = ["run_test_command"]


def run_test_command(args) -> int:
    """Handle test command."""
    config = load_config(args)
    root = project_root_for(args)
    selection = select_package(args, root)
    options = batch_options(args, config)
    console = Console()

    if selection is None or needs_batch(options.patterns):
        workspace = workspace_for(root, selection, config)
        results = batch.test_all(workspace, options, config, console)
        if not results:
            print_empty(console, options, config, "Nothing to test")
            return 0
        report.print_test_summary(results, console)
        return report.exit_code(results)

    explicit = options.patterns[0] if options.patterns else None
    spec_path = find_spec(selection.directory, explicit, config)
    outcome = build.test_package(
        root,
        selection.name,
        selection.directory,
        spec_path,
        config=config,
        release=options.release,
        test_args=options.test_args,
    )

    if outcome.counts is not None:
        style = "green" if outcome.success else "red"
        console.print(f"[{style}]{selection.name}:[/{style}] {outcome.counts.summary()}")
    if not outcome.success:
        console.print(f"[red]cargo test exited with code {outcome.return_code}[/red]")
        return 1
    return 0
