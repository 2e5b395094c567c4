"""Run command handler."""

from __future__ import annotations

from rich.console import Console

from tspec import batch, report
from tspec.build import run_package
from tspec.paths import find_spec

from ..utils import load_config, project_root_for, select_package
from .build import batch_options, needs_batch, print_empty, workspace_for

__all__ = ["run_run_command"]


def run_run_command(args) -> int:
    """Handle run command.

    For one package the binary's own exit code is returned. In batch mode
    each exit code is reported and only build failures fail the batch.
    """
    config = load_config(args)
    root = project_root_for(args)
    selection = select_package(args, root)
    options = batch_options(args, config)
    console = Console()

    if selection is None or needs_batch(options.patterns):
        workspace = workspace_for(root, selection, config)
        results = batch.run_all(workspace, options, config, console)
        if not results:
            print_empty(console, options, config, "Nothing to run")
            return 0
        report.print_run_summary(results, console)
        return report.exit_code(results)

    explicit = options.patterns[0] if options.patterns else None
    spec_path = find_spec(selection.directory, explicit, config)
    outcome = run_package(
        root,
        selection.name,
        selection.directory,
        spec_path,
        config=config,
        release=options.release,
        strip=options.strip,
        run_args=options.run_args,
    )
    return outcome.exit_code
