"""
Batch operations across workspace members.

For each eligible member the engine resolves the ``-t`` patterns to spec
files (or uses the member's default spec), runs the operation, and records
one BatchResult per (member, spec). Failures become rows; with fail-fast
the batch stops at the first failed row.

Members whose directory has no spec matching the given patterns are skipped
silently. If every pattern was dropped as a probable shell expansion, one
warning line is printed and the batch produces no rows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Sequence

from rich.console import Console

from . import build
from .build import CompareEntry
from .config import Config
from .exceptions import TspecError
from .paths import find_spec, normalize_patterns, resolve_patterns
from .spec.parser import spec_name_from_path
from .testing import TestCounts
from .workspace import Member, MemberKind, WorkspaceInfo

__all__ = [
    "BatchOptions",
    "BatchResult",
    "plan_batch",
    "build_all",
    "test_all",
    "run_all",
    "compare_all",
]

logger = logging.getLogger(__name__)


@dataclass
class BatchOptions:
    """Flags shared by every batch operation."""

    patterns: list[str] = field(default_factory=list)
    release: bool = False
    strip: bool = False
    fail_fast: bool = False
    quiet: bool = False
    test_args: list[str] = field(default_factory=list)
    run_args: list[str] = field(default_factory=list)


@dataclass
class BatchResult:
    """One row of a batch report."""

    name: str
    spec_label: Optional[str]
    success: bool
    message: str
    size: Optional[int] = None
    test_counts: Optional[TestCounts] = None
    compare: list[CompareEntry] = field(default_factory=list)


PlanEntry = tuple[Member, Optional[Path]]


def plan_batch(
    members: Sequence[Member],
    patterns: Sequence[str],
    config: Config,
    console: Optional[Console] = None,
) -> Optional[list[PlanEntry]]:
    """Pair each member with the spec files it should run with.

    Returns None when every pattern looked like a shell expansion (after
    printing the warning). Without patterns a member gets its default spec,
    or None for a plain build.
    """
    suffix = config.spec.suffix
    if not patterns:
        return [(member, find_spec(member.directory, None, config)) for member in members]

    normalized = normalize_patterns(patterns, suffix)
    if normalized.likely_shell_expansion:
        warning = normalized.warning()
        logger.debug("Shell expansion suspected: %s", normalized.dropped)
        (console or Console(stderr=True)).print(f"[yellow]warning:[/yellow] {warning}")
        return None

    plan: list[PlanEntry] = []
    for member in members:
        specs = resolve_patterns(member.directory, normalized.patterns, suffix)
        if not specs:
            logger.debug("No spec matches %s in %s", normalized.patterns, member.name)
            continue
        plan.extend((member, spec) for spec in specs)
    return plan


def _label(spec_path: Optional[Path], config: Config) -> Optional[str]:
    return spec_name_from_path(spec_path, config.spec.suffix) if spec_path is not None else None


def _error_message(error: TspecError) -> str:
    return error.message.splitlines()[0] if error.message else type(error).__name__


Operation = Callable[[Member, Optional[Path]], BatchResult]


def _execute(
    verb: str,
    plan: Optional[list[PlanEntry]],
    operation: Operation,
    options: BatchOptions,
    config: Config,
    console: Console,
) -> list[BatchResult]:
    results: list[BatchResult] = []
    for member, spec_path in plan or []:
        label = _label(spec_path, config)
        if not options.quiet:
            suffix = f" [dim]({label})[/dim]" if label else ""
            console.print(f"[bold cyan]{verb}[/bold cyan] {member.name}{suffix}")
        try:
            result = operation(member, spec_path)
        except TspecError as e:
            logger.debug("%s %s failed: %s", verb, member.name, e)
            result = BatchResult(member.name, label, False, _error_message(e))
        results.append(result)
        if not result.success and options.fail_fast:
            logger.debug("Stopping after first failure (fail-fast)")
            break
    return results


def build_all(
    workspace: WorkspaceInfo,
    options: BatchOptions,
    config: Optional[Config] = None,
    console: Optional[Console] = None,
) -> list[BatchResult]:
    """Build every buildable member."""
    config = config or Config()
    console = console or Console()

    def operation(member: Member, spec_path: Optional[Path]) -> BatchResult:
        outcome = build.build_package(
            workspace.root,
            member.name,
            member.directory,
            spec_path,
            config=config,
            release=options.release,
            strip=options.strip and member.has_binary,
            expect_binary=member.has_binary,
        )
        return BatchResult(member.name, _label(spec_path, config), True, "ok", size=outcome.size)

    plan = plan_batch(workspace.buildable_members(), options.patterns, config, console)
    return _execute("Building", plan, operation, options, config, console)


def test_all(
    workspace: WorkspaceInfo,
    options: BatchOptions,
    config: Optional[Config] = None,
    console: Optional[Console] = None,
) -> list[BatchResult]:
    """Test regular members first, then dedicated test members."""
    config = config or Config()
    console = console or Console()

    def operation(member: Member, spec_path: Optional[Path]) -> BatchResult:
        outcome = build.test_package(
            workspace.root,
            member.name,
            member.directory,
            spec_path,
            config=config,
            release=options.release,
            test_args=options.test_args,
        )
        if outcome.success:
            message = "ok"
        elif outcome.counts is not None and outcome.counts.failed:
            message = "FAILED"
        else:
            message = f"exit code: {outcome.return_code}"
        return BatchResult(
            member.name,
            _label(spec_path, config),
            outcome.success,
            message,
            test_counts=outcome.counts,
        )

    buildable = workspace.buildable_members()
    members = [m for m in buildable if m.kind is not MemberKind.TEST]
    members += [m for m in buildable if m.kind is MemberKind.TEST]
    plan = plan_batch(members, options.patterns, config, console)
    return _execute("Testing", plan, operation, options, config, console)


def run_all(
    workspace: WorkspaceInfo,
    options: BatchOptions,
    config: Optional[Config] = None,
    console: Optional[Console] = None,
) -> list[BatchResult]:
    """Build and run every runnable member.

    A program exiting non-zero is reported with its exit code but still
    counts as a successful row; only build and launch failures fail.
    """
    config = config or Config()
    console = console or Console()

    def operation(member: Member, spec_path: Optional[Path]) -> BatchResult:
        outcome = build.run_package(
            workspace.root,
            member.name,
            member.directory,
            spec_path,
            config=config,
            release=options.release,
            strip=options.strip,
            run_args=options.run_args,
        )
        return BatchResult(
            member.name,
            _label(spec_path, config),
            True,
            f"exit code: {outcome.exit_code}",
            size=outcome.build.size,
        )

    plan = plan_batch(workspace.runnable_members(), options.patterns, config, console)
    return _execute("Running", plan, operation, options, config, console)


def compare_all(
    workspace: WorkspaceInfo,
    options: BatchOptions,
    config: Optional[Config] = None,
    console: Optional[Console] = None,
) -> list[BatchResult]:
    """Size comparison per member: baselines plus every matching spec.

    Members without a binary target are skipped. Without patterns, all
    spec files in the member directory are compared.
    """
    config = config or Config()
    console = console or Console()
    suffix = config.spec.suffix

    members = [m for m in workspace.buildable_members() if m.has_binary]
    patterns = options.patterns or [f"*{suffix}"]
    plan = plan_batch(members, patterns, config, console)
    if plan is None:
        return []

    grouped: dict[str, tuple[Member, list[Path]]] = {}
    for member, spec_path in plan:
        entry = grouped.setdefault(member.name, (member, []))
        if spec_path is not None:
            entry[1].append(spec_path)
    if not options.patterns:
        # Members without any spec file still get their baselines.
        for member in members:
            grouped.setdefault(member.name, (member, []))
        grouped = {m.name: grouped[m.name] for m in members}

    results: list[BatchResult] = []
    for member, spec_paths in grouped.values():
        if not options.quiet:
            console.print(f"[bold cyan]Comparing[/bold cyan] {member.name}")
        try:
            entries = build.compare_package(
                workspace.root,
                member.name,
                member.directory,
                spec_paths,
                config=config,
                release=options.release,
                strip=options.strip,
            )
        except TspecError as e:
            results.append(BatchResult(member.name, None, False, _error_message(e)))
            if options.fail_fast:
                break
            continue
        results.append(BatchResult(member.name, None, True, "ok", compare=entries))
    return results
