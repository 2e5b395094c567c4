"""
Summary tables for batch operations.

One renderer builds every table: NAME, an optional SPEC column (dropped
when no row carries a spec label) and one detail column, framed with a
title and a footer line. The per-operation helpers only format details
and footers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .batch import BatchResult
from .testing import TestCounts

__all__ = [
    "ReportRow",
    "format_size",
    "render_table",
    "print_build_summary",
    "print_test_summary",
    "print_run_summary",
    "print_compare_summary",
    "exit_code",
]

NAME_MIN_WIDTH = 12
SPEC_MIN_WIDTH = 10
DETAIL_MIN_WIDTH = 12


@dataclass
class ReportRow:
    name: str
    spec_label: Optional[str]
    detail: str
    success: bool = True


def format_size(size_bytes: int) -> str:
    """Human-readable size string."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    else:
        return f"{size_bytes / (1024 * 1024):.1f} MB"


def render_table(
    title: str,
    rows: Sequence[ReportRow],
    detail_header: str,
    footer: str,
) -> Table:
    """Build the framed summary table."""
    show_spec = any(row.spec_label for row in rows)

    table = Table(
        title=f"{title} SUMMARY",
        caption=footer,
        box=box.ROUNDED,
        title_style="bold",
        caption_justify="left",
    )
    table.add_column("NAME", min_width=NAME_MIN_WIDTH, no_wrap=True)
    if show_spec:
        table.add_column("SPEC", min_width=SPEC_MIN_WIDTH, no_wrap=True)
    table.add_column(detail_header, min_width=DETAIL_MIN_WIDTH)

    for row in rows:
        detail = escape(row.detail) if row.success else f"[red]{escape(row.detail)}[/red]"
        cells = [escape(row.name)]
        if show_spec:
            cells.append(escape(row.spec_label or ""))
        cells.append(detail)
        table.add_row(*cells)
    return table


def _counts_footer(results: Sequence[BatchResult]) -> str:
    failed = sum(1 for r in results if not r.success)
    return f"{len(results) - failed} succeeded, {failed} failed"


def _print(console: Optional[Console], table: Table) -> None:
    (console or Console()).print(table)


def print_build_summary(results: Sequence[BatchResult], console: Optional[Console] = None) -> None:
    rows = []
    for r in results:
        if not r.success:
            detail = r.message
        elif r.size is not None:
            detail = format_size(r.size)
        else:
            detail = r.message
        rows.append(ReportRow(r.name, r.spec_label, detail, r.success))
    _print(console, render_table("BUILD", rows, "SIZE", _counts_footer(results)))


def print_test_summary(results: Sequence[BatchResult], console: Optional[Console] = None) -> None:
    rows = []
    total: Optional[TestCounts] = None
    for r in results:
        if r.test_counts is not None:
            total = r.test_counts if total is None else total + r.test_counts
            detail = r.test_counts.summary()
            if not r.success:
                detail = f"{detail} ({r.message})"
        else:
            detail = r.message
        rows.append(ReportRow(r.name, r.spec_label, detail, r.success))

    footer = _counts_footer(results)
    if total is not None:
        footer = f"{footer}; total: {total.summary()}"
    _print(console, render_table("TEST", rows, "RESULT", footer))


def print_run_summary(results: Sequence[BatchResult], console: Optional[Console] = None) -> None:
    rows = [ReportRow(r.name, r.spec_label, r.message, r.success) for r in results]
    _print(console, render_table("RUN", rows, "RESULT", _counts_footer(results)))


def print_compare_summary(results: Sequence[BatchResult], console: Optional[Console] = None) -> None:
    """One row per configuration; CHANGE is the reduction from the member's largest size."""
    rows = []
    for r in results:
        if not r.success:
            rows.append(ReportRow(r.name, None, r.message, False))
            continue
        largest = max((entry.size for entry in r.compare), default=0)
        for index, entry in enumerate(r.compare):
            if largest and entry.size < largest:
                change = f"-{(largest - entry.size) * 100 / largest:.1f}%"
            else:
                change = ""
            detail = f"{format_size(entry.size):>10}  {change}".rstrip()
            rows.append(ReportRow(r.name if index == 0 else "", entry.spec_label, detail))
    _print(console, render_table("COMPARE", rows, "SIZE / CHANGE", _counts_footer(results)))


def exit_code(results: Sequence[BatchResult]) -> int:
    """0 if every row succeeded (including no rows at all), else 1."""
    return 0 if all(r.success for r in results) else 1
