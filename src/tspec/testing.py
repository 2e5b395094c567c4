"""Parsing of ``test result:`` summary lines printed by ``cargo test``."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

__all__ = ["TestCounts", "parse_test_result_line", "aggregate", "has_name_filter"]

RESULT_PREFIX = "test result: "
STATUS_TOKENS = ("ok.", "FAILED.")


@dataclass
class TestCounts:
    """Test totals from one or more result lines."""

    __test__ = False

    passed: int = 0
    failed: int = 0
    ignored: int = 0
    filtered: int = 0

    def __add__(self, other: "TestCounts") -> "TestCounts":
        return TestCounts(
            passed=self.passed + other.passed,
            failed=self.failed + other.failed,
            ignored=self.ignored + other.ignored,
            filtered=self.filtered + other.filtered,
        )

    @property
    def ran(self) -> int:
        return self.passed + self.failed

    def summary(self) -> str:
        parts = [f"{self.passed} passed", f"{self.failed} failed"]
        if self.ignored:
            parts.append(f"{self.ignored} ignored")
        if self.filtered:
            parts.append(f"{self.filtered} filtered")
        return ", ".join(parts)


def parse_test_result_line(line: str) -> Optional[TestCounts]:
    """Counts from ``test result: ok. 3 passed; 0 failed; ...``, else None.

    ``measured`` and unknown labels are ignored.
    """
    if not line.startswith(RESULT_PREFIX):
        return None
    rest = line[len(RESULT_PREFIX) :]
    for token in STATUS_TOKENS:
        if rest.startswith(token):
            tail = rest[len(token) :]
            break
    else:
        return None

    counts = TestCounts()
    for part in tail.split(";"):
        words = part.split()
        if len(words) < 2:
            continue
        try:
            value = int(words[0])
        except ValueError:
            continue
        label = words[1]
        if label == "passed":
            counts.passed += value
        elif label == "failed":
            counts.failed += value
        elif label == "ignored":
            counts.ignored += value
        elif label == "filtered":
            counts.filtered += value
    return counts


def aggregate(lines: Iterable[str]) -> Optional[TestCounts]:
    """Sum of every result line; None if no line was a result line."""
    total: Optional[TestCounts] = None
    for line in lines:
        counts = parse_test_result_line(line)
        if counts is not None:
            total = counts if total is None else total + counts
    return total


def has_name_filter(test_args: Iterable[str]) -> bool:
    """True if the args before any ``--`` include a test name filter."""
    for arg in test_args:
        if arg == "--":
            return False
        if not arg.startswith("-"):
            return True
    return False
