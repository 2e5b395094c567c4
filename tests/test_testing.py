"""Tests for cargo test output parsing."""

import pytest

from tspec.testing import TestCounts, aggregate, has_name_filter, parse_test_result_line


class TestResultLines:
    """Test parsing single result lines."""

    def test_ok_line(self):
        counts = parse_test_result_line(
            "test result: ok. 10 passed; 0 failed; 1 ignored; 0 measured; 0 filtered out; finished in 0.1s"
        )
        assert counts == TestCounts(passed=10, failed=0, ignored=1, filtered=0)

    def test_failed_line(self):
        counts = parse_test_result_line(
            "test result: FAILED. 3 passed; 2 failed; 0 ignored; 0 measured; 4 filtered out"
        )
        assert counts == TestCounts(passed=3, failed=2, ignored=0, filtered=4)

    @pytest.mark.parametrize(
        "line",
        [
            "running 3 tests",
            "test parse::basic ... ok",
            "test result: maybe. 1 passed",
            "  test result: ok. 1 passed; 0 failed",
            "",
        ],
    )
    def test_other_lines(self, line):
        assert parse_test_result_line(line) is None

    def test_unknown_labels_ignored(self):
        counts = parse_test_result_line("test result: ok. 2 passed; 7 benchmarked; junk; 1 ignored")
        assert counts == TestCounts(passed=2, ignored=1)


class TestAggregation:
    """Test summing result lines across test binaries."""

    def test_two_binaries(self):
        total = aggregate(
            [
                "test result: ok. 10 passed; 0 failed; 1 ignored; 0 measured; 0 filtered out; finished in 0.1s",
                "some other output",
                "test result: ok. 5 passed; 0 failed; 0 ignored; 0 measured; 3 filtered out; finished in 0.2s",
            ]
        )
        assert total == TestCounts(passed=15, failed=0, ignored=1, filtered=3)
        assert total.ran == 15

    def test_no_result_lines(self):
        assert aggregate(["Compiling core v0.1.0", "error: could not compile"]) is None

    def test_summary(self):
        assert TestCounts(15, 0, 1, 3).summary() == "15 passed, 0 failed, 1 ignored, 3 filtered"
        assert TestCounts(2, 1).summary() == "2 passed, 1 failed"


class TestNameFilter:
    """Test detection of a test name filter."""

    def test_filter_present(self):
        assert has_name_filter(["parse_"])
        assert has_name_filter(["--release", "parse_", "--", "--nocapture"])

    def test_no_filter(self):
        assert not has_name_filter([])
        assert not has_name_filter(["--", "--nocapture"])
        assert not has_name_filter(["--", "parse_"])
        assert not has_name_filter(["--lib"])
