"""
Single-member operations: build, test, run and compare one package.

Each function loads the spec (if any), resolves it, runs cargo with the
generated side files in place, and raises on the first error. The batch
engine wraps these per member and turns errors into result rows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from . import toolchain
from .config import Config
from .exceptions import PathNotFoundError, ToolchainFailedError, ZeroTestsRanError
from .resolver import Resolution, binary_path, prepared_side_files, resolve_spec
from .spec.parser import load_spec, spec_name_from_path
from .testing import TestCounts, aggregate, has_name_filter, parse_test_result_line

__all__ = [
    "BuildOutcome",
    "TestOutcome",
    "RunOutcome",
    "CompareEntry",
    "BASELINE_LABEL",
    "STRIPPED_BASELINE_LABEL",
    "build_package",
    "test_package",
    "run_package",
    "compare_package",
]

logger = logging.getLogger(__name__)

BASELINE_LABEL = "(baseline)"
STRIPPED_BASELINE_LABEL = "(baseline, stripped)"


@dataclass
class BuildOutcome:
    """A finished build."""

    resolution: Resolution
    binary: Optional[Path] = None
    size: Optional[int] = None


@dataclass
class TestOutcome:
    """A finished ``cargo test`` run."""

    __test__ = False

    success: bool
    return_code: int
    counts: Optional[TestCounts] = None


@dataclass
class RunOutcome:
    build: BuildOutcome
    exit_code: int


@dataclass
class CompareEntry:
    """Binary size for one configuration."""

    spec_label: str
    size: int


def _resolve(
    subcommand: str,
    project_root: Path,
    package: str,
    member_dir: Path,
    spec_path: Optional[Path],
    config: Config,
    release: bool,
    extra_args: Sequence[str] = (),
    binaries: Optional[Sequence[str]] = None,
) -> Resolution:
    spec = load_spec(spec_path) if spec_path is not None else None
    return resolve_spec(
        spec,
        subcommand=subcommand,
        package=package,
        release=release,
        spec_path=spec_path,
        member_dir=member_dir,
        project_root=project_root,
        config=config,
        extra_args=extra_args,
        binaries=binaries,
    )


def _binary(resolution: Resolution, project_root: Path, package: str) -> Path:
    name = resolution.binaries[0] if resolution.binaries else package
    return binary_path(resolution, project_root, name)


def build_package(
    project_root: Path,
    package: str,
    member_dir: Path,
    spec_path: Optional[Path] = None,
    *,
    config: Optional[Config] = None,
    release: bool = False,
    strip: bool = False,
    expect_binary: bool = True,
) -> BuildOutcome:
    """Build one package with one spec (or none).

    With ``strip`` the binary is stripped in place; a missing binary is then
    an error. Libraries (``expect_binary=False``) report no size and never get
    a generated build script.

    Raises:
        ToolchainFailedError: If cargo exits non-zero
        PathNotFoundError: If ``strip`` is requested and no binary was produced
    """
    config = config or Config()
    resolution = _resolve(
        "build",
        project_root,
        package,
        member_dir,
        spec_path,
        config,
        release,
        binaries=None if expect_binary else [],
    )

    with prepared_side_files(resolution):
        result = toolchain.run_toolchain(resolution.args, cwd=project_root, env=resolution.env, config=config)
    if not result.success:
        raise ToolchainFailedError(
            f"build failed for {package}", exit_code=result.return_code, command=result.command
        )

    binary = _binary(resolution, project_root, package)
    if not binary.is_file():
        if strip and expect_binary:
            raise PathNotFoundError(f"binary not found for {package}: {binary}", binary)
        logger.debug("No binary at %s", binary)
        return BuildOutcome(resolution=resolution)

    if strip:
        toolchain.strip_binary(binary, config)
    return BuildOutcome(resolution=resolution, binary=binary, size=toolchain.binary_size(binary))


def test_package(
    project_root: Path,
    package: str,
    member_dir: Path,
    spec_path: Optional[Path] = None,
    *,
    config: Optional[Config] = None,
    release: bool = False,
    test_args: Sequence[str] = (),
) -> TestOutcome:
    """Run ``cargo test`` for one package, echoing output and counting results.

    Raises:
        ZeroTestsRanError: If a test name filter was given and no test ran
    """
    config = config or Config()
    resolution = _resolve(
        "test", project_root, package, member_dir, spec_path, config, release, test_args
    )

    with prepared_side_files(resolution):
        result, lines = toolchain.run_tee(
            resolution.args,
            cwd=project_root,
            env=resolution.env,
            config=config,
            line_filter=lambda line: parse_test_result_line(line) is not None,
        )

    counts = aggregate(lines)
    if result.success and has_name_filter(test_args) and (counts is None or counts.ran == 0):
        raise ZeroTestsRanError(test_args)
    return TestOutcome(success=result.success, return_code=result.return_code, counts=counts)


def run_package(
    project_root: Path,
    package: str,
    member_dir: Path,
    spec_path: Optional[Path] = None,
    *,
    config: Optional[Config] = None,
    release: bool = False,
    strip: bool = False,
    run_args: Sequence[str] = (),
) -> RunOutcome:
    """Build, then execute the binary from the member directory."""
    outcome = build_package(
        project_root, package, member_dir, spec_path, config=config, release=release, strip=strip
    )
    if outcome.binary is None:
        missing = _binary(outcome.resolution, project_root, package)
        raise PathNotFoundError(f"no binary built for {package}", missing)
    exit_code = toolchain.run_binary(outcome.binary, run_args, cwd=member_dir)
    return RunOutcome(build=outcome, exit_code=exit_code)


def compare_package(
    project_root: Path,
    package: str,
    member_dir: Path,
    spec_paths: Sequence[Path],
    *,
    config: Optional[Config] = None,
    release: bool = False,
    strip: bool = False,
) -> list[CompareEntry]:
    """Binary sizes for the unstripped baseline, the stripped baseline and each spec.

    Baselines are plain builds without a spec. Stripping works on a copy, so
    the built binaries are left as cargo produced them. Sorted smallest first.
    """
    config = config or Config()
    baseline = build_package(
        project_root, package, member_dir, None, config=config, release=release
    )
    if baseline.binary is None:
        raise PathNotFoundError(
            f"no binary built for {package}",
            _binary(baseline.resolution, project_root, package),
        )

    entries = [
        CompareEntry(BASELINE_LABEL, baseline.size or 0),
        CompareEntry(STRIPPED_BASELINE_LABEL, toolchain.stripped_size(baseline.binary, config)),
    ]

    for spec_path in spec_paths:
        outcome = build_package(
            project_root, package, member_dir, spec_path, config=config, release=release
        )
        if outcome.binary is None:
            raise PathNotFoundError(
                f"no binary built for {package} with {spec_path.name}",
                _binary(outcome.resolution, project_root, package),
            )
        size = outcome.size or 0
        if strip:
            size = toolchain.stripped_size(outcome.binary, config)
        entries.append(CompareEntry(spec_name_from_path(spec_path, config.spec.suffix), size))

    entries.sort(key=lambda entry: entry.size)
    return entries
