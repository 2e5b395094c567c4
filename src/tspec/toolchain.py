"""Toolchain runner.

Runs cargo, strip and built binaries as subprocesses. Every call gets an
explicit working directory, and extra environment variables go to a copy
of ``os.environ`` scoped to that one subprocess.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import subprocess
import sys
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Sequence

from .config import Config
from .exceptions import PathNotFoundError, ToolchainFailedError

__all__ = [
    "ToolchainResult",
    "find_toolchain",
    "run_toolchain",
    "run_tee",
    "cargo_metadata",
    "strip_binary",
    "stripped_size",
    "binary_size",
    "run_binary",
]

logger = logging.getLogger(__name__)


@dataclass
class ToolchainResult:
    """Result from running a toolchain command."""

    success: bool
    return_code: int = 0
    stdout: str = ""
    stderr: str = ""
    command: list[str] = field(default_factory=list)


def find_toolchain(command: str = "cargo") -> Optional[Path]:
    """Locate the toolchain executable on PATH."""
    if path := shutil.which(command):
        return Path(path)
    return None


def _environment(extra: Optional[Mapping[str, str]]) -> dict[str, str]:
    env = os.environ.copy()
    if extra:
        env.update(extra)
    return env


def _not_found(cmd: Sequence[str], error: OSError) -> ToolchainFailedError:
    if find_toolchain(cmd[0]) is None:
        return ToolchainFailedError(f"{cmd[0]} not found on PATH", command=cmd)
    return ToolchainFailedError(f"cannot execute {cmd[0]}: {error}", command=cmd)


def run_toolchain(
    args: Sequence[str],
    cwd: Path,
    env: Optional[Mapping[str, str]] = None,
    config: Optional[Config] = None,
    capture: bool = False,
) -> ToolchainResult:
    """Run ``cargo ARGS`` in ``cwd`` and wait for it.

    Output goes straight to the terminal unless ``capture`` is set.
    """
    config = config or Config()
    cmd = [config.toolchain.command, *args]
    logger.debug("Running %s in %s", " ".join(cmd), cwd)
    if env:
        logger.debug("Environment: %s", dict(env))

    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            env=_environment(env),
            capture_output=capture,
            text=True,
        )
    except OSError as e:
        raise _not_found(cmd, e) from e

    return ToolchainResult(
        success=result.returncode == 0,
        return_code=result.returncode,
        stdout=result.stdout or "",
        stderr=result.stderr or "",
        command=cmd,
    )


def run_tee(
    args: Sequence[str],
    cwd: Path,
    env: Optional[Mapping[str, str]] = None,
    config: Optional[Config] = None,
    line_filter: Optional[Callable[[str], bool]] = None,
) -> tuple[ToolchainResult, list[str]]:
    """Run ``cargo ARGS``, echoing stdout live and keeping lines that pass ``line_filter``."""
    config = config or Config()
    cmd = [config.toolchain.command, *args]
    logger.debug("Running %s in %s", " ".join(cmd), cwd)

    collected: list[str] = []
    try:
        proc = subprocess.Popen(
            cmd,
            cwd=cwd,
            env=_environment(env),
            stdout=subprocess.PIPE,
            text=True,
            bufsize=1,
        )
    except OSError as e:
        raise _not_found(cmd, e) from e

    with proc:
        assert proc.stdout is not None
        for line in proc.stdout:
            sys.stdout.write(line)
            sys.stdout.flush()
            stripped = line.rstrip("\r\n")
            if line_filter is None or line_filter(stripped):
                collected.append(stripped)
        return_code = proc.wait()

    return (
        ToolchainResult(success=return_code == 0, return_code=return_code, command=cmd),
        collected,
    )


def cargo_metadata(project_root: Path, config: Optional[Config] = None) -> dict[str, Any]:
    """Workspace metadata (``cargo metadata --no-deps``) as parsed JSON."""
    result = run_toolchain(
        ["metadata", "--no-deps", "--format-version", "1"],
        cwd=project_root,
        config=config,
        capture=True,
    )
    if not result.success:
        raise ToolchainFailedError(
            f"cargo metadata failed: {result.stderr.strip()}",
            exit_code=result.return_code,
            command=result.command,
        )
    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise ToolchainFailedError(f"cargo metadata returned invalid JSON: {e}") from e


def _run_strip(args: list[str], config: Config) -> None:
    cmd = [config.toolchain.strip_command, *args]
    logger.debug("Running %s", " ".join(cmd))
    try:
        result = subprocess.run(cmd, capture_output=True, text=True)
    except OSError as e:
        raise _not_found(cmd, e) from e
    if result.returncode != 0:
        raise ToolchainFailedError(
            f"strip failed: {result.stderr.strip()}",
            exit_code=result.returncode,
            command=cmd,
        )


def strip_binary(path: Path, config: Optional[Config] = None) -> None:
    """Strip ``path`` in place."""
    if not path.is_file():
        raise PathNotFoundError(f"binary not found: {path}", path)
    _run_strip([str(path)], config or Config())


def stripped_size(path: Path, config: Optional[Config] = None) -> int:
    """Size ``path`` would have after stripping; the binary itself is untouched."""
    if not path.is_file():
        raise PathNotFoundError(f"binary not found: {path}", path)
    with tempfile.TemporaryDirectory(prefix="tspec-strip-") as tmp:
        output = Path(tmp) / path.name
        _run_strip(["-o", str(output), str(path)], config or Config())
        return output.stat().st_size


def binary_size(path: Path) -> int:
    try:
        return path.stat().st_size
    except FileNotFoundError as e:
        raise PathNotFoundError(f"binary not found: {path}", path) from e


def run_binary(path: Path, args: Sequence[str], cwd: Path) -> int:
    """Run a built binary with inherited stdio and return its exit code."""
    if not path.is_file():
        raise PathNotFoundError(f"binary not found: {path}", path)
    cmd = [str(path), *args]
    logger.debug("Running %s in %s", " ".join(cmd), cwd)
    try:
        return subprocess.run(cmd, cwd=cwd).returncode
    except OSError as e:
        raise _not_found(cmd, e) from e
