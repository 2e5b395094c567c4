"""Command handlers for the tspec CLI.

This package contains command handler modules organized by domain:
- build: build and compare handlers
- run: run handler
- test: test handler
- cargo: clean, clippy, fmt, install and version passthroughs
- config: config command handler
- ts: spec file management handlers
"""

from .build import run_build_command, run_compare_command
from .cargo import (
    run_clean_command,
    run_clippy_command,
    run_fmt_command,
    run_install_command,
    run_version_command,
)
from .config import run_config_command
from .run import run_run_command
from .test import run_test_command
from .ts import run_ts_command

__all__ = [
    # Build
    "run_build_command",
    "run_compare_command",
    "run_run_command",
    "run_test_command",
    # Cargo passthroughs
    "run_clean_command",
    "run_clippy_command",
    "run_fmt_command",
    "run_install_command",
    "run_version_command",
    # Config
    "run_config_command",
    # Spec files
    "run_ts_command",
]
