"""Cargo passthrough handlers: clean, clippy, fmt, install and version."""

from __future__ import annotations

from pathlib import Path

from tspec import __version__
from tspec.exceptions import PathNotFoundError
from tspec.paths import find_package_dir, get_package_name
from tspec import toolchain

from ..utils import load_config, project_root_for

__all__ = [
    "run_clean_command",
    "run_clippy_command",
    "run_fmt_command",
    "run_install_command",
    "run_version_command",
]


def _package_name(root: Path, package: str) -> str:
    directory = find_package_dir(root, package)
    return get_package_name(directory) or package


def run_clean_command(args) -> int:
    """Handle clean command."""
    config = load_config(args)
    root = project_root_for(args)

    cargo_args = ["clean"]
    if args.package:
        cargo_args += ["-p", args.package]
    if args.release:
        cargo_args.append("--release")
    return toolchain.run_toolchain(cargo_args, cwd=root, config=config).return_code


def run_clippy_command(args) -> int:
    """Handle clippy command."""
    config = load_config(args)
    root = project_root_for(args)

    cargo_args = ["clippy"]
    if args.package:
        cargo_args += ["-p", _package_name(root, args.package)]
    if args.all_packages:
        cargo_args.append("--workspace")
    if args.clippy_args:
        cargo_args += ["--", *args.clippy_args]
    return toolchain.run_toolchain(cargo_args, cwd=root, config=config).return_code


def run_fmt_command(args) -> int:
    """Handle fmt command; ``--workspace`` maps to ``cargo fmt --all``."""
    config = load_config(args)
    root = project_root_for(args)

    cargo_args = ["fmt"]
    package = args.package or args.package_arg
    if package:
        cargo_args += ["-p", _package_name(root, package)]
    if args.workspace:
        cargo_args.append("--all")
    if args.check:
        cargo_args.append("--check")
    return toolchain.run_toolchain(cargo_args, cwd=root, config=config).return_code


def run_install_command(args) -> int:
    """Handle install command."""
    config = load_config(args)
    path = Path(args.path)
    if not path.is_dir():
        raise PathNotFoundError(f"install path not found: {path}", path)
    path = path.resolve()

    cargo_args = ["install", "--path", str(path)]
    if args.force:
        cargo_args.append("--force")
    return toolchain.run_toolchain(cargo_args, cwd=path, config=config).return_code


def run_version_command(args) -> int:
    """Handle version command."""
    print(f"tspec {__version__}")
    return 0
