"""Subcommand parser registration for the tspec CLI."""

from __future__ import annotations

import argparse

__all__ = [
    "register_all_parsers",
    "register_build_parser",
    "register_run_parser",
    "register_test_parser",
    "register_compare_parser",
    "register_clean_parser",
    "register_clippy_parser",
    "register_fmt_parser",
    "register_install_parser",
    "register_version_parser",
    "register_config_parser",
    "register_ts_parser",
]


def _add_package_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-p", "--package", help="Package name or directory")
    parser.add_argument(
        "-a",
        "--all",
        action="store_true",
        dest="all_packages",
        help="Every workspace member, even inside a package directory",
    )


def _add_spec_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-t",
        "--tspec",
        action="append",
        default=[],
        help="Spec name, file or quoted glob (repeatable)",
    )


def _add_selection_args(parser: argparse.ArgumentParser, strip: bool = True) -> None:
    _add_package_args(parser)
    _add_spec_args(parser)
    parser.add_argument("-r", "--release", action="store_true", help="Release profile when the spec names none")
    if strip:
        parser.add_argument("-s", "--strip", action="store_true", help="Strip binaries after building")


def _add_fail_fast(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-f", "--fail-fast", action="store_true", dest="fail_fast", help="Stop at the first failure"
    )


def register_build_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the build subcommand."""
    parser = subparsers.add_parser("build", help="Build packages with translation specs")
    _add_selection_args(parser)
    _add_fail_fast(parser)


def register_run_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the run subcommand."""
    parser = subparsers.add_parser("run", help="Build and run binaries")
    _add_selection_args(parser)
    _add_fail_fast(parser)
    parser.add_argument("run_args", nargs="*", help="Arguments for the binary (after --)")


def register_test_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the test subcommand."""
    parser = subparsers.add_parser("test", help="Run tests with translation specs")
    _add_selection_args(parser, strip=False)
    _add_fail_fast(parser)
    parser.add_argument(
        "test_args", nargs="*", help="Test name filter and arguments passed to cargo test"
    )


def register_compare_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the compare subcommand."""
    parser = subparsers.add_parser("compare", help="Compare binary sizes across specs")
    _add_selection_args(parser)
    _add_fail_fast(parser)


def register_clean_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the clean subcommand."""
    parser = subparsers.add_parser("clean", help="Remove build artifacts (cargo clean)")
    parser.add_argument("-p", "--package", help="Only this package")
    parser.add_argument("-r", "--release", action="store_true", help="Only release artifacts")


def register_clippy_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the clippy subcommand."""
    parser = subparsers.add_parser("clippy", help="Run clippy lints (cargo clippy)")
    parser.add_argument("-p", "--package", help="Only this package (name or directory)")
    parser.add_argument(
        "-a", "--all", action="store_true", dest="all_packages", help="Every workspace member"
    )
    parser.add_argument("clippy_args", nargs="*", help="Lint arguments passed to clippy (after --)")


def register_fmt_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the fmt subcommand."""
    parser = subparsers.add_parser("fmt", help="Format sources (cargo fmt)")
    parser.add_argument("package_arg", nargs="?", metavar="PACKAGE", help="Package name or directory")
    parser.add_argument("-p", "--package", help="Package name or directory")
    parser.add_argument("-w", "--workspace", action="store_true", help="Every workspace member")
    parser.add_argument("-c", "--check", action="store_true", help="Check formatting without writing")


def register_install_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the install subcommand."""
    parser = subparsers.add_parser("install", help="Install a package binary (cargo install)")
    parser.add_argument("--path", required=True, help="Directory of the package to install")
    parser.add_argument("-f", "--force", action="store_true", help="Overwrite an installed binary")


def register_version_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the version subcommand."""
    subparsers.add_parser("version", help="Show the tspec version")


def register_config_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the config subcommand."""
    parser = subparsers.add_parser("config", help="View and manage configuration")
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--show", action="store_true", help="Show effective configuration with sources"
    )
    group.add_argument("--init", action="store_true", help="Create template config file")
    group.add_argument("--paths", action="store_true", help="Show config file paths")
    parser.add_argument("--user", action="store_true", help="Use user config for --init")


def register_ts_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the ts subcommand group for spec files."""
    parser = subparsers.add_parser("ts", help="Manage translation spec files")
    ts_subparsers = parser.add_subparsers(dest="ts_command", help="Spec commands")

    for name, help_text in (
        ("list", "List spec files"),
        ("show", "Print spec files"),
        ("hash", "Print spec hashes"),
    ):
        sub = ts_subparsers.add_parser(name, help=help_text)
        _add_package_args(sub)
        sub.add_argument("-t", "--tspec", help="Spec name or quoted glob")

    new = ts_subparsers.add_parser("new", help="Create a spec file")
    new.add_argument("name", nargs="?", help="Spec name (default: tspec)")
    new.add_argument("-p", "--package", help="Package name or directory")
    new.add_argument(
        "-f", "--from", dest="from_spec", help="Copy from SPEC or PACKAGE/SPEC"
    )

    set_parser = ts_subparsers.add_parser("set", help="Set a field")
    set_parser.add_argument("key", help="Dotted key, e.g. rustc.opt_level")
    set_parser.add_argument("values", nargs="+", help="Value (several for array fields); put -- before values starting with -")

    unset = ts_subparsers.add_parser("unset", help="Remove a field")
    unset.add_argument("key", help="Dotted key")

    add = ts_subparsers.add_parser("add", help="Add items to an array field")
    add.add_argument("key", help="Dotted key of an array field")
    add.add_argument("values", nargs="+", help="Items to add; put -- before items starting with -")
    add.add_argument("-i", "--index", type=int, help="Insert at this position (no dedup)")

    remove = ts_subparsers.add_parser("remove", help="Remove items from an array field")
    remove.add_argument("key", help="Dotted key of an array field")
    remove.add_argument("values", nargs="*", help="Items to remove")
    remove.add_argument("-i", "--index", type=int, help="Remove the item at this position")

    backup = ts_subparsers.add_parser("backup", help="Snapshot a spec as NAME-NNN-HASH")

    restore = ts_subparsers.add_parser("restore", help="Restore a spec from a snapshot")

    for sub in (set_parser, unset, add, remove, backup, restore):
        sub.add_argument("-p", "--package", help="Package name or directory")
        sub.add_argument(
            "-t",
            "--tspec",
            required=sub is restore,
            help="Backup file to restore" if sub is restore else "Spec name or file",
        )


def register_all_parsers(subparsers: argparse._SubParsersAction) -> None:
    """Register every subcommand."""
    register_build_parser(subparsers)
    register_run_parser(subparsers)
    register_test_parser(subparsers)
    register_compare_parser(subparsers)
    register_clean_parser(subparsers)
    register_clippy_parser(subparsers)
    register_fmt_parser(subparsers)
    register_install_parser(subparsers)
    register_version_parser(subparsers)
    register_config_parser(subparsers)
    register_ts_parser(subparsers)
