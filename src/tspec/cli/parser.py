"""
Argument parser setup for the tspec CLI.

The top-level parser holds the global options; every subcommand is
registered from ``parsers.py``.
"""

import argparse

from tspec import __version__

from .parsers import register_all_parsers

__all__ = ["create_parser"]

# Module docstring used as epilog in help
CLI_DOCSTRING = """
Commands:

    tspec build [-p PKG | -a] [-t SPEC]...    - Build with translation specs
    tspec run [-p PKG | -a] [-- ARGS]         - Build and run binaries
    tspec test [-p PKG | -a] [FILTER]         - Run tests and count results
    tspec compare [-p PKG | -a] [-t SPEC]...  - Compare binary sizes across specs
    tspec fmt [PKG] [-w] [--check]            - Format sources
    tspec clippy [-p PKG | -a] [-- ARGS]      - Lint with clippy
    tspec clean / install / version           - Cargo passthroughs
    tspec config --show | --init              - View/manage configuration
    tspec ts <command>                        - Manage spec files

Spec subcommands (tspec ts <command>):
    list, show, hash     - Inspect spec files
    new                  - Create a spec (optionally copied with --from)
    set, unset           - Change or remove a field
    add, remove          - Edit array fields
    backup, restore      - Numbered snapshots ({name}-NNN-HASH.ts.toml)

Without -p or -a, commands act on the package containing the current
directory, or on every member from a workspace root.

Examples:
    tspec build -p hello -t opt
    tspec build -a -t 'size-*'
    tspec test -p core -- parse_ -- --nocapture
    tspec compare -p hello -s
    tspec ts set rustc.opt_level z
    tspec ts add linker.args -- -static -nostdlib
    tspec ts set cargo.config_key_value."profile.release.lto" true
"""


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="tspec",
        description="Build orchestration with translation specs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=CLI_DOCSTRING,
    )
    parser.add_argument("--version", action="version", version=f"tspec {__version__}")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Debug logging and full stack traces on errors",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress progress output (for scripting)",
    )
    parser.add_argument(
        "--manifest-path",
        dest="manifest_path",
        help="Path to Cargo.toml (default: search upwards from the current directory)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    register_all_parsers(subparsers)

    return parser
