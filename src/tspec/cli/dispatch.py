"""
Command dispatch logic for the tspec CLI.

Handlers are imported lazily so ``tspec --help`` stays fast.
"""

from __future__ import annotations

import sys


def dispatch_command(args) -> int:
    """Dispatch to the appropriate command handler."""
    if args.command == "build":
        from .commands.build import run_build_command

        return run_build_command(args)

    elif args.command == "run":
        from .commands.run import run_run_command

        return run_run_command(args)

    elif args.command == "test":
        from .commands.test import run_test_command

        return run_test_command(args)

    elif args.command == "compare":
        from .commands.build import run_compare_command

        return run_compare_command(args)

    elif args.command == "clean":
        from .commands.cargo import run_clean_command

        return run_clean_command(args)

    elif args.command == "clippy":
        from .commands.cargo import run_clippy_command

        return run_clippy_command(args)

    elif args.command == "fmt":
        from .commands.cargo import run_fmt_command

        return run_fmt_command(args)

    elif args.command == "install":
        from .commands.cargo import run_install_command

        return run_install_command(args)

    elif args.command == "version":
        from .commands.cargo import run_version_command

        return run_version_command(args)

    elif args.command == "config":
        from .commands.config import run_config_command

        return run_config_command(args)

    elif args.command == "ts":
        from .commands.ts import run_ts_command

        return run_ts_command(args)

    print(f"Unknown command: {args.command}", file=sys.stderr)
    return 1
