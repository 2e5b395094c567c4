"""
Command-line interface for tspec.

Provides the ``tspec`` command, which drives cargo with the settings
recorded in translation spec files (``*.ts.toml``):

    tspec build      - Build one package or a batch of packages
    tspec run        - Build and run binaries
    tspec test       - Run tests and aggregate the counts
    tspec compare    - Compare binary sizes across specs
    tspec ts         - Inspect and edit spec files
    tspec config     - View or create tspec configuration
"""

import logging
import sys
from typing import List, Optional

from tspec.config import Config, ConfigError
from tspec.exceptions import TspecError

from .dispatch import dispatch_command
from .parser import create_parser
from .utils import format_error, print_error

__all__ = ["main", "create_parser", "dispatch_command", "format_error", "print_error"]


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the tspec CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        args.config = Config.load()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    args.verbose = args.verbose or args.config.defaults.verbose
    args.quiet = args.quiet or args.config.defaults.quiet

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    if args.command is None:
        parser.print_help()
        return 1

    try:
        return dispatch_command(args)
    except TspecError as e:
        print_error(e, verbose=args.verbose)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
