"""Config command handler."""

from __future__ import annotations

import sys
from pathlib import Path

from tspec.config import (
    CONFIG_FILENAMES,
    KNOWN_KEYS,
    USER_CONFIG_PATH,
    Config,
    ConfigError,
    generate_template,
    get_config_paths,
)

__all__ = ["run_config_command"]


def run_config_command(args) -> int:
    """Handle config command."""
    try:
        if args.init:
            return _init_config(args.user)
        elif args.paths:
            return _show_paths()
        else:
            return _show_config(getattr(args, "config", None) or Config.load())
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def _show_config(config: Config) -> int:
    """Show effective configuration with sources."""
    print("# Effective tspec configuration")
    for section, keys in KNOWN_KEYS.items():
        print()
        print(f"[{section}]")
        values = getattr(config, section)
        for key in sorted(keys):
            _print_value(key, getattr(values, key), config.get_source(f"{section}.{key}"))
    return 0


def _print_value(key: str, value, source: str) -> None:
    if isinstance(value, bool):
        rendered = "true" if value else "false"
    elif isinstance(value, list):
        rendered = "[" + ", ".join(f'"{v}"' for v in value) + "]"
    else:
        rendered = f'"{value}"'
    print(f"{key} = {rendered}  # {source}")


def _init_config(user: bool) -> int:
    """Write the template config file."""
    path = USER_CONFIG_PATH if user else Path.cwd() / CONFIG_FILENAMES[0]
    if path.exists():
        print(f"Error: {path} already exists", file=sys.stderr)
        return 1
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(generate_template(), encoding="utf-8")
    print(f"Created {path}")
    return 0


def _show_paths() -> int:
    paths = get_config_paths()
    print(f"user:    {paths['user'] or f'{USER_CONFIG_PATH} (not found)'}")
    print(f"project: {paths['project'] or '(none)'}")
    return 0
