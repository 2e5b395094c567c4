"""
Configuration file support for tspec.

Provides hierarchical configuration loading from:
1. Project config: .tspec.toml or tspec-config.toml in the project tree
2. User config: ~/.config/tspec/config.toml

CLI arguments override config file values, and project config overrides user config.
"""

import sys
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

# Config file names to search for in project directories
CONFIG_FILENAMES = [".tspec.toml", "tspec-config.toml"]

# User-level config path
USER_CONFIG_PATH = Path.home() / ".config" / "tspec" / "config.toml"

# All known config keys for validation
KNOWN_KEYS = {
    "defaults": {"verbose", "quiet", "fail_fast", "release"},
    "spec": {"suffix", "default_name"},
    "workspace": {"build_tools"},
    "toolchain": {"command", "nightly_channel", "strip_command"},
}


@dataclass
class DefaultsConfig:
    """Default options for CLI commands."""

    verbose: bool = False
    quiet: bool = False
    fail_fast: bool = False
    release: bool = False


@dataclass
class SpecConfig:
    """Spec file naming."""

    suffix: str = ".ts.toml"
    default_name: str = "tspec"

    @property
    def default_filename(self) -> str:
        return f"{self.default_name}{self.suffix}"


@dataclass
class WorkspaceConfig:
    """Workspace member classification."""

    build_tools: list[str] = field(default_factory=lambda: ["tspec", "xt", "xtask"])


@dataclass
class ToolchainConfig:
    """External programs invoked by tspec."""

    command: str = "cargo"
    nightly_channel: str = "nightly"
    strip_command: str = "strip"


@dataclass
class Config:
    """Merged configuration from all sources."""

    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)
    spec: SpecConfig = field(default_factory=SpecConfig)
    workspace: WorkspaceConfig = field(default_factory=WorkspaceConfig)
    toolchain: ToolchainConfig = field(default_factory=ToolchainConfig)

    # Track which file each setting came from (for --show)
    _sources: dict = field(default_factory=dict, repr=False)

    @classmethod
    def load(cls, start_dir: Path | None = None) -> "Config":
        """
        Load configuration with precedence: project > user > defaults.

        Args:
            start_dir: Directory to start searching from (default: current directory)

        Returns:
            Merged configuration object
        """
        if start_dir is None:
            start_dir = Path.cwd()

        config = cls()
        sources: dict[str, str] = {}

        if USER_CONFIG_PATH.exists():
            user_data = _load_toml_file(USER_CONFIG_PATH)
            if user_data:
                _merge_config(config, user_data, str(USER_CONFIG_PATH), sources)

        project_config = _find_project_config(start_dir)
        if project_config:
            project_data = _load_toml_file(project_config)
            if project_data:
                _merge_config(config, project_data, str(project_config), sources)

        config._sources = sources
        return config

    def get_source(self, key: str) -> str:
        """Get the source file for a config key."""
        return self._sources.get(key, "default")


class ConfigError(Exception):
    """Configuration-related errors."""

    pass


def _find_project_config(start_dir: Path) -> Path | None:
    """
    Find project config by walking up the directory tree.

    Stops at .git directory or filesystem root.
    """
    current = start_dir.resolve()

    while True:
        for filename in CONFIG_FILENAMES:
            config_path = current / filename
            if config_path.is_file():
                return config_path

        if (current / ".git").exists():
            break

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def _load_toml_file(path: Path) -> dict[str, Any] | None:
    """
    Load a TOML file safely.

    Raises:
        ConfigError: If TOML is invalid or unreadable
    """
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e


def _merge_config(
    config: Config, data: dict[str, Any], source: str, sources: dict[str, str]
) -> None:
    """
    Merge loaded config data into a Config object.

    Every known section maps one-to-one onto a dataclass attribute of the
    same name, so the merge walks KNOWN_KEYS instead of listing fields.
    """
    for key in data:
        if key not in KNOWN_KEYS:
            warnings.warn(f"Unknown config key '{key}' in {source}", stacklevel=3)

    for section, known in KNOWN_KEYS.items():
        if section not in data:
            continue
        section_data = data[section]
        if not isinstance(section_data, dict):
            raise ConfigError(f"Config section '{section}' in {source} must be a table")
        _warn_unknown_keys(section_data, known, section, source)

        target = getattr(config, section)
        for key in sorted(known):
            if key not in section_data:
                continue
            value = section_data[key]
            expected = type(getattr(target, key))
            if not isinstance(value, expected):
                raise ConfigError(
                    f"Config key '{section}.{key}' in {source} must be "
                    f"{expected.__name__}, got {type(value).__name__}"
                )
            setattr(target, key, value)
            sources[f"{section}.{key}"] = source


def _warn_unknown_keys(data: dict[str, Any], known: set[str], section: str, source: str) -> None:
    """Warn about unknown keys in a config section."""
    for key in data:
        if key not in known:
            warnings.warn(f"Unknown config key '{section}.{key}' in {source}", stacklevel=4)


def generate_template() -> str:
    """Generate a template config file with all options documented."""
    return """# tspec configuration file
# Place as .tspec.toml in the project root or ~/.config/tspec/config.toml for user defaults

[defaults]
# Show debug logging
# verbose = false

# Suppress progress output
# quiet = false

# Stop batch operations at the first failure
# fail_fast = false

# Build with --release when a spec does not name a profile
# release = false

[spec]
# Suffix shared by every translation spec file
# suffix = ".ts.toml"

# Base name of the spec used when -t is not given
# default_name = "tspec"

[workspace]
# Member names treated as build tools (never built in batch)
# build_tools = ["tspec", "xt", "xtask"]

[toolchain]
# Toolchain executable
# command = "cargo"

# Channel selected with +CHANNEL when a spec needs nightly
# nightly_channel = "nightly"

# Program used for --strip
# strip_command = "strip"
"""


def get_config_paths() -> dict[str, Path | None]:
    """
    Get paths to config files that would be loaded.

    Returns:
        Dict with 'user' and 'project' keys
    """
    project_config = _find_project_config(Path.cwd())

    return {
        "user": USER_CONFIG_PATH if USER_CONFIG_PATH.exists() else None,
        "project": project_config,
    }
