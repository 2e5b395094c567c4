"""
Project, package and spec file lookup.

Locates the project root from any directory below it, maps a package name
to its directory, finds the spec a command should use, and turns ``-t``
patterns into concrete spec files per member.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import Any, Optional, Sequence

from .config import Config
from .exceptions import PathNotFoundError, ShellGlobWarning

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

__all__ = [
    "MANIFEST_NAME",
    "GLOB_CHARS",
    "NormalizedPatterns",
    "find_project_root",
    "resolve_manifest_path",
    "read_manifest",
    "get_package_name",
    "binary_names",
    "is_pop",
    "find_package_dir",
    "current_package_dir",
    "find_spec",
    "find_spec_files",
    "normalize_patterns",
    "resolve_patterns",
    "is_glob",
]

logger = logging.getLogger(__name__)

MANIFEST_NAME = "Cargo.toml"
GLOB_CHARS = "*?["
PACKAGE_GROUPS = ("libs", "apps", "tools")


def read_manifest(directory: Path) -> Optional[dict[str, Any]]:
    """Parsed ``Cargo.toml`` in ``directory``, or None if absent or unreadable."""
    manifest = directory / MANIFEST_NAME
    if not manifest.is_file():
        return None
    try:
        with open(manifest, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Skipping unreadable manifest %s: %s", manifest, e)
        return None


def _is_excluded(workspace_dir: Path, manifest: dict[str, Any], package_dir: Path) -> bool:
    workspace = manifest.get("workspace", {})
    excludes = workspace.get("exclude", []) if isinstance(workspace, dict) else []
    try:
        relative = package_dir.relative_to(workspace_dir)
    except ValueError:
        return True
    for entry in excludes:
        excluded = PurePath(entry)
        if relative == excluded or excluded in relative.parents:
            return True
    return False


def find_project_root(start: Optional[Path] = None) -> Path:
    """Workspace root above ``start``, or the nearest package when there is none.

    A workspace whose ``exclude`` list covers the package found below it
    does not own that package.

    Raises:
        PathNotFoundError: If no Cargo.toml exists in ``start`` or above
    """
    start = (start or Path.cwd()).resolve()
    nearest_package: Optional[Path] = None

    current = start
    while True:
        manifest = read_manifest(current)
        if manifest is not None:
            if "workspace" in manifest:
                if nearest_package is None or not _is_excluded(current, manifest, nearest_package):
                    return current
                logger.debug("%s excludes %s", current, nearest_package)
                return nearest_package
            if "package" in manifest and nearest_package is None:
                nearest_package = current

        parent = current.parent
        if parent == current:
            break
        current = parent

    if nearest_package is not None:
        return nearest_package

    raise PathNotFoundError(
        f"could not find {MANIFEST_NAME} in {start} or any parent directory",
        start,
        suggestions=["Run tspec inside a cargo project or pass --manifest-path"],
    )


def resolve_manifest_path(manifest_path: Path) -> Path:
    """Project root for an explicit ``--manifest-path``."""
    manifest_path = Path(manifest_path)
    if not manifest_path.is_file():
        raise PathNotFoundError(f"manifest not found: {manifest_path}", manifest_path)
    return find_project_root(manifest_path.resolve().parent)


def get_package_name(directory: Path) -> Optional[str]:
    manifest = read_manifest(directory)
    if manifest is None:
        return None
    package = manifest.get("package")
    if isinstance(package, dict):
        name = package.get("name")
        return name if isinstance(name, str) else None
    return None


def binary_names(directory: Path, package: Optional[str] = None) -> list[str]:
    """Binary targets cargo builds for the package in ``directory``.

    Explicit ``[[bin]]`` tables come first, then ``src/main.rs`` (named after
    the package) and ``src/bin/`` entries not claimed by a ``[[bin]]`` path,
    unless ``autobins = false``.
    """
    manifest = read_manifest(directory) or {}
    section = manifest.get("package")
    section = section if isinstance(section, dict) else {}
    package = package or section.get("name")

    names: list[str] = []
    claimed: set[PurePath] = set()
    for entry in manifest.get("bin", []) or []:
        if isinstance(entry, dict) and isinstance(entry.get("name"), str):
            names.append(entry["name"])
            if isinstance(entry.get("path"), str):
                claimed.add(PurePath(entry["path"]))

    if section.get("autobins", True) is not False:
        main = PurePath("src", "main.rs")
        if package and main not in claimed and (directory / main).is_file():
            names.append(package)
        bin_dir = directory / "src" / "bin"
        if bin_dir.is_dir():
            for entry in sorted(bin_dir.iterdir()):
                relative = PurePath(entry.relative_to(directory))
                if entry.is_file() and entry.suffix == ".rs" and relative not in claimed:
                    names.append(entry.stem)
                elif entry.is_dir() and relative / "main.rs" not in claimed and (entry / "main.rs").is_file():
                    names.append(entry.name)

    return list(dict.fromkeys(names))


def is_pop(root: Path) -> bool:
    """True for a plain package without a ``[workspace]`` table."""
    manifest = read_manifest(root)
    return manifest is not None and "package" in manifest and "workspace" not in manifest


def _has_manifest(directory: Path) -> bool:
    return (directory / MANIFEST_NAME).is_file()


def find_package_dir(root: Path, name: str) -> Path:
    """Directory of package ``name``.

    Tries, in order: ``name`` as a path, the root package, ``root/name``,
    ``libs|apps|tools/name``, nested ``libs|apps/*/tests`` packages, then
    any package under the group directories whose manifest name matches.

    Raises:
        PathNotFoundError: If no candidate holds a manifest for ``name``
    """
    as_path = Path(name)
    looks_like_path = "/" in name or name.startswith(".")
    if _has_manifest(as_path) and (looks_like_path or get_package_name(as_path) == name):
        return as_path.resolve()

    if get_package_name(root) == name:
        return root

    for candidate in [root / name, *(root / group / name for group in PACKAGE_GROUPS)]:
        if _has_manifest(candidate):
            return candidate.resolve()

    for group in PACKAGE_GROUPS[:2]:
        for candidate in sorted((root / group).glob("*/tests")):
            if get_package_name(candidate) == name:
                return candidate.resolve()

    for group in PACKAGE_GROUPS:
        group_dir = root / group
        if not group_dir.is_dir():
            continue
        for candidate in sorted(p for p in group_dir.iterdir() if p.is_dir()):
            if get_package_name(candidate) == name:
                return candidate.resolve()

    raise PathNotFoundError(
        f"package '{name}' not found",
        root,
        suggestions=["Check the package name, or pass its directory to -p"],
    )


def current_package_dir(cwd: Path, root: Path) -> Optional[Path]:
    """Package directory containing ``cwd``, stopping at ``root``.

    Returns None at a virtual workspace root.
    """
    cwd = cwd.resolve()
    root = root.resolve()
    if cwd != root and root not in cwd.parents:
        return None

    current = cwd
    while True:
        if get_package_name(current) is not None:
            return current
        if current == root:
            return None
        current = current.parent


def find_spec(member_dir: Path, explicit: Optional[str], config: Config) -> Optional[Path]:
    """Spec file for one member.

    With ``explicit``: the path itself, then the name inside ``member_dir``,
    then the name plus the spec suffix when it has no extension. Without:
    the default spec if it exists, else None (plain toolchain build).

    Raises:
        PathNotFoundError: If an explicit spec cannot be found
    """
    suffix = config.spec.suffix
    if explicit is None:
        default = member_dir / config.spec.default_filename
        return default if default.is_file() else None

    direct = Path(explicit)
    if direct.is_file():
        return direct.resolve()
    candidate = member_dir / explicit
    if candidate.is_file():
        return candidate
    if "." not in Path(explicit).name:
        with_suffix = member_dir / f"{explicit}{suffix}"
        if with_suffix.is_file():
            return with_suffix

    raise PathNotFoundError(
        f"spec not found: {explicit}",
        member_dir,
        suggestions=["List available specs with 'tspec ts list'"],
    )


def find_spec_files(directory: Path, suffix: str) -> list[Path]:
    """Sorted spec files directly inside ``directory``."""
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.is_file() and p.name.endswith(suffix))


def is_glob(pattern: str) -> bool:
    return any(ch in pattern for ch in GLOB_CHARS)


@dataclass
class NormalizedPatterns:
    """Per-member spec patterns after shell-expansion filtering."""

    patterns: list[str] = field(default_factory=list)
    dropped: list[str] = field(default_factory=list)
    likely_shell_expansion: bool = False
    suffix: str = ""

    def warning(self) -> ShellGlobWarning:
        return ShellGlobWarning(
            f"ignored {', '.join(self.dropped)}: these look like paths expanded by the "
            f"shell, not spec patterns; quote the pattern, e.g. -t '*{self.suffix}'"
        )


def normalize_patterns(patterns: Sequence[str], suffix: str) -> NormalizedPatterns:
    """Strip directory components and drop entries that cannot name a spec.

    Kept: globs, ``*{suffix}`` file names, and bare names (no separator, no
    dot, not an existing file or directory) which are read as spec names.
    When every entry is dropped the result is flagged as a likely shell
    expansion.
    """
    result = NormalizedPatterns(suffix=suffix)
    for raw in patterns:
        has_separator = "/" in raw or "\\" in raw
        name = PurePath(raw).name
        if is_glob(name) or (name.endswith(suffix) and len(name) > len(suffix)):
            kept = name
        elif name and not has_separator and "." not in name and not Path(raw).exists():
            kept = name
        else:
            result.dropped.append(raw)
            continue
        if kept not in result.patterns:
            result.patterns.append(kept)

    if patterns and not result.patterns:
        result.likely_shell_expansion = True
    elif result.dropped:
        logger.debug("Dropped spec patterns: %s", result.dropped)
    return result


def resolve_patterns(member_dir: Path, patterns: Sequence[str], suffix: str) -> list[Path]:
    """Union of spec files in ``member_dir`` matching any pattern, sorted."""
    matches: set[Path] = set()
    for pattern in patterns:
        if is_glob(pattern):
            for path in member_dir.glob(pattern):
                if path.is_file() and path.name.endswith(suffix):
                    matches.add(path)
            continue
        name = pattern if pattern.endswith(suffix) else f"{pattern}{suffix}"
        candidate = member_dir / name
        if candidate.is_file():
            matches.add(candidate)
    return sorted(matches)
