"""Spec file command handlers (``tspec ts ...``)."""

from __future__ import annotations

import sys
from pathlib import Path

from tspec.config import Config
from tspec.exceptions import ConfigurationError, InvalidValueError, PathNotFoundError, TspecError
from tspec.paths import find_package_dir, find_spec, find_spec_files, resolve_patterns
from tspec.report import format_size
from tspec.spec.editor import (
    FieldKind,
    add_items,
    get_field,
    is_table_sub_key,
    load_document,
    remove_item_by_index,
    remove_items_by_value,
    save_document,
    set_field,
    set_table_value,
    split_table_key,
    unset_field,
    validate_key,
)
from tspec.spec.parser import copy_snapshot, hash_spec, load_spec, restore_snapshot, write_atomic
from tspec.workspace import WorkspaceInfo

from ..utils import PackageSelection, load_config, project_root_for, select_package

__all__ = ["run_ts_command", "NEW_SPEC_TEMPLATE"]

NEW_SPEC_TEMPLATE = """\
# Translation spec for {package}
# Uncomment and edit the settings this build needs.

# panic = "abort"        # unwind, abort, immediate-abort (nightly)
# strip = "symbols"      # none, debuginfo, symbols

# [cargo]
# profile = "release"
# target_triple = "x86_64-unknown-linux-gnu"
# unstable = []

# [rustc]
# opt_level = "z"
# lto = true
# codegen_units = 1

# [linker]
# args = []
"""


def run_ts_command(args) -> int:
    """Handle ts subcommands."""
    ts_command = getattr(args, "ts_command", None)

    if ts_command == "list":
        return _run_ts_list(args)
    elif ts_command == "show":
        return _run_ts_show(args)
    elif ts_command == "hash":
        return _run_ts_hash(args)
    elif ts_command == "new":
        return _run_ts_new(args)
    elif ts_command == "set":
        return _run_ts_set(args)
    elif ts_command == "unset":
        return _run_ts_unset(args)
    elif ts_command == "add":
        return _run_ts_add(args)
    elif ts_command == "remove":
        return _run_ts_remove(args)
    elif ts_command == "backup":
        return _run_ts_backup(args)
    elif ts_command == "restore":
        return _run_ts_restore(args)
    else:
        print("Usage: tspec ts <command>", file=sys.stderr)
        print(
            "Commands: list, show, hash, new, set, unset, add, remove, backup, restore",
            file=sys.stderr,
        )
        return 1


def _display(path: Path, root: Path) -> str:
    try:
        return str(path.resolve().relative_to(root.resolve()))
    except ValueError:
        return str(path)


def _selected_packages(args, root: Path, config: Config) -> tuple[list[PackageSelection], bool]:
    """Packages to inspect and whether exactly one was asked for."""
    selection = select_package(args, root)
    if selection is not None:
        return [selection], True
    workspace = WorkspaceInfo.discover(root, config)
    return [PackageSelection(m.name, m.directory) for m in workspace.members], False


def _require_package(args, root: Path) -> PackageSelection:
    selection = select_package(args, root)
    if selection is None:
        raise ConfigurationError(
            "not inside a package",
            suggestions=["Pass the package with -p PACKAGE"],
        )
    return selection


def _spec_files(directory: Path, pattern: str | None, config: Config) -> list[Path]:
    suffix = config.spec.suffix
    if pattern is None:
        return find_spec_files(directory, suffix)
    direct = Path(pattern)
    if direct.is_file():
        return [direct]
    return resolve_patterns(directory, [pattern], suffix)


def _spec_for_edit(args, root: Path, config: Config) -> tuple[PackageSelection, Path]:
    selection = _require_package(args, root)
    path = find_spec(selection.directory, getattr(args, "tspec", None), config)
    if path is None:
        raise PathNotFoundError(
            f"no {config.spec.default_filename} in {selection.name}",
            selection.directory,
            suggestions=["Create one with 'tspec ts new'"],
        )
    return selection, path


def _run_ts_list(args) -> int:
    config = load_config(args)
    root = project_root_for(args)
    packages, single = _selected_packages(args, root, config)
    suffix = config.spec.suffix

    found = False
    for package in packages:
        files = _spec_files(package.directory, args.tspec, config)
        if not files:
            if single:
                print(f"No *{suffix} files found for {package.name}")
            continue
        found = True
        print(f"{package.name}:")
        for path in files:
            print(f"  {path.name} ({format_size(path.stat().st_size)})")

    if not found and not single:
        print(f"No *{suffix} files found for {root.name}")
    return 0


def _run_ts_show(args) -> int:
    config = load_config(args)
    root = project_root_for(args)
    packages, single = _selected_packages(args, root, config)

    shown = 0
    for package in packages:
        for path in _spec_files(package.directory, args.tspec, config):
            if shown:
                print()
            print(f"====== {_display(path, root)} ======")
            print(path.read_text(encoding="utf-8").rstrip("\n"))
            shown += 1

    if not shown:
        target = packages[0].name if single else root.name
        print(f"No *{config.spec.suffix} files found for {target}")
    return 0


def _run_ts_hash(args) -> int:
    config = load_config(args)
    root = project_root_for(args)
    packages, _ = _selected_packages(args, root, config)

    failures = 0
    for package in packages:
        for path in _spec_files(package.directory, args.tspec, config):
            try:
                print(f"{_display(path, root)}: {hash_spec(load_spec(path))}")
            except TspecError as e:
                print(f"{_display(path, root)}: error: {e.message}", file=sys.stderr)
                failures += 1
    return 1 if failures else 0


def _resolve_from(value: str, root: Path, selection: PackageSelection, config: Config) -> Path:
    """``SPEC`` in the target package, ``PACKAGE/SPEC`` elsewhere, or a file path."""
    direct = Path(value)
    if direct.is_file():
        return direct
    if "/" in value:
        package, spec = value.rsplit("/", 1)
        source = find_spec(find_package_dir(root, package), spec, config)
    else:
        source = find_spec(selection.directory, value, config)
    assert source is not None
    return source


def _run_ts_new(args) -> int:
    config = load_config(args)
    root = project_root_for(args)
    selection = _require_package(args, root)
    suffix = config.spec.suffix

    name = args.name or config.spec.default_name
    filename = name if name.endswith(suffix) else f"{name}{suffix}"
    target = selection.directory / filename
    if target.exists():
        raise ConfigurationError(f"{_display(target, root)} already exists")

    if args.from_spec:
        source = _resolve_from(args.from_spec, root, selection, config)
        load_spec(source)
        write_atomic(target, source.read_bytes())
        print(f"Created {_display(target, root)} from {_display(source, root)}")
    else:
        write_atomic(target, NEW_SPEC_TEMPLATE.format(package=selection.name).encode("utf-8"))
        print(f"Created {_display(target, root)}")
    return 0


def _run_ts_set(args) -> int:
    config = load_config(args)
    root = project_root_for(args)
    _, path = _spec_for_edit(args, root, config)

    doc = load_document(path)
    if is_table_sub_key(args.key):
        table_path, sub_key = split_table_key(args.key)
        if len(args.values) != 1:
            raise InvalidValueError(f"'{args.key}' takes exactly one value", key=args.key)
        set_table_value(doc, table_path, sub_key, args.values[0])
    else:
        set_field(doc, args.key, args.values, validate_key(args.key))
    save_document(doc, path)

    print(f"Set {args.key} in {_display(path, root)}")
    return 0


def _run_ts_unset(args) -> int:
    config = load_config(args)
    root = project_root_for(args)
    _, path = _spec_for_edit(args, root, config)

    validate_key(args.key)
    doc = load_document(path)
    if get_field(doc, args.key) is None:
        print(f"{args.key} is not set in {_display(path, root)}")
        return 0
    unset_field(doc, args.key)
    save_document(doc, path)

    print(f"Unset {args.key} in {_display(path, root)}")
    return 0


def _require_array(key: str, command: str) -> None:
    if validate_key(key) is not FieldKind.ARRAY:
        raise InvalidValueError(f"'ts {command}' only works on array fields", key=key)


def _run_ts_add(args) -> int:
    config = load_config(args)
    root = project_root_for(args)
    _require_array(args.key, "add")
    _, path = _spec_for_edit(args, root, config)

    doc = load_document(path)
    before = len(get_field(doc, args.key) or [])
    add_items(doc, args.key, args.values, args.index)
    added = len(get_field(doc, args.key) or []) - before
    save_document(doc, path)

    print(f"Added {added} item(s) to {args.key} in {_display(path, root)}")
    return 0


def _run_ts_remove(args) -> int:
    config = load_config(args)
    root = project_root_for(args)
    _require_array(args.key, "remove")
    if bool(args.values) == (args.index is not None):
        raise ConfigurationError("give either values to remove or --index, not both")
    _, path = _spec_for_edit(args, root, config)

    doc = load_document(path)
    before = len(get_field(doc, args.key) or [])
    if args.index is not None:
        remove_item_by_index(doc, args.key, args.index)
    else:
        remove_items_by_value(doc, args.key, args.values)
    removed = before - len(get_field(doc, args.key) or [])
    save_document(doc, path)

    print(f"Removed {removed} item(s) from {args.key} in {_display(path, root)}")
    return 0


def _run_ts_backup(args) -> int:
    config = load_config(args)
    root = project_root_for(args)
    _, path = _spec_for_edit(args, root, config)

    backup = copy_snapshot(path, suffix=config.spec.suffix)
    print(f"Backed up {_display(path, root)} -> {backup.name}")
    return 0


def _run_ts_restore(args) -> int:
    config = load_config(args)
    root = project_root_for(args)

    backup = Path(args.tspec)
    if not backup.is_file():
        selection = _require_package(args, root)
        backup = selection.directory / args.tspec

    target = restore_snapshot(backup, suffix=config.spec.suffix)
    print(f"Restored {_display(target, root)} from {backup.name}")
    return 0
