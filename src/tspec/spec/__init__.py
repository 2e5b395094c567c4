"""
Translation spec model, persistence and editing.

Usage::

    from tspec.spec import load_spec, hash_spec, save_snapshot

    spec = load_spec("tspec.ts.toml")
    print(spec.requires_nightly, hash_spec(spec))
"""

from .parser import (
    DEFAULT_SUFFIX,
    backup_filename,
    canonical_data,
    copy_snapshot,
    hash_spec,
    load_spec,
    next_sequence,
    parse_backup_base_name,
    parse_spec,
    restore_snapshot,
    save_snapshot,
    save_spec,
    serialize_spec,
    spec_name_from_path,
    write_atomic,
)
from .schema import (
    CargoConfig,
    LinkerConfig,
    OptLevel,
    PanicMode,
    RustcConfig,
    Spec,
    StripMode,
    VersionScript,
)

__all__ = [
    "DEFAULT_SUFFIX",
    "Spec",
    "CargoConfig",
    "RustcConfig",
    "LinkerConfig",
    "VersionScript",
    "PanicMode",
    "StripMode",
    "OptLevel",
    "parse_spec",
    "serialize_spec",
    "canonical_data",
    "load_spec",
    "save_spec",
    "hash_spec",
    "spec_name_from_path",
    "next_sequence",
    "backup_filename",
    "save_snapshot",
    "copy_snapshot",
    "parse_backup_base_name",
    "restore_snapshot",
    "write_atomic",
]
