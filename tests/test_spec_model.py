"""Tests for the spec model, canonical serialization, hashing and snapshots."""

import os
import re

import pytest
from pydantic import ValidationError

from tspec.exceptions import InvalidValueError, PathNotFoundError, SpecIOError, SpecParseError
from tspec.spec import (
    OptLevel,
    PanicMode,
    Spec,
    StripMode,
    VersionScript,
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
from tspec.spec.schema import CargoConfig

FULL_SPEC = """\
panic = "immediate-abort"
strip = "symbols"

[cargo]
profile = "release"
target_triple = "x86_64-unknown-linux-gnu"
target_dir = "{name}-{hash}"
unstable = ["build-std-features"]

[cargo.config_key_value]
"profile.release.lto" = true
"build.jobs" = 4

[rustc]
opt_level = "z"
lto = true
codegen_units = 1
build_std = ["core", "alloc"]
flags = ["-C", "target-cpu=native"]

[linker]
args = ["-static", "-nostdlib"]

[linker.version_script]
global = ["tspec_entry"]
local = "*"
"""


class TestSpecParsing:
    """Test parsing spec text into the model."""

    def test_empty_spec(self):
        spec = parse_spec("")
        assert spec == Spec()
        assert spec.panic is None
        assert spec.linker.args == []

    def test_full_spec(self):
        spec = parse_spec(FULL_SPEC)

        assert spec.panic is PanicMode.IMMEDIATE_ABORT
        assert spec.strip is StripMode.SYMBOLS
        assert spec.cargo.profile == "release"
        assert spec.cargo.config_key_value == {"profile.release.lto": True, "build.jobs": 4}
        assert spec.rustc.opt_level is OptLevel.MIN_SIZE
        assert spec.rustc.lto is True
        assert spec.rustc.codegen_units == 1
        assert spec.rustc.build_std == ["core", "alloc"]
        assert spec.linker.version_script.global_ == ["tspec_entry"]

    def test_integer_opt_level(self):
        spec = parse_spec("[rustc]\nopt_level = 3\n")
        assert spec.rustc.opt_level is OptLevel.O3

    def test_strip_none_is_absent(self):
        """strip = "none" means no strip flag at all."""
        assert parse_spec('strip = "none"\n').strip is None

    def test_nested_config_table_is_flattened(self):
        nested = parse_spec("[cargo.config_key_value.profile.release]\nlto = true\n")
        quoted = parse_spec('[cargo.config_key_value]\n"profile.release.lto" = true\n')
        assert nested == quoted

    def test_unknown_top_level_key_ignored(self):
        assert parse_spec('panic = "abort"\nnotes = "kept by the editor"\n').panic is PanicMode.ABORT

    @pytest.mark.parametrize(
        "text,fragment",
        [
            ('panic = "abrt"\n', "panic"),
            ("[rustc]\nspeed = 1\n", "rustc.speed"),
            ('[rustc]\nlto = "yes"\n', "rustc.lto"),
            ("[rustc]\ncodegen_units = -1\n", "rustc.codegen_units"),
            ('[rustc]\nopt_level = "fast"\n', "rustc.opt_level"),
            ('[cargo]\nprofile = ""\n', "cargo.profile"),
        ],
    )
    def test_invalid_values(self, text, fragment):
        with pytest.raises(SpecParseError, match=re.escape(fragment)):
            parse_spec(text)

    def test_malformed_toml(self):
        with pytest.raises(SpecParseError, match="invalid TOML"):
            parse_spec('panic = \n')

    def test_load_reports_file(self, tmp_path):
        path = tmp_path / "bad.ts.toml"
        path.write_text('panic = "abrt"\n')

        with pytest.raises(SpecParseError) as exc_info:
            load_spec(path)
        assert exc_info.value.context["file"] == str(path)

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(PathNotFoundError):
            load_spec(tmp_path / "missing.ts.toml")


class TestSpecModel:
    """Test model helpers."""

    def test_requires_nightly(self):
        assert parse_spec('panic = "immediate-abort"\n').requires_nightly
        assert parse_spec('[cargo]\nunstable = ["x"]\n').requires_nightly
        assert parse_spec('[rustc]\nbuild_std = ["core"]\n').requires_nightly
        assert not parse_spec('panic = "abort"\n').requires_nightly

    def test_panic_mode_flags(self):
        assert PanicMode.UNWIND.rustc_value is None
        assert PanicMode.ABORT.rustc_value == "abort"
        assert PanicMode.IMMEDIATE_ABORT.cargo_unstable_flag == "panic-immediate-abort"

    def test_config_args(self):
        cargo = CargoConfig(config_key_value={"a.b": True, "jobs": 3, "name": 'x"y'})
        assert cargo.config_args() == ["a.b=true", "jobs=3", 'name="x\\"y"']

    def test_config_args_sorted(self):
        cargo = CargoConfig(config_key_value={"profile.release.lto": True, "build.jobs": 2})
        assert cargo.config_args() == ["build.jobs=2", "profile.release.lto=true"]

    def test_version_script_render(self):
        script = VersionScript(**{"global": ["foo", "bar"]})
        assert script.render() == "{\n  global:\n    foo;\n    bar;\n  local:\n    *;\n};\n"

    def test_version_script_without_globals(self):
        assert "global:" not in VersionScript().render()

    def test_spec_is_frozen(self):
        spec = parse_spec('panic = "abort"\n')
        with pytest.raises(ValidationError):
            spec.panic = PanicMode.UNWIND


class TestCanonicalForm:
    """Test canonical serialization and hashing."""

    def test_round_trip(self):
        spec = parse_spec(FULL_SPEC)
        assert parse_spec(serialize_spec(spec)) == spec

    def test_empty_spec_serializes_empty(self):
        assert serialize_spec(Spec()) == ""

    def test_canonical_omits_unset_and_empty(self):
        data = canonical_data(parse_spec('[rustc]\nopt_level = 2\nflags = []\n'))
        assert data == {"rustc": {"opt_level": 2}}

    def test_hash_format(self):
        assert re.fullmatch(r"[0-9a-f]{8}", hash_spec(parse_spec(FULL_SPEC)))

    def test_hash_stable_across_round_trip(self):
        spec = parse_spec(FULL_SPEC)
        assert hash_spec(spec) == hash_spec(parse_spec(serialize_spec(spec)))

    def test_hash_ignores_formatting(self):
        plain = parse_spec('panic = "abort"\n[rustc]\nopt_level = 3\n')
        decorated = parse_spec(
            "# size build\npanic = 'abort'   # smaller\n\n\n[rustc]\nopt_level = \"3\"\n"
        )
        assert hash_spec(plain) == hash_spec(decorated)

    def test_hash_changes_with_content(self):
        assert hash_spec(parse_spec('panic = "abort"\n')) != hash_spec(parse_spec('panic = "unwind"\n'))
        assert hash_spec(Spec()) != hash_spec(parse_spec("[rustc]\nlto = false\n"))

    def test_hash_ignores_config_key_order(self):
        first = parse_spec(
            '[cargo.config_key_value]\n"profile.release.lto" = true\n"profile.release.opt-level" = 3\n'
        )
        second = parse_spec(
            '[cargo.config_key_value]\n"profile.release.opt-level" = 3\n"profile.release.lto" = true\n'
        )
        assert serialize_spec(first) == serialize_spec(second)
        assert hash_spec(first) == hash_spec(second)

    def test_hash_ignores_table_order(self):
        first = parse_spec('panic = "abort"\n[rustc]\nlto = true\n[cargo]\nprofile = "release"\n')
        second = parse_spec('panic = "abort"\n[cargo]\nprofile = "release"\n[rustc]\nlto = true\n')
        assert hash_spec(first) == hash_spec(second)

    def test_save_and_reload(self, tmp_path):
        """A loaded spec saved elsewhere parses back to the same values."""
        source = tmp_path / "a.ts.toml"
        source.write_text('panic = "abort"\n[linker]\nargs = ["-static", "-nostdlib"]\n')

        target = tmp_path / "out" / "b.ts.toml"
        save_spec(load_spec(source), target)

        spec = parse_spec(target.read_text())
        assert spec.panic is PanicMode.ABORT
        assert spec.linker.args == ["-static", "-nostdlib"]


class TestWriteAtomic:
    """Test atomic file replacement."""

    def test_preserves_mode(self, tmp_path):
        path = tmp_path / "spec.ts.toml"
        path.write_text("old")
        os.chmod(path, 0o600)

        write_atomic(path, b"new")

        assert path.read_bytes() == b"new"
        assert path.stat().st_mode & 0o777 == 0o600

    def test_no_temp_files_left(self, tmp_path):
        write_atomic(tmp_path / "x.ts.toml", b"data")
        assert [p.name for p in tmp_path.iterdir()] == ["x.ts.toml"]


class TestSnapshots:
    """Test numbered backups and restore."""

    def test_spec_name_from_path(self):
        assert spec_name_from_path("libs/foo/opt.ts.toml") == "opt"
        assert spec_name_from_path("notes.toml") == "notes"

    def test_backup_and_restore(self, tmp_path):
        original = tmp_path / "t2.ts.toml"
        content = b"# keep me\npanic = 'abort'   # odd spacing\n"
        original.write_bytes(content)
        spec_hash = hash_spec(load_spec(original))

        first = copy_snapshot(original)
        assert first.name == f"t2-001-{spec_hash}.ts.toml"
        assert first.read_bytes() == content

        original.write_text('panic = "unwind"\n')
        second = copy_snapshot(original)
        assert second.name.startswith("t2-002-")
        assert re.fullmatch(r"t2-\d{3}-[0-9a-f]{8}\.ts\.toml", second.name)

        original.write_text("")
        restored = restore_snapshot(second)
        assert restored == original
        assert original.read_bytes() == second.read_bytes()

    def test_next_sequence_ignores_other_files(self, tmp_path):
        for name in (
            "t2-notes.ts.toml",
            "t2-01-deadbeef.ts.toml",
            "t2-005-DEADBEEF.ts.toml",
            "t2-extra-004-deadbeef.ts.toml",
            "t2-003-deadbeef.toml",
        ):
            (tmp_path / name).write_text("")
        assert next_sequence("t2", tmp_path) == 1

        (tmp_path / "t2-007-0123abcd.ts.toml").write_text("")
        assert next_sequence("t2", tmp_path) == 8

    def test_sequence_exhausted(self):
        assert backup_filename("t2", 999, "0123abcd") == "t2-999-0123abcd.ts.toml"
        with pytest.raises(SpecIOError):
            backup_filename("t2", 1000, "0123abcd")

    def test_save_snapshot_is_canonical(self, tmp_path):
        spec = parse_spec("panic = 'abort'  # comment\n")
        path = save_snapshot(spec, "opt", tmp_path)
        assert path.read_text() == serialize_spec(spec)

    def test_unparseable_spec_cannot_be_backed_up(self, tmp_path):
        bad = tmp_path / "bad.ts.toml"
        bad.write_text("panic = \n")
        with pytest.raises(SpecParseError):
            copy_snapshot(bad)

    def test_parse_backup_base_name(self):
        assert parse_backup_base_name("my-spec-003-0123abcd.ts.toml") == "my-spec"

    @pytest.mark.parametrize("name", ["t2.ts.toml", "t2-1-0123abcd.ts.toml", "t2-001-0123abcd.toml"])
    def test_parse_backup_base_name_rejects(self, name):
        with pytest.raises(InvalidValueError, match="not a backup filename"):
            parse_backup_base_name(name)

    def test_restore_missing_backup(self, tmp_path):
        with pytest.raises(PathNotFoundError):
            restore_snapshot(tmp_path / "t2-001-0123abcd.ts.toml")
