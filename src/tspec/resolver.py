"""
Spec resolution.

Lowers a spec to everything one cargo invocation needs:
- the argument list (channel, subcommand, package, profile, target, -Z, --config)
- environment variables (RUSTFLAGS and TSPEC_SPEC_FILE)
- optional generated side files: a ``build.rs`` that passes linker
  arguments to the package's binary targets only, and a linker version script

The side ``build.rs`` is written only when the package ships none, and is
removed again once the subprocess exits (see ``prepared_side_files``). A
stale one left behind by a crash is reported, never deleted.

Example::

    resolution = resolve_spec(spec, subcommand="build", package="hello",
                              member_dir=pkg_dir, project_root=root)
    with prepared_side_files(resolution):
        run_toolchain(resolution.args, cwd=root, env=resolution.env)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional, Sequence

from .config import Config
from .exceptions import SpecIOError
from .paths import binary_names
from .spec.parser import hash_spec, spec_name_from_path
from .spec.schema import Spec

__all__ = [
    "BUILD_SCRIPT_MARKER",
    "GeneratedFile",
    "Resolution",
    "resolve_spec",
    "expand_target_dir",
    "profile_dir_name",
    "binary_path",
    "render_build_script",
    "prepared_side_files",
]

logger = logging.getLogger(__name__)

BUILD_SCRIPT_NAME = "build.rs"
BUILD_SCRIPT_MARKER = "// @generated by tspec: temporary, removed after the build"
SPEC_FILE_ENV = "TSPEC_SPEC_FILE"


@dataclass
class GeneratedFile:
    """A file the resolver wants on disk for the duration of one invocation."""

    path: Path
    content: str


@dataclass
class Resolution:
    """Concrete toolchain invocation for one spec."""

    args: list[str]
    env: dict[str, str] = field(default_factory=dict)
    rustflags: list[str] = field(default_factory=list)
    requires_nightly: bool = False
    profile_dir: str = "debug"
    target_name: Optional[str] = None
    target_dir: Optional[Path] = None
    build_script: Optional[GeneratedFile] = None
    version_script: Optional[GeneratedFile] = None
    spec_path: Optional[Path] = None
    spec_hash: Optional[str] = None
    binaries: list[str] = field(default_factory=list)


def expand_target_dir(template: str, name: str, spec_hash: str) -> str:
    """Expand ``{name}``/``<name>`` and ``{hash}`` in a target_dir template."""
    return (
        template.replace("{name}", name).replace("<name>", name).replace("{hash}", spec_hash)
    )


def profile_dir_name(profile: Optional[str], release: bool = False) -> str:
    """Output directory cargo uses for a profile; ``dev`` builds into ``debug``."""
    if profile is None:
        return "release" if release else "debug"
    if profile in ("debug", "dev"):
        return "debug"
    return profile


def _profile_args(profile: Optional[str], release: bool) -> list[str]:
    if profile is None:
        return ["--release"] if release else []
    if profile == "release":
        return ["--release"]
    if profile in ("debug", "dev"):
        return []
    return ["--profile", profile]


def _rust_string(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return escaped.replace("{", "{{").replace("}", "}}")


def render_build_script(binaries: Sequence[str], link_args: Sequence[str]) -> str:
    """Cargo build script passing ``link_args`` to the ``binaries`` targets only."""
    lines = [
        BUILD_SCRIPT_MARKER,
        "fn main() {",
        f'    println!("cargo:rerun-if-env-changed={SPEC_FILE_ENV}");',
    ]
    for binary in binaries:
        for arg in link_args:
            lines.append(
                f'    println!("cargo:rustc-link-arg-bin={_rust_string(binary)}={_rust_string(arg)}");'
            )
    lines.append("}")
    return "\n".join(lines) + "\n"


def _rustc_flags(spec: Spec) -> list[str]:
    flags: list[str] = []
    if spec.rustc.opt_level is not None:
        flags += ["-C", f"opt-level={spec.rustc.opt_level.value}"]
    if spec.panic is not None and spec.panic.rustc_value is not None:
        flags += ["-C", f"panic={spec.panic.rustc_value}"]
    if spec.rustc.lto:
        flags += ["-C", "lto=true"]
    if spec.rustc.codegen_units is not None:
        flags += ["-C", f"codegen-units={spec.rustc.codegen_units}"]
    if spec.strip is not None:
        flags += ["-C", f"strip={spec.strip.value}"]
    flags += spec.rustc.flags
    return flags


def _encode_rustflags(flags: Sequence[str]) -> dict[str, str]:
    if any(any(ch.isspace() for ch in flag) for flag in flags):
        return {"CARGO_ENCODED_RUSTFLAGS": "\x1f".join(flags)}
    return {"RUSTFLAGS": " ".join(flags)}


def resolve_spec(
    spec: Optional[Spec],
    *,
    subcommand: str,
    package: Optional[str] = None,
    release: bool = False,
    spec_path: Optional[Path] = None,
    member_dir: Optional[Path] = None,
    project_root: Optional[Path] = None,
    config: Optional[Config] = None,
    extra_args: Sequence[str] = (),
    binaries: Optional[Sequence[str]] = None,
) -> Resolution:
    """Translate ``spec`` into a toolchain invocation.

    A ``None`` spec resolves to a plain ``cargo SUBCOMMAND -p PACKAGE``.
    The spec's profile wins over ``release``; ``target_json`` wins over
    ``target_triple``; ``lto = false`` and an absent strip emit nothing.
    """
    config = config or Config()
    root = project_root or member_dir or Path.cwd()
    if binaries is None:
        binaries = binary_names(member_dir, package) if member_dir is not None else []
    binaries = list(binaries)

    if spec is None:
        args = [subcommand]
        if package:
            args += ["-p", package]
        args += _profile_args(None, release)
        args += extra_args
        return Resolution(
            args=args, profile_dir=profile_dir_name(None, release), binaries=binaries
        )

    spec_hash = hash_spec(spec)
    name = (
        spec_name_from_path(spec_path, config.spec.suffix)
        if spec_path is not None
        else config.spec.default_name
    )

    args: list[str] = []
    if spec.requires_nightly:
        args.append(f"+{config.toolchain.nightly_channel}")
    args.append(subcommand)
    if package:
        args += ["-p", package]
    args += _profile_args(spec.cargo.profile, release)

    target_name: Optional[str] = None
    if spec.cargo.target_json:
        target_json = Path(spec.cargo.target_json)
        if not target_json.is_absolute():
            base = spec_path.parent if spec_path is not None else (member_dir or root)
            target_json = base / target_json
        args += ["--target", str(target_json)]
        target_name = target_json.stem
        if spec.cargo.target_triple:
            logger.debug("target_json set; ignoring target_triple %s", spec.cargo.target_triple)
    elif spec.cargo.target_triple:
        args += ["--target", spec.cargo.target_triple]
        target_name = spec.cargo.target_triple

    target_dir: Optional[Path] = None
    if spec.cargo.target_dir:
        target_dir = root / "target" / expand_target_dir(spec.cargo.target_dir, name, spec_hash)
        args += ["--target-dir", str(target_dir)]

    unstable = list(spec.cargo.unstable)
    if spec.panic is not None and spec.panic.cargo_unstable_flag:
        if spec.panic.cargo_unstable_flag not in unstable:
            unstable.append(spec.panic.cargo_unstable_flag)
    for feature in unstable:
        args += ["-Z", feature]
    if spec.rustc.build_std:
        args += ["-Z", "build-std=" + ",".join(spec.rustc.build_std)]

    for pair in spec.cargo.config_args():
        args += ["--config", pair]
    args += extra_args

    link_args = list(spec.linker.args)
    version_script: Optional[GeneratedFile] = None
    if spec.linker.version_script is not None:
        script_path = (target_dir or root / "target") / "tspec" / f"{name}-{spec_hash}.ver"
        version_script = GeneratedFile(script_path, spec.linker.version_script.render())
        link_args.append(f"-Wl,--version-script={script_path}")

    build_script: Optional[GeneratedFile] = None
    if spec.linker.args and member_dir is not None and binaries:
        existing = member_dir / BUILD_SCRIPT_NAME
        if existing.exists():
            if _is_generated(existing):
                logger.warning(
                    "%s was generated by an earlier tspec run that did not finish; "
                    "delete it to let tspec manage linker arguments again",
                    existing,
                )
            else:
                logger.debug("%s exists; passing linker args through RUSTFLAGS", existing)
        else:
            build_script = GeneratedFile(existing, render_build_script(binaries, link_args))

    rustflags = _rustc_flags(spec)
    if build_script is None:
        for arg in link_args:
            rustflags += ["-C", f"link-arg={arg}"]

    env: dict[str, str] = {}
    if rustflags:
        env.update(_encode_rustflags(rustflags))
    if spec_path is not None:
        env[SPEC_FILE_ENV] = str(spec_path)

    return Resolution(
        args=args,
        env=env,
        rustflags=rustflags,
        requires_nightly=spec.requires_nightly,
        profile_dir=profile_dir_name(spec.cargo.profile, release),
        target_name=target_name,
        target_dir=target_dir,
        build_script=build_script,
        version_script=version_script,
        spec_path=spec_path,
        spec_hash=spec_hash,
        binaries=binaries,
    )


def _is_generated(path: Path) -> bool:
    try:
        with open(path, encoding="utf-8") as f:
            return f.readline().rstrip("\n") == BUILD_SCRIPT_MARKER
    except (OSError, UnicodeDecodeError):
        return False


def binary_path(resolution: Resolution, project_root: Path, binary: str) -> Path:
    """Where cargo leaves ``binary`` for this resolution."""
    base = resolution.target_dir or project_root / "target"
    if resolution.target_name:
        base = base / resolution.target_name
    return base / resolution.profile_dir / binary


@contextmanager
def prepared_side_files(resolution: Resolution) -> Iterator[None]:
    """Write generated files for one invocation; remove the build script afterwards.

    A build script that appeared since resolution is left alone.
    """
    written: list[Path] = []
    try:
        if resolution.version_script is not None:
            script = resolution.version_script
            try:
                script.path.parent.mkdir(parents=True, exist_ok=True)
                script.path.write_text(script.content, encoding="utf-8")
            except OSError as e:
                raise SpecIOError(f"cannot write version script: {e}", script.path) from e

        if resolution.build_script is not None:
            script = resolution.build_script
            if script.path.exists():
                logger.warning("%s appeared before the build; not overwriting it", script.path)
            else:
                try:
                    script.path.write_text(script.content, encoding="utf-8")
                except OSError as e:
                    raise SpecIOError(f"cannot write build script: {e}", script.path) from e
                written.append(script.path)
                logger.debug("Wrote %s", script.path)
        yield
    finally:
        for path in written:
            try:
                path.unlink()
                logger.debug("Removed %s", path)
            except FileNotFoundError:
                pass
