"""
tspec: declarative translation specs layered over cargo.

A translation spec is a small TOML document (``*.ts.toml``) listing the
compiler, codegen and linker settings for one build of a package. tspec
resolves a spec into a concrete cargo invocation and runs it, alone or in
batch across every member of a workspace.

Modules:
    spec: Spec model, canonical hashing, snapshots and the structural editor
    resolver: Spec to cargo arguments, environment and generated side files
    workspace: Member discovery and classification
    paths: Project root, member directories and spec pattern resolution
    batch: Build/test/run/compare fan-out across workspace members
    report: Summary tables and exit codes

Quick Start::

    from tspec import load_spec, hash_spec, resolve_spec

    spec = load_spec("apps/hello/tspec.ts.toml")
    print(hash_spec(spec))
"""

__version__ = "0.3.0"

from .exceptions import TspecError
from .spec import Spec, hash_spec, load_spec, parse_spec, save_spec, serialize_spec
from .resolver import resolve_spec

__all__ = [
    "__version__",
    "TspecError",
    "Spec",
    "hash_spec",
    "load_spec",
    "parse_spec",
    "save_spec",
    "serialize_spec",
    "resolve_spec",
]
