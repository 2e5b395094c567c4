"""Pytest fixtures for tspec tests."""

from pathlib import Path

import pytest

from tspec import toolchain
from tspec.toolchain import ToolchainResult

PASSING_RESULT_LINE = (
    "test result: ok. 1 passed; 0 failed; 0 ignored; 0 measured; 0 filtered out; finished in 0.00s"
)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep the real user config and working directory out of every test."""
    user_config = tmp_path / "home" / ".config" / "tspec" / "config.toml"
    monkeypatch.setattr("tspec.config.USER_CONFIG_PATH", user_config)
    monkeypatch.setattr("tspec.cli.commands.config.USER_CONFIG_PATH", user_config)
    monkeypatch.chdir(tmp_path)
    return user_config


def write_package(directory: Path, name: str, binary: bool = True) -> Path:
    """Create a minimal cargo package."""
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "Cargo.toml").write_text(
        f'[package]\nname = "{name}"\nversion = "0.1.0"\nedition = "2021"\n'
    )
    src = directory / "src"
    src.mkdir(exist_ok=True)
    if binary:
        (src / "main.rs").write_text("fn main() {}\n")
    else:
        (src / "lib.rs").write_text("")
    return directory


@pytest.fixture
def make_workspace(tmp_path):
    """Factory building a workspace from ``{relative_dir: (name, has_binary)}``."""

    def _make(members, root=None):
        root = root or tmp_path / "ws"
        root.mkdir(parents=True, exist_ok=True)
        listed = ", ".join(f'"{rel}"' for rel in members)
        (root / "Cargo.toml").write_text(f"[workspace]\nmembers = [{listed}]\n")
        for rel, (name, binary) in members.items():
            write_package(root / rel, name, binary)
        return root

    return _make


def metadata_for(root: Path, members) -> dict:
    """``cargo metadata`` JSON for ``{relative_dir: (name, has_binary)}``."""
    packages = []
    for rel, (name, binary) in members.items():
        kind = ["bin"] if binary else ["lib"]
        packages.append(
            {
                "id": f"{name} 0.1.0 (path+file://{root / rel})",
                "name": name,
                "manifest_path": str(root / rel / "Cargo.toml"),
                "targets": [{"name": name, "kind": kind}],
            }
        )
    return {
        "packages": packages,
        "workspace_members": [p["id"] for p in packages],
        "workspace_root": str(root),
    }


def _flag_value(args, flag):
    if flag in args:
        return args[args.index(flag) + 1]
    return None


class FakeCargo:
    """Stands in for the toolchain subprocesses and records every call."""

    def __init__(self):
        self.calls = []
        self.binary_sizes = {}
        self.fail_packages = set()
        self.test_output = {}
        self.test_return_codes = {}
        self.exit_codes = {}
        self.runs = []
        self.metadata = None
        self.build_script_present = []

    def _package(self, args):
        return _flag_value(args, "-p")

    def _binary_path(self, args, cwd, package):
        target_dir = _flag_value(args, "--target-dir")
        base = Path(target_dir) if target_dir else Path(cwd) / "target"
        target = _flag_value(args, "--target")
        if target:
            base = base / (Path(target).stem if target.endswith(".json") else target)
        if "--release" in args:
            profile = "release"
        else:
            profile = _flag_value(args, "--profile") or "debug"
        return base / profile / package

    def run_toolchain(self, args, cwd, env=None, config=None, capture=False):
        args = list(args)
        self.calls.append({"args": args, "cwd": Path(cwd), "env": dict(env or {})})
        package = self._package(args)
        self.build_script_present.append(
            any(Path(cwd).rglob("build.rs")) if package else False
        )
        command = ["cargo", *args]
        if package in self.fail_packages:
            return ToolchainResult(success=False, return_code=101, command=command)
        if package in self.binary_sizes:
            binary = self._binary_path(args, cwd, package)
            binary.parent.mkdir(parents=True, exist_ok=True)
            binary.write_bytes(b"\0" * self.binary_sizes[package])
        return ToolchainResult(success=True, return_code=0, command=command)

    def run_tee(self, args, cwd, env=None, config=None, line_filter=None):
        args = list(args)
        self.calls.append({"args": args, "cwd": Path(cwd), "env": dict(env or {})})
        package = self._package(args)
        lines = self.test_output.get(package, [PASSING_RESULT_LINE])
        if line_filter is not None:
            lines = [line for line in lines if line_filter(line)]
        code = self.test_return_codes.get(package, 0)
        result = ToolchainResult(success=code == 0, return_code=code, command=["cargo", *args])
        return result, lines

    def cargo_metadata(self, project_root, config=None):
        return self.metadata

    def stripped_size(self, path, config=None):
        return path.stat().st_size // 2

    def strip_binary(self, path, config=None):
        path.write_bytes(path.read_bytes()[: path.stat().st_size // 2])

    def run_binary(self, path, args, cwd):
        self.runs.append({"binary": path, "args": list(args), "cwd": Path(cwd)})
        return self.exit_codes.get(path.name, 0)


@pytest.fixture
def fake_cargo(monkeypatch):
    """Replace every subprocess-backed toolchain call with a FakeCargo."""
    fake = FakeCargo()
    monkeypatch.setattr(toolchain, "run_toolchain", fake.run_toolchain)
    monkeypatch.setattr(toolchain, "run_tee", fake.run_tee)
    monkeypatch.setattr(toolchain, "cargo_metadata", fake.cargo_metadata)
    monkeypatch.setattr(toolchain, "stripped_size", fake.stripped_size)
    monkeypatch.setattr(toolchain, "strip_binary", fake.strip_binary)
    monkeypatch.setattr(toolchain, "run_binary", fake.run_binary)
    return fake


@pytest.fixture
def workspace_metadata():
    """The ``metadata_for`` helper, as a fixture."""
    return metadata_for


@pytest.fixture
def make_package():
    """The ``write_package`` helper, as a fixture."""
    return write_package
