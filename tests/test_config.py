"""Tests for configuration file support."""

import sys
import warnings

import pytest

from tspec.config import (
    KNOWN_KEYS,
    Config,
    ConfigError,
    DefaultsConfig,
    SpecConfig,
    ToolchainConfig,
    WorkspaceConfig,
    _find_project_config,
    _load_toml_file,
    generate_template,
    get_config_paths,
)

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


class TestConfigDataclasses:
    """Test configuration dataclass defaults."""

    def test_defaults_config_defaults(self):
        config = DefaultsConfig()
        assert config.verbose is False
        assert config.quiet is False
        assert config.fail_fast is False
        assert config.release is False

    def test_spec_config_defaults(self):
        """The default spec file is tspec.ts.toml."""
        config = SpecConfig()
        assert config.suffix == ".ts.toml"
        assert config.default_name == "tspec"
        assert config.default_filename == "tspec.ts.toml"

    def test_workspace_config_defaults(self):
        assert WorkspaceConfig().build_tools == ["tspec", "xt", "xtask"]

    def test_toolchain_config_defaults(self):
        config = ToolchainConfig()
        assert config.command == "cargo"
        assert config.nightly_channel == "nightly"
        assert config.strip_command == "strip"

    def test_build_tools_not_shared(self):
        """Each config gets its own build_tools list."""
        first = WorkspaceConfig()
        first.build_tools.append("extra")
        assert WorkspaceConfig().build_tools == ["tspec", "xt", "xtask"]


class TestConfigDiscovery:
    """Test config file discovery."""

    def test_find_project_config_in_current_dir(self, tmp_path):
        config_file = tmp_path / ".tspec.toml"
        config_file.write_text("[defaults]\nquiet = true\n")

        assert _find_project_config(tmp_path) == config_file.resolve()

    def test_find_project_config_in_parent(self, tmp_path):
        config_file = tmp_path / "tspec-config.toml"
        config_file.write_text("")
        nested = tmp_path / "apps" / "hello"
        nested.mkdir(parents=True)

        assert _find_project_config(nested) == config_file.resolve()

    def test_stops_at_git_root(self, tmp_path):
        """The search does not leave the repository."""
        (tmp_path / ".tspec.toml").write_text("")
        repo = tmp_path / "repo"
        (repo / ".git").mkdir(parents=True)

        assert _find_project_config(repo) is None

    def test_dotfile_preferred(self, tmp_path):
        (tmp_path / ".tspec.toml").write_text("")
        (tmp_path / "tspec-config.toml").write_text("")

        assert _find_project_config(tmp_path).name == ".tspec.toml"


class TestConfigLoading:
    """Test loading and merging config files."""

    def test_load_without_files(self, tmp_path):
        config = Config.load(tmp_path)
        assert config.defaults.release is False
        assert config.get_source("defaults.release") == "default"

    def test_load_project_config(self, tmp_path):
        config_file = tmp_path / ".tspec.toml"
        config_file.write_text(
            '[defaults]\nfail_fast = true\n\n[spec]\ndefault_name = "opt"\n'
        )

        config = Config.load(tmp_path)

        assert config.defaults.fail_fast is True
        assert config.spec.default_filename == "opt.ts.toml"
        assert config.get_source("spec.default_name") == str(config_file.resolve())

    def test_project_overrides_user(self, tmp_path, isolated_config):
        isolated_config.parent.mkdir(parents=True)
        isolated_config.write_text('[toolchain]\ncommand = "cargo-user"\nstrip_command = "llvm-strip"\n')
        (tmp_path / ".tspec.toml").write_text('[toolchain]\ncommand = "cargo-project"\n')

        config = Config.load(tmp_path)

        assert config.toolchain.command == "cargo-project"
        assert config.toolchain.strip_command == "llvm-strip"
        assert config.get_source("toolchain.strip_command") == str(isolated_config)

    def test_list_value(self, tmp_path):
        (tmp_path / ".tspec.toml").write_text('[workspace]\nbuild_tools = ["xtask", "gen"]\n')

        assert Config.load(tmp_path).workspace.build_tools == ["xtask", "gen"]

    def test_wrong_type_raises(self, tmp_path):
        (tmp_path / ".tspec.toml").write_text('[defaults]\nrelease = "yes"\n')

        with pytest.raises(ConfigError, match="defaults.release"):
            Config.load(tmp_path)

    def test_section_must_be_table(self, tmp_path):
        (tmp_path / ".tspec.toml").write_text('spec = "x"\n')

        with pytest.raises(ConfigError, match="must be a table"):
            Config.load(tmp_path)

    def test_invalid_toml_raises(self, tmp_path):
        bad = tmp_path / "bad.toml"
        bad.write_text("[defaults\n")

        with pytest.raises(ConfigError, match="Invalid TOML"):
            _load_toml_file(bad)

    def test_unknown_keys_warn(self, tmp_path):
        (tmp_path / ".tspec.toml").write_text("[defaults]\ncolour = true\n\n[extras]\nx = 1\n")

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            Config.load(tmp_path)

        messages = [str(w.message) for w in caught]
        assert any("defaults.colour" in m for m in messages)
        assert any("'extras'" in m for m in messages)


class TestTemplateAndPaths:
    """Test template generation and path reporting."""

    def test_template_is_valid_toml(self):
        data = tomllib.loads(generate_template())
        assert set(data) == set(KNOWN_KEYS)

    def test_template_mentions_every_key(self):
        template = generate_template()
        for section, keys in KNOWN_KEYS.items():
            assert f"[{section}]" in template
            for key in keys:
                assert f"# {key} =" in template

    def test_config_paths(self, tmp_path):
        (tmp_path / ".tspec.toml").write_text("")

        paths = get_config_paths()

        assert paths["user"] is None
        assert paths["project"] == (tmp_path / ".tspec.toml").resolve()
