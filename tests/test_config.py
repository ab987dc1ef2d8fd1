"""Tests for SKAgents configuration — file, overrides, precedence."""

from pathlib import Path

import pytest

from skagents import config as cfg
from skagents.errors import ConfigError, StoreIOError
from skagents.models import SkagentsConfig


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch) -> Path:
    """Point XDG_CONFIG_HOME at a temp dir and clear the skills-dir env var."""
    home = tmp_path / "xdg"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home))
    monkeypatch.delenv(cfg.SKILLS_DIR_ENV, raising=False)
    return home


class TestConfigFile:
    """Test reading and writing the config file."""

    def test_default_path_uses_xdg(self, isolated_config: Path):
        """The config file should live under XDG_CONFIG_HOME/skagents."""
        assert cfg.default_config_path() == isolated_config / "skagents" / "config.yaml"

    def test_missing_file_is_empty(self):
        """A missing config file should load as an empty config."""
        config = cfg.load_config()
        assert config.skills_dir is None
        assert config.optional_items() == []

    def test_set_then_get(self):
        """A set value should read back."""
        assert cfg.set_value("owner", "me") == "me"
        assert cfg.get_value("owner") == "me"

    def test_skills_dir_is_expanded(self, tmp_path: Path, monkeypatch):
        """Relative skills-dir values are stored as absolute paths."""
        monkeypatch.chdir(tmp_path)
        stored = cfg.set_value("skills-dir", "skills")
        assert stored == str(tmp_path / "skills")
        assert cfg.get_value("skills-dir") == stored

    def test_file_is_yaml(self):
        """The config file should be plain YAML keyed by file keys."""
        cfg.set_value("skills-dir", "/srv/skills")
        cfg.set_value("owner", "me")
        text = cfg.default_config_path().read_text()
        assert "skills-dir: /srv/skills" in text
        assert "owner: me" in text

    def test_get_missing_key_creates_file(self):
        """Getting an unset key fails but leaves an empty config file behind."""
        with pytest.raises(ConfigError, match="not set"):
            cfg.get_value("skills-dir")
        assert cfg.default_config_path().exists()

    def test_non_mapping_rejected(self):
        """A YAML list is not a valid config."""
        path = cfg.default_config_path()
        path.parent.mkdir(parents=True)
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError, match="mapping"):
            cfg.load_config()

    def test_invalid_yaml_rejected(self):
        """Unparseable YAML should raise ConfigError."""
        path = cfg.default_config_path()
        path.parent.mkdir(parents=True)
        path.write_text("skills-dir: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            cfg.load_config()

    def test_invalid_utf8_rejected(self):
        """A config file that is not UTF-8 should fail as a store error naming the file."""
        path = cfg.default_config_path()
        path.parent.mkdir(parents=True)
        path.write_bytes(b"owner: \xff\xfe\n")
        with pytest.raises(StoreIOError) as excinfo:
            cfg.load_config()
        assert str(path) in str(excinfo.value)

    def test_save_under_file_fails(self, isolated_config: Path):
        """An XDG_CONFIG_HOME that is a regular file makes saving fail with the path."""
        isolated_config.write_text("not a directory")
        with pytest.raises(StoreIOError) as excinfo:
            cfg.save_config(SkagentsConfig())
        assert str(cfg.default_config_path()) in str(excinfo.value)

    def test_empty_key_rejected(self):
        """An empty key cannot be set."""
        with pytest.raises(ConfigError):
            cfg.set_value("", "x")


class TestOverrides:
    """Test --config key:value parsing."""

    def test_parse(self):
        """Keys and values are split on ':' and stripped."""
        assert cfg.parse_overrides(["skills-dir:/a", "owner: me"]) == {"skills-dir": "/a", "owner": "me"}

    def test_value_may_contain_colon(self):
        """Only the first ':' separates key from value."""
        assert cfg.parse_overrides(["url:http://x"]) == {"url": "http://x"}

    @pytest.mark.parametrize("item", ["novalue", ":x"])
    def test_malformed(self, item: str):
        """A missing ':' or empty key is rejected."""
        with pytest.raises(ConfigError, match="key:value"):
            cfg.parse_overrides([item])


class TestResolveSkillsDir:
    """Precedence: override > flag > env > config file."""

    def test_nothing_configured(self):
        """No source at all is a ConfigError."""
        with pytest.raises(ConfigError, match="not configured"):
            cfg.resolve_skills_dir()

    def test_config_file(self):
        """The config file is the last resort."""
        cfg.set_value("skills-dir", "/from/config")
        assert cfg.resolve_skills_dir() == Path("/from/config")

    def test_env_beats_config(self, monkeypatch):
        """The environment variable wins over the config file."""
        cfg.set_value("skills-dir", "/from/config")
        monkeypatch.setenv(cfg.SKILLS_DIR_ENV, "/from/env")
        assert cfg.resolve_skills_dir() == Path("/from/env")

    def test_flag_beats_env(self, monkeypatch):
        """--skills-dir wins over the environment."""
        monkeypatch.setenv(cfg.SKILLS_DIR_ENV, "/from/env")
        assert cfg.resolve_skills_dir(flag="/from/flag") == Path("/from/flag")

    def test_override_beats_flag(self):
        """--config skills-dir:... wins over everything."""
        resolved = cfg.resolve_skills_dir({"skills-dir": "/from/override"}, flag="/from/flag")
        assert resolved == Path("/from/override")

    def test_home_is_expanded(self, tmp_path: Path, monkeypatch):
        """A leading '~' expands to the home directory."""
        monkeypatch.setenv("HOME", str(tmp_path))
        assert cfg.resolve_skills_dir(flag="~/skills") == tmp_path / "skills"


class TestResolveAgentsPath:
    """Test locating AGENTS.md."""

    def test_default_is_cwd(self, tmp_path: Path, monkeypatch):
        """Without a flag AGENTS.md is in the working directory."""
        monkeypatch.chdir(tmp_path)
        assert cfg.resolve_agents_path() == tmp_path / "AGENTS.md"

    def test_flag(self, tmp_path: Path):
        """--agents-path is used as given."""
        assert cfg.resolve_agents_path(str(tmp_path / "docs" / "AGENTS.md")) == tmp_path / "docs" / "AGENTS.md"
