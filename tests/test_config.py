"""Tests for settings loading."""

import tempfile
from pathlib import Path

import pytest
import yaml

from gasguard.config import load_settings
from gasguard.exceptions import ConfigError


class TestLoadSettings:
    """Test gasguard.yaml handling."""

    @pytest.fixture
    def home(self) -> Path:
        """Create a temporary tool home."""
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir).resolve() / "tool"
            path.mkdir()
            yield path

    def test_defaults(self, home: Path) -> None:
        """Test settings without a config file."""
        settings = load_settings(home)

        assert settings.home == home
        assert settings.template_dir == home / "templates"
        assert settings.custom_rules_file == home / "my-rules.md"
        assert settings.default_scan == "."

    def test_defaults_to_cwd(self, home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that the current directory is the default home."""
        monkeypatch.chdir(home)
        assert load_settings().home == home

    def test_config_file_overrides(self, home: Path) -> None:
        """Test values read from gasguard.yaml."""
        config = {
            "template_dir": "rules/templates",
            "custom_rules_file": "team-rules.md",
            "default_scan": "..",
        }
        with open(home / "gasguard.yaml", "w") as f:
            yaml.dump(config, f)

        settings = load_settings(home)

        assert settings.template_dir == home / "rules" / "templates"
        assert settings.custom_rules_file == home / "team-rules.md"
        assert settings.default_scan == ".."

    def test_empty_config_file(self, home: Path) -> None:
        """Test that an empty file means defaults."""
        (home / "gasguard.yaml").write_text("")
        assert load_settings(home).template_dir == home / "templates"

    def test_unknown_key_rejected(self, home: Path) -> None:
        """Test schema validation of unknown settings."""
        (home / "gasguard.yaml").write_text("colour: blue\n")

        with pytest.raises(ConfigError, match="Schema validation failed"):
            load_settings(home)

    def test_invalid_scope_rejected(self, home: Path) -> None:
        """Test schema validation of default_scan."""
        (home / "gasguard.yaml").write_text("default_scan: /tmp\n")

        with pytest.raises(ConfigError) as exc_info:
            load_settings(home)

        assert exc_info.value.details["path"] == ["default_scan"]

    def test_invalid_yaml(self, home: Path) -> None:
        """Test that unparseable YAML raises ConfigError."""
        (home / "gasguard.yaml").write_text("template_dir: [unclosed\n")

        with pytest.raises(ConfigError, match="Failed to parse"):
            load_settings(home)

    def test_scan_path(self, home: Path) -> None:
        """Test resolving scan scopes against the home."""
        settings = load_settings(home)

        assert settings.scan_path() == home
        assert settings.scan_path(".") == home
        assert settings.scan_path("..") == home.parent
