"""Settings loader with schema validation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal

import jsonschema
import yaml
from pydantic import BaseModel, Field, ValidationError

from .constants import CONFIG_FILENAME, CUSTOM_RULES_FILENAME, TEMPLATES_DIRNAME
from .exceptions import ConfigError

logger = logging.getLogger(__name__)

SETTINGS_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "GasGuard Settings",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "template_dir": {"type": "string", "minLength": 1},
        "custom_rules_file": {"type": "string", "minLength": 1},
        "default_scan": {"type": "string", "enum": [".", ".."]},
    },
}


class GuardSettings(BaseModel):
    """Resolved locations GasGuard reads from and writes to."""

    home: Path = Field(..., description="Directory the tool runs from")
    template_dir: Path = Field(..., description="External template directory")
    custom_rules_file: Path = Field(..., description="Externally-edited rule file")
    default_scan: Literal[".", ".."] = Field(
        default=".",
        description="Scan scope used when none is given",
    )

    def scan_path(self, scope: str | None = None) -> Path:
        """Resolve a scan scope ('.' or '..') against the tool home."""
        return (self.home / (scope or self.default_scan)).resolve()


def load_settings(home: Path | None = None) -> GuardSettings:
    """Load settings for a tool home directory.

    Args:
        home: Tool home directory, defaults to the current working directory

    Returns:
        Settings with every path made absolute

    Raises:
        ConfigError: If gasguard.yaml cannot be parsed or fails validation
    """
    home = Path(home or Path.cwd()).resolve()
    data: dict[str, Any] = {}

    config_path = home / CONFIG_FILENAME
    if config_path.exists():
        data = _read_config_file(config_path)
        logger.debug("Loaded settings from %s", config_path)

    try:
        return GuardSettings.model_validate({
            "home": home,
            "template_dir": home / data.get("template_dir", TEMPLATES_DIRNAME),
            "custom_rules_file": home / data.get("custom_rules_file", CUSTOM_RULES_FILENAME),
            "default_scan": data.get("default_scan", "."),
        })
    except ValidationError as e:
        msg = f"Settings validation failed: {e}"
        raise ConfigError(msg) from e


def _read_config_file(config_path: Path) -> dict[str, Any]:
    """Parse and schema-check gasguard.yaml."""
    try:
        with config_path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        msg = f"Failed to parse {config_path.name}: {e}"
        raise ConfigError(msg) from e
    except OSError as e:
        msg = f"Failed to read {config_path.name}: {e}"
        raise ConfigError(msg) from e

    if data is None:
        return {}

    try:
        jsonschema.validate(data, SETTINGS_SCHEMA)
    except jsonschema.ValidationError as e:
        msg = f"Schema validation failed: {e.message}"
        raise ConfigError(
            msg,
            details={"path": list(e.absolute_path), "file": str(config_path)},
        ) from e

    return data
