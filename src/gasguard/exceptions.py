"""Custom exceptions for GasGuard."""

from pathlib import Path
from typing import Any


class GasGuardError(Exception):
    """Base exception for all GasGuard errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}


class RuleFileNotFoundError(GasGuardError):
    """Raised when the externally-edited rule file does not exist."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Rule file not found: {path}", details={"path": str(path)})
        self.path = path


class MarkerParseError(GasGuardError):
    """Raised when a project marker file cannot be read or parsed."""


class InvalidSelectionError(GasGuardError):
    """Raised when a catalog, template or report selection is out of range."""


class ConfigError(GasGuardError):
    """Raised when gasguard.yaml is invalid."""


class ScaffoldError(GasGuardError):
    """Raised when project scaffolding fails."""
