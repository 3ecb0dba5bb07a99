"""Core data models for GasGuard."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class TemplateOrigin(str, Enum):
    """Where a catalog template was loaded from."""

    BUILTIN = "builtin"
    EXTERNAL = "external"


class SourceKind(str, Enum):
    """Provenance of the active rule source."""

    TEMPLATE = "template"
    EXTERNAL = "external"
    FILE = "file"


class Template(BaseModel):
    """A selectable rule template."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique identifier within the catalog")
    display_name: str = Field(..., description="Human-readable template name")
    content: str = Field(..., description="Rule document text")
    origin: TemplateOrigin = Field(..., description="Built-in or external template")


class RuleSource(BaseModel):
    """The rule document currently injected into projects."""

    model_config = ConfigDict(frozen=True)

    kind: SourceKind = Field(..., description="Provenance of the content")
    display_name: str = Field(..., description="Name shown in menus and reports")
    content: str = Field(..., description="Rule document text")

    @classmethod
    def from_template(cls, template: Template) -> RuleSource:
        """Build a rule source from a catalog template."""
        kind = (
            SourceKind.TEMPLATE
            if template.origin == TemplateOrigin.BUILTIN
            else SourceKind.EXTERNAL
        )
        return cls(kind=kind, display_name=template.display_name, content=template.content)


class Project(BaseModel):
    """One managed project as seen by a single audit scan."""

    index: int = Field(..., description="1-based position in the report")
    path: Path = Field(..., description="Absolute project directory")
    name: str = Field(..., description="Directory name")
    identifier: str = Field(..., description="Truncated script id for display")
    protected: bool = Field(..., description="Whether a rule-surface file exists")


class InjectionResult(BaseModel):
    """Outcome of injecting governance into one directory."""

    path: Path = Field(..., description="Target directory")
    written_files: list[Path] = Field(
        default_factory=list,
        description="Rule-surface files that were overwritten",
    )
    added_patterns: list[str] = Field(
        default_factory=list,
        description="Ignore patterns newly appended to .gitignore",
    )

    @property
    def ignore_updated(self) -> bool:
        """Whether .gitignore gained any pattern."""
        return bool(self.added_patterns)


class InjectionFailure(BaseModel):
    """A project whose injection raised an I/O error."""

    path: Path = Field(..., description="Target directory")
    error: str = Field(..., description="Error message")


class RemediationReport(BaseModel):
    """Outcome of fixing every unprotected project in an audit report."""

    repaired: list[Project] = Field(default_factory=list)
    failed: list[InjectionFailure] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        """Whether every attempted project was repaired."""
        return not self.failed
