"""GasGuard: AI rule governance for Google Apps Script projects."""

__version__ = "0.1.0"
__author__ = "GasGuard Contributors"
__description__ = "AI rule governance for Google Apps Script projects"

from .audit import AuditSession
from .catalog import load_templates
from .discovery import find_projects
from .injector import inject_governance, merge_ignore_patterns
from .models import Project, RuleSource, SourceKind, Template, TemplateOrigin
from .state import RuleSourceState

__all__ = [
    "AuditSession",
    "Project",
    "RuleSource",
    "RuleSourceState",
    "SourceKind",
    "Template",
    "TemplateOrigin",
    "find_projects",
    "inject_governance",
    "load_templates",
    "merge_ignore_patterns",
]
