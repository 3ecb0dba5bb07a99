"""Fixed file names and pattern sets shared across GasGuard."""

from typing import Final

MARKER_FILENAME: Final[str] = ".clasp.json"
MARKER_ID_FIELD: Final[str] = "scriptId"

CURSOR_RULES_FILENAME: Final[str] = ".cursorrules"
CLINE_RULES_FILENAME: Final[str] = ".clinerules"
RULE_SURFACE_FILENAMES: Final[tuple[str, ...]] = (
    CURSOR_RULES_FILENAME,
    CLINE_RULES_FILENAME,
)

GITIGNORE_FILENAME: Final[str] = ".gitignore"
CUSTOM_RULES_FILENAME: Final[str] = "my-rules.md"
TEMPLATES_DIRNAME: Final[str] = "templates"
CONFIG_FILENAME: Final[str] = "gasguard.yaml"

REQUIRED_IGNORES: Final[tuple[str, ...]] = (
    "node_modules/",
    ".clasp.json",
    "creds.json",
    ".DS_Store",
    "dist/",
    "*.log",
    "package-lock.json",
    CLINE_RULES_FILENAME,
    CURSOR_RULES_FILENAME,
    CUSTOM_RULES_FILENAME,
)

IDENTIFIER_DISPLAY_LENGTH: Final[int] = 15
IDENTIFIER_MISSING: Final[str] = "N/A"
IDENTIFIER_UNKNOWN: Final[str] = "unknown"

# Entries left in a freshly scaffolded project root; everything else moves to src/.
SCAFFOLD_SYSTEM_FILES: Final[frozenset[str]] = frozenset({
    "node_modules",
    "src",
    "package.json",
    "package-lock.json",
    ".clasp.json",
    ".gitignore",
    ".git",
    ".DS_Store",
    CUSTOM_RULES_FILENAME,
})
