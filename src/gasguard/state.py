"""Active rule source selection."""

from __future__ import annotations

import logging
from pathlib import Path

from .exceptions import InvalidSelectionError, RuleFileNotFoundError
from .models import RuleSource, SourceKind, Template

logger = logging.getLogger(__name__)


class RuleSourceState:
    """Holds the one rule source every injection uses.

    The active source is always set: it starts at the first catalog entry and
    is only ever replaced, never cleared.
    """

    def __init__(self, templates: list[Template]) -> None:
        """Initialize state from a loaded catalog.

        Args:
            templates: Catalog entries; the first becomes the active source

        Raises:
            InvalidSelectionError: If the catalog is empty
        """
        if not templates:
            msg = "Cannot initialize rule source from an empty catalog"
            raise InvalidSelectionError(msg)

        self.templates = list(templates)
        self._active = RuleSource.from_template(self.templates[0])
        self._active_id: str | None = self.templates[0].id

    @property
    def active(self) -> RuleSource:
        """The rule source used for injection."""
        return self._active

    def is_active(self, template: Template) -> bool:
        """Whether a template is the current selection."""
        return self._active_id == template.id

    def select_from_catalog(self, index: int) -> RuleSource:
        """Make the catalog entry at a 0-based position active.

        Raises:
            InvalidSelectionError: If index is out of range
        """
        if not 0 <= index < len(self.templates):
            msg = f"Template index {index + 1} is out of range (1-{len(self.templates)})"
            raise InvalidSelectionError(msg, details={"index": index})

        self._active = RuleSource.from_template(self.templates[index])
        self._active_id = self.templates[index].id
        logger.debug("Active rule source: %s", self._active.display_name)
        return self._active

    def load_from_file(self, path: Path) -> RuleSource:
        """Make the contents of an externally-edited rule file active.

        Raises:
            RuleFileNotFoundError: If the file does not exist
        """
        path = Path(path)
        if not path.is_file():
            raise RuleFileNotFoundError(path)

        # newline="" keeps the file's line endings byte for byte
        with path.open(encoding="utf-8", newline="") as f:
            content = f.read()

        self._active = RuleSource(
            kind=SourceKind.FILE,
            display_name=f"External file ({path.name})",
            content=content,
        )
        self._active_id = None
        logger.debug("Active rule source loaded from %s", path)
        return self._active

    def export_to_file(self, path: Path) -> Path:
        """Overwrite a file with the active rule content."""
        path = Path(path)
        path.write_text(self._active.content, encoding="utf-8", newline="")
        logger.debug("Exported %s to %s", self._active.display_name, path)
        return path
