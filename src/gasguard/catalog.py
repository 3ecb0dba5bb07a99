"""Rule template catalog with built-in fallback."""

from __future__ import annotations

import logging
from pathlib import Path

from .exceptions import InvalidSelectionError
from .models import Template, TemplateOrigin

logger = logging.getLogger(__name__)

HYBRID_RULES = """\
# GAS Executive Advisor Protocol (Hybrid Protocol v5.0)

## 1. Core principle: cost and architecture together
- **Cost discipline:** Default to **Gemini 1.5 Flash**. Never read `package-lock.json` or `*.log`.
- **Thinking partner:** You are an architecture advisor, not a plain executor. If a request has a logic gap or an operational risk, challenge it in Phase 1.

## 2. Mandatory two-phase protocol
### Phase 1: Plan
Before producing code, submit a short report:
1. **Essence of the request:** the core goal as you understand it.
2. **Advisory challenge:** point out risks (race conditions, quotas) and propose alternatives.
3. **Execution blueprint:** which files will change?
4. **Stop point:** wait for the user to reply "Go".

### Phase 2: Execute
- Once authorized, execute precisely.
- After delivery, proactively suggest the next step.

## 3. GAS technical boundaries
- **Physical isolation:** source lives in `src/`.
- **Environment protection:** never use `require` (except in tests); native V8 only.
- **Batching:** never read or write a Spreadsheet inside a loop.
"""

ARCHITECT_RULES = """\
# GAS Executive Advisor and Thinking Partner Protocol (Executive Protocol)

## 1. Role: thinking partner
- **Not a plain executor:** you own architecture decisions and logic validation. Never translate user instructions into code without thinking.
- **Architecture over code:** your value is predicting problems, not fixing syntax.
- **Constructive pushback:** if a request will make operations harder, challenge it in Phase 1.

## 2. Mandatory two-phase protocol
### Phase 1: Plan
1. **Restate the essence of the request**
2. **Mandatory challenge:** find logic gaps or execution risks.
3. **Execution blueprint**
4. **Confirmation:** stop and wait for the user to reply "Go".

### Phase 2: Execute and deliver
- Produce code only after authorization.

## 3. GAS technical boundaries and conventions
- **Physical isolation:** source must live strictly in `src/`.
- **No secrets in code:** never hard-code credentials.
- **Batching:** never read or write a Spreadsheet repeatedly inside a loop.

## 4. Communication style
- Precise, calm, concise.
- Skip filler such as "Sure, no problem"; start directly from the reasoning.
"""

COST_SAVER_RULES = """\
# GAS Cost Control Protocol (Cost Protocol v4.0)

## 1. Absolute directive: cost first
Your work consumes the user's paid quota. Follow these rules:
- **Model:** unless the user explicitly asks otherwise, you **must** use **Gemini 1.5 Flash**.
- **Token budget:**
    - Never read `package-lock.json` or `*.log`.
    - Never run `ls -R` or read more than 2 unrelated files.
    - Always pass `--silent` when running tests or commands.

## 2. Workflow
- Return code diffs, never rewrite whole files.
- Skip lengthy explanations; give the fix directly.
"""

BUILTIN_TEMPLATES: tuple[Template, ...] = (
    Template(
        id="hybrid",
        display_name="Hybrid (recommended)",
        content=HYBRID_RULES,
        origin=TemplateOrigin.BUILTIN,
    ),
    Template(
        id="architect",
        display_name="Architect (strict)",
        content=ARCHITECT_RULES,
        origin=TemplateOrigin.BUILTIN,
    ),
    Template(
        id="cost_saver",
        display_name="Cost Saver",
        content=COST_SAVER_RULES,
        origin=TemplateOrigin.BUILTIN,
    ),
)


def load_templates(template_dir: Path) -> list[Template]:
    """Load the template catalog.

    External markdown templates replace the built-in set entirely; the
    built-ins are only returned when no external template is found.

    Args:
        template_dir: Directory holding external *.md templates (may not exist)

    Returns:
        External templates in name order, or the three built-in templates
    """
    external = _load_external_templates(Path(template_dir))
    if external:
        logger.info("Loaded %d external templates from %s", len(external), template_dir)
        return external

    logger.info("Using built-in templates")
    return list(BUILTIN_TEMPLATES)


def _load_external_templates(template_dir: Path) -> list[Template]:
    if not template_dir.is_dir():
        return []

    try:
        files = sorted(p for p in template_dir.glob("*.md") if p.is_file())
        return [_template_from_file(path) for path in files]
    except OSError as e:
        logger.debug("Template directory %s unreadable: %s", template_dir, e)
        return []


def _template_from_file(path: Path) -> Template:
    with path.open(encoding="utf-8", errors="replace", newline="") as f:
        content = f.read()
    return Template(
        id=path.stem,
        display_name=heading_title(content) or path.stem,
        content=content,
        origin=TemplateOrigin.EXTERNAL,
    )


def heading_title(content: str) -> str | None:
    """Return the text of the first level-one markdown heading, if any."""
    for line in content.split("\n"):
        if line.startswith("# "):
            return line[2:].strip()
    return None


def find_template(templates: list[Template], template_id: str) -> Template:
    """Look up a catalog template by id.

    Raises:
        InvalidSelectionError: If no template has that id
    """
    for template in templates:
        if template.id == template_id:
            return template

    available = ", ".join(t.id for t in templates)
    msg = f"Unknown template '{template_id}' (available: {available})"
    raise InvalidSelectionError(msg, details={"template_id": template_id})
