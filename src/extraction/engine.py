"""
Amount Extraction Engine

Picks the bill total out of recognised text.

Templates are tried in order, and within a template its patterns are
tried in order. For each pattern only the first regex match in the text
is considered. The first candidate that the template's validator accepts
wins; candidates are never scored against each other.

This module is pure: no I/O, no state, same input gives same output.
"""

from typing import Optional, Sequence

import structlog

from src.extraction.templates import BILL_TEMPLATES, BillTemplate
from src.models.results import ExtractionResult


logger = structlog.get_logger(__name__)


def _match_template(text: str, template: BillTemplate) -> Optional[tuple[int, str]]:
    for index, pattern in enumerate(template.patterns):
        match = pattern.search(text)
        if match is None or match.group(1) is None:
            continue
        candidate = match.group(1).strip()
        if template.validate(candidate, text):
            return index, candidate
    return None


def find_amount_in_text(text: str, template: BillTemplate) -> Optional[str]:
    """Run one template over the text. Returns the first validated candidate."""
    found = _match_template(text, template)
    return found[1] if found else None


def extract(
    text: str,
    templates: Sequence[BillTemplate] = BILL_TEMPLATES,
) -> ExtractionResult:
    """
    Extract the total amount from recognised text.

    Returns:
        ExtractionResult whose amount is None when nothing validated.
    """
    for template in templates:
        found = _match_template(text, template)
        if found is not None:
            pattern_index, amount = found
            logger.debug(
                "amount_extracted",
                template=template.name,
                pattern_index=pattern_index,
                amount=amount,
            )
            return ExtractionResult(
                amount=amount,
                raw_text=text,
                template_name=template.name,
            )

    logger.debug("amount_not_found", text_length=len(text), templates=len(templates))
    return ExtractionResult(amount=None, raw_text=text)


def extract_amount(
    text: str,
    templates: Sequence[BillTemplate] = BILL_TEMPLATES,
) -> Optional[str]:
    """Convenience wrapper returning only the amount string (or None)."""
    return extract(text, templates).amount
