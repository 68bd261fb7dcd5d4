"""
Bill Template Registry

A template describes how to find the total on bills from one
locale/currency family: an ordered list of regular expressions, each
capturing exactly one amount group, and a validator that decides
whether a captured candidate is plausible.

DESIGN DECISION: Pattern order IS the priority.
Labelled "total" patterns come first, currency-adjacent patterns next,
bare end-of-line numbers last. The late patterns match almost anything,
so they are only usable because the validator rejects implausible
candidates.
"""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional


AMOUNT_FORMAT = re.compile(r"^\d+[.,]\d{2}$", re.ASCII)

MAX_PLAUSIBLE_AMOUNT = Decimal("1000000")

# Round amounts above this are treated as quantities unless a total keyword is nearby
ROUND_AMOUNT_THRESHOLD = Decimal("100")

TOTAL_KEYWORDS = re.compile(
    r"(?:total|gesamt|summe|betrag|amount|zahlen|brutto|rechnung)",
    re.IGNORECASE,
)


class TemplateConfigurationError(ValueError):
    """A template is malformed (e.g. a pattern without a capture group)."""
    pass


AmountValidator = Callable[[str, str], bool]


@dataclass(frozen=True)
class BillTemplate:
    """
    Static description of one bill format.

    Templates are process-wide constants; construction fails loudly
    if any pattern does not capture exactly one group.
    """

    name: str
    currency_code: str
    patterns: tuple[re.Pattern, ...]
    validate: AmountValidator

    def __post_init__(self):
        if not self.patterns:
            raise TemplateConfigurationError(f"Template {self.name} has no patterns")
        for index, pattern in enumerate(self.patterns):
            if pattern.groups != 1:
                raise TemplateConfigurationError(
                    f"Pattern {index} of template {self.name} must capture exactly "
                    f"one group, found {pattern.groups}: {pattern.pattern!r}"
                )


# =============================================================================
# VALIDATION HELPERS
# =============================================================================

def parse_candidate(amount: str) -> Optional[Decimal]:
    """Parse a candidate such as '45,90' or '45.90'. None if unparseable."""
    try:
        return Decimal(amount.replace(",", "."))
    except InvalidOperation:
        return None


def common_validation(amount: str, text: str) -> bool:
    """
    Checks shared by every template.

    - exactly one separator followed by two digits
    - strictly positive
    - not above MAX_PLAUSIBLE_AMOUNT
    """
    if not AMOUNT_FORMAT.match(amount):
        return False

    value = parse_candidate(amount)
    if value is None:
        return False
    if value <= 0 or value > MAX_PLAUSIBLE_AMOUNT:
        return False

    return True


def find_amount_context(text: str, amount: str) -> list[str]:
    """
    Collect the lines around every occurrence of an amount.

    For each line containing the amount verbatim, the line above,
    the line itself and the line below are added (bounds-checked).
    """
    lines = text.split("\n")
    context = []

    for i, line in enumerate(lines):
        if amount in line:
            if i > 0:
                context.append(lines[i - 1])
            context.append(line)
            if i < len(lines) - 1:
                context.append(lines[i + 1])

    return context


def has_total_context(text: str, amount: str) -> bool:
    return any(TOTAL_KEYWORDS.search(line) for line in find_amount_context(text, amount))


def validate_german_amount(amount: str, text: str) -> bool:
    """
    Validator for German invoices and receipts.

    Large round numbers (no cents, above 100) are usually quantities,
    article numbers or postcodes, so they only pass when a total keyword
    appears on the same line or a neighbouring one.
    """
    if not common_validation(amount, text):
        return False

    value = parse_candidate(amount)

    if value % 1 == 0 and value > ROUND_AMOUNT_THRESHOLD:
        if not has_total_context(text, amount):
            return False

    return True


# =============================================================================
# TEMPLATES
# =============================================================================

def _compile(*patterns: tuple[str, int]) -> tuple[re.Pattern, ...]:
    # ASCII digits only; OCR output can contain other Unicode digit runs
    return tuple(re.compile(source, flags | re.ASCII) for source, flags in patterns)


GERMAN_TEMPLATE = BillTemplate(
    name="German",
    currency_code="EUR",
    patterns=_compile(
        # Labelled totals with optional currency
        (r"(?:TOTAL|GESAMT|SUMME|BETRAG|AMOUNT|ZAHLEN)\s*(?:EUR|€)?\s*(\d+[.,]\d{2})\b", re.I),
        (r"(?:TOTAL|GESAMT|SUMME|BETRAG|AMOUNT|ZAHLEN)[^0-9€]*(\d+[.,]\d{2})\s*(?:EUR|€)?\b", re.I),

        # Invoice field names
        (r"(?:TOTAL|GESAMT)(?:\s+WITH\s+VAT)?\s*:?\s*(\d+[.,]\d{2})\b", re.I),
        (r"RECHNUNGSBETRAG\s*:?\s*(\d+[.,]\d{2})\b", re.I),
        (r"ENDSUMME\s*:?\s*(\d+[.,]\d{2})\b", re.I),
        (r"GESAMTBETRAG\s*:?\s*(\d+[.,]\d{2})\b", re.I),

        # Currency adjacent
        (r"(?:EUR|€)\s*(\d+[.,]\d{2})\b", 0),
        (r"(\d+[.,]\d{2})\s*(?:EUR|€)\b", 0),

        (r"Total\s*(\d+[.,]\d{2})\b", re.I),

        # End of line; relies on the validator
        (r".*?(\d+[.,]\d{2})\s*$", re.M),

        # Currency nearby
        (r"(\d+[.,]\d{2})[^0-9]*(?:EUR|€)", re.I),
        (r"(?:EUR|€)[^0-9]*(\d+[.,]\d{2})", re.I),

        # Table cell
        (r"\|\s*(\d+[.,]\d{2})\s*\|", 0),
        (r"\s+(\d+[.,]\d{2})\s*$", re.M),

        # After VAT
        (r"(?:UST|MWST|VAT)\s*(?:\d+%\s*)?(\d+[.,]\d{2})\b", re.I),

        # Anything amount-shaped, optionally followed by "inkl. MwSt"
        (r"(\d+[.,]\d{2})\s*(?:EUR|€)?\s*(?:INKL\.?\s*(?:UST|MWST|VAT))?", re.I),
    ),
    validate=validate_german_amount,
)

BILL_TEMPLATES: tuple[BillTemplate, ...] = (GERMAN_TEMPLATE,)


def get_template(name: str) -> BillTemplate:
    for template in BILL_TEMPLATES:
        if template.name.lower() == name.lower():
            return template
    raise KeyError(name)
