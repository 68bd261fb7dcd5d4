"""Bill amount extraction package."""

from src.extraction.engine import extract, extract_amount, find_amount_in_text
from src.extraction.templates import (
    BILL_TEMPLATES,
    GERMAN_TEMPLATE,
    BillTemplate,
    TemplateConfigurationError,
    common_validation,
    find_amount_context,
    get_template,
    validate_german_amount,
)

__all__ = [
    "BILL_TEMPLATES",
    "GERMAN_TEMPLATE",
    "BillTemplate",
    "TemplateConfigurationError",
    "common_validation",
    "extract",
    "extract_amount",
    "find_amount_context",
    "find_amount_in_text",
    "get_template",
    "validate_german_amount",
]
