"""Ledger package: state container and amount parsing."""

from src.ledger.amounts import InvalidAmountError, parse_amount, to_money
from src.ledger.ledger import (
    Ledger,
    LedgerError,
    TargetContributionError,
    TargetNotFoundError,
)

__all__ = [
    "InvalidAmountError",
    "Ledger",
    "LedgerError",
    "TargetContributionError",
    "TargetNotFoundError",
    "parse_amount",
    "to_money",
]
