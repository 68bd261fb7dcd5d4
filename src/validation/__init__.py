"""Ledger policy validation package."""

from src.validation.validator import TransactionValidator

__all__ = ["TransactionValidator"]
