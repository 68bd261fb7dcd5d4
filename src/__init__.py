"""
Expense Tracker - Source Package

A personal finance tracker: accounts, income and expense transactions,
budgets, savings targets, and bill scanning that reads the total off a
photographed receipt.

DESIGN PRINCIPLES:
1. Balances are derived from the transaction log, never edited directly
2. Fail early, fail visibly
3. No silent corrections
4. A scanned amount is a suggestion until the user submits it
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
