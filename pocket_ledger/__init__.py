"""
Pocket Ledger - Source Package

Personal finance tracking: accounts (cash pools) and the income/expense
transactions recorded against them.

DESIGN PRINCIPLES:
1. Only the ledger engine mutates account balances
2. Fail early, fail visibly
3. No silent corrections
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Pocket Ledger Team"
