"""
Expense Tracker - Source Package

A personal finance tracker: record income and expenses in several
currencies, see balances and category breakdowns in one display
currency, and track spending against per-category budgets.

DESIGN PRINCIPLES:
1. Validate before writing, refresh only after a successful write
2. Fail early, fail visibly
3. No silent corrections
4. Every write must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
