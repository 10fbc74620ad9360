"""
Categories Module.

Expense categories and the defaults they hand to new expenses.
``CategoryRegistry`` lives in ``ledger_modules.categories.service``.
"""

from ledger_modules.categories.models import ExpenseCategory, ExpenseType

__all__ = ["ExpenseCategory", "ExpenseType"]
