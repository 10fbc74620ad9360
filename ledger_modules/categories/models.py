"""
Expense Category Models (``ledger_modules.categories.models``).

A category supplies the default expense type and company for new
expenses.  Expenses copy these values when created and keep no link
back, so editing or removing a category never rewrites history.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from ledger_kernel.exceptions import InvalidExpenseTypeError


class ExpenseType(Enum):
    """Expense classification shown on the expense voucher."""
    OPERATIONS = "Operations"
    ADMIN = "Admin"
    COMMISSION = "Commission"
    ITEMIZED_COST = "Itemized Cost"

    @classmethod
    def parse(cls, value: "ExpenseType | str") -> "ExpenseType":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidExpenseTypeError(str(value)) from None


@dataclass(frozen=True)
class ExpenseCategory:
    """A named expense category with its defaults."""
    id: UUID
    name: str
    default_expense_type: ExpenseType
    default_company_ref: str | None = None
