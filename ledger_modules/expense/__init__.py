"""
Expense Module.

Expense vouchers, their line items, and the Prepared / Noted / Approved
sign-off chain that gates payment.  ``ExpenseApprovalTracker`` lives in
``ledger_modules.expense.service``.
"""

from ledger_modules.expense.models import (
    ApprovalChain,
    ApprovalStage,
    ApprovalStep,
    Expense,
    ExpenseLineItem,
    ExpenseStatus,
    StageState,
)
from ledger_modules.expense.workflows import EXPENSE_WORKFLOW

__all__ = [
    "ApprovalChain",
    "ApprovalStage",
    "ApprovalStep",
    "EXPENSE_WORKFLOW",
    "Expense",
    "ExpenseLineItem",
    "ExpenseStatus",
    "StageState",
]
