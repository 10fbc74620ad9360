"""
Expense Domain Models (``ledger_modules.expense.models``).

Responsibility
--------------
Frozen dataclass value objects for expense vouchers and their three-stage
approval chain (Prepared, Noted, Approved), plus the pure rule checks the
tracker runs before any mutation.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.

Invariants enforced
-------------------
* Approval stages complete strictly in order.
* A completed stage is never re-completed or reverted.
* Paid requires the Approved stage; Paid is terminal.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from uuid import UUID

from ledger_kernel.domain.values import Money
from ledger_kernel.exceptions import (
    AlreadyPaidError,
    ApprovalIncompleteError,
    ExpenseNotSubmittedError,
    InvalidApprovalStageError,
    OutOfOrderApprovalError,
    StageAlreadyCompletedError,
)
from ledger_modules.categories.models import ExpenseType


class ExpenseStatus(Enum):
    """Expense lifecycle states."""
    DRAFT = "Draft"
    UNPAID = "Unpaid"
    PAID = "Paid"


class ApprovalStage(Enum):
    """Sign-off stages, in the order they must complete."""
    PREPARED = "Prepared"
    NOTED = "Noted"
    APPROVED = "Approved"


APPROVAL_ORDER: tuple[ApprovalStage, ...] = (
    ApprovalStage.PREPARED,
    ApprovalStage.NOTED,
    ApprovalStage.APPROVED,
)


class StageState(Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"


@dataclass(frozen=True)
class ApprovalStep:
    """One stage of the chain; ``by`` and ``at`` are set once completed."""
    stage: ApprovalStage
    by: str | None = None
    at: datetime | None = None

    @property
    def state(self) -> StageState:
        return StageState.COMPLETED if self.by is not None else StageState.PENDING

    @property
    def is_completed(self) -> bool:
        return self.by is not None


@dataclass(frozen=True)
class ApprovalChain:
    """Prepared -> Noted -> Approved."""
    prepared: ApprovalStep = ApprovalStep(ApprovalStage.PREPARED)
    noted: ApprovalStep = ApprovalStep(ApprovalStage.NOTED)
    approved: ApprovalStep = ApprovalStep(ApprovalStage.APPROVED)

    @property
    def steps(self) -> tuple[ApprovalStep, ...]:
        return (self.prepared, self.noted, self.approved)

    def step(self, stage: ApprovalStage) -> ApprovalStep:
        return self.steps[APPROVAL_ORDER.index(stage)]

    def first_pending(self) -> ApprovalStage | None:
        for step in self.steps:
            if not step.is_completed:
                return step.stage
        return None

    def pending_stages(self) -> tuple[ApprovalStage, ...]:
        return tuple(s.stage for s in self.steps if not s.is_completed)

    @property
    def is_complete(self) -> bool:
        return self.approved.is_completed


def parse_stage(stage: ApprovalStage | str) -> ApprovalStage:
    if isinstance(stage, ApprovalStage):
        return stage
    try:
        return ApprovalStage(stage)
    except ValueError:
        raise InvalidApprovalStageError(str(stage)) from None


def check_can_advance(
    expense_id: UUID, status: ExpenseStatus, chain: ApprovalChain, stage: ApprovalStage
) -> None:
    """
    Raise if ``stage`` cannot be completed now.

    Checks, in order: the expense is not Paid, every earlier stage is
    complete, and ``stage`` itself is still pending.
    """
    if status is ExpenseStatus.PAID:
        raise AlreadyPaidError(str(expense_id))
    for earlier in APPROVAL_ORDER[: APPROVAL_ORDER.index(stage)]:
        if not chain.step(earlier).is_completed:
            raise OutOfOrderApprovalError(str(expense_id), stage.value, earlier.value)
    step = chain.step(stage)
    if step.is_completed:
        raise StageAlreadyCompletedError(str(expense_id), stage.value, step.by)


def check_can_pay(expense_id: UUID, status: ExpenseStatus, chain: ApprovalChain) -> None:
    """Raise unless a submitted, fully approved expense may be marked paid."""
    if status is ExpenseStatus.PAID:
        raise AlreadyPaidError(str(expense_id))
    if status is ExpenseStatus.DRAFT:
        raise ExpenseNotSubmittedError(str(expense_id))
    if not chain.is_complete:
        raise ApprovalIncompleteError(
            str(expense_id), [s.value for s in chain.pending_stages()]
        )


@dataclass(frozen=True)
class ExpenseLineItem:
    """One particular on the voucher."""
    particular: str
    amount: Money
    description: str | None = None


@dataclass(frozen=True)
class Expense:
    """An expense voucher."""
    id: UUID
    expense_number: str
    expense_date: date
    category_id: UUID
    category_name: str
    company_ref: str
    payee: str
    expense_type: ExpenseType
    payment_channel: str
    line_items: tuple[ExpenseLineItem, ...]
    total_amount: Money
    status: ExpenseStatus
    approval: ApprovalChain
    booking_ref: str | None = None
    paid_at: datetime | None = None

    @property
    def currency(self) -> str:
        return self.total_amount.currency.code
