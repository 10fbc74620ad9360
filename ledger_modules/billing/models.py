"""
Billing Domain Models (``ledger_modules.billing.models``).

Responsibility
--------------
Frozen dataclass value objects for invoices (billings) and the pure
status derivation used everywhere an invoice status is shown or filtered.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields are ``Money`` (integer minor units).
* ``status`` is never stored; it is derived from stage and amounts.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from uuid import UUID

from ledger_kernel.domain.values import Money


class InvoiceStage(Enum):
    """Stored lifecycle stage."""
    DRAFT = "Draft"
    POSTED = "Posted"


class InvoiceStatus(Enum):
    """Displayed status, derived from stage and collected amount."""
    DRAFT = "Draft"
    POSTED = "Posted"
    PARTIAL = "Partial"
    PAID = "Paid"


def derive_invoice_status(stage: InvoiceStage, stated: Money, collected: Money) -> InvoiceStatus:
    """
    Status of an invoice.

    Draft stays Draft regardless of amounts.  A posted invoice is Posted
    while nothing is collected, Partial while something but not everything
    is, and Paid once collected equals stated.
    """
    if stage is InvoiceStage.DRAFT:
        return InvoiceStatus.DRAFT
    if collected.is_zero:
        return InvoiceStatus.POSTED
    if collected < stated:
        return InvoiceStatus.PARTIAL
    return InvoiceStatus.PAID


@dataclass(frozen=True)
class InvoiceLineItem:
    """A single billed charge."""
    description: str
    amount: Money


@dataclass(frozen=True)
class Invoice:
    """A billing issued (or drafted) for a client."""
    id: UUID
    invoice_number: str | None
    stage: InvoiceStage
    issue_date: date
    client_ref: str
    company_ref: str
    line_items: tuple[InvoiceLineItem, ...]
    stated_amount: Money
    collected_amount: Money
    due_date: date | None = None
    booking_ref: str | None = None
    notes: str | None = None
    posted_at: datetime | None = None

    @property
    def currency(self) -> str:
        return self.stated_amount.currency.code

    @property
    def balance(self) -> Money:
        return self.stated_amount - self.collected_amount

    @property
    def status(self) -> InvoiceStatus:
        return derive_invoice_status(self.stage, self.stated_amount, self.collected_amount)

    @property
    def is_draft(self) -> bool:
        return self.stage is InvoiceStage.DRAFT
