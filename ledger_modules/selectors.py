"""
Ledger read paths (``ledger_modules.selectors``).

Responsibility:
    Filtered lists of invoices, collections and expenses; the open
    invoices of a client; the allocation rows behind a collection or an
    invoice; and a client's running totals.

Invariants enforced:
    - Read-only: nothing here adds, deletes, flushes or commits.
    - Invoice and collection statuses are not stored, so status filters
      are translated into amount predicates (see ``status_clause`` on the
      ORM models).
    - Results are frozen DTOs, never ORM instances.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from sqlalchemy import case, func, select

from ledger_config import get_active_settings
from ledger_kernel.domain.values import Money
from ledger_kernel.selectors.base import BaseSelector
from ledger_modules.allocation.models import PaymentAllocation
from ledger_modules.allocation.orm import PaymentAllocationModel
from ledger_modules.billing.models import Invoice, InvoiceStage, InvoiceStatus
from ledger_modules.billing.orm import InvoiceModel
from ledger_modules.categories.models import ExpenseType
from ledger_modules.collections.models import Collection, CollectionStatus
from ledger_modules.collections.orm import CollectionModel
from ledger_modules.expense.models import Expense, ExpenseStatus
from ledger_modules.expense.orm import ExpenseModel


@dataclass(frozen=True)
class ClientSummary:
    """A client's posted billings against what has been collected."""
    client_ref: str
    currency: str
    billed: Money
    collected: Money
    unapplied: Money
    open_invoice_count: int

    @property
    def outstanding(self) -> Money:
        return self.billed - self.collected


class LedgerSelector(BaseSelector):
    """Query helper over invoices, collections, expenses and allocations."""

    # =========================================================================
    # Invoices
    # =========================================================================

    def list_invoices(
        self,
        client_ref: str | None = None,
        company_ref: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        status: InvoiceStatus | str | None = None,
        booking_ref: str | None = None,
    ) -> tuple[Invoice, ...]:
        stmt = select(InvoiceModel)
        if client_ref is not None:
            stmt = stmt.where(InvoiceModel.client_ref == client_ref)
        if company_ref is not None:
            stmt = stmt.where(InvoiceModel.company_ref == company_ref)
        if booking_ref is not None:
            stmt = stmt.where(InvoiceModel.booking_ref == booking_ref)
        if date_from is not None:
            stmt = stmt.where(InvoiceModel.issue_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(InvoiceModel.issue_date <= date_to)
        if status is not None:
            stmt = stmt.where(InvoiceModel.status_clause(status))
        stmt = stmt.order_by(InvoiceModel.issue_date, InvoiceModel.created_at)
        return tuple(m.to_dto() for m in self.session.execute(stmt).scalars())

    def open_invoices(
        self, client_ref: str, company_ref: str | None = None
    ) -> tuple[Invoice, ...]:
        """Posted invoices with a balance left (Posted or Partial), oldest first."""
        stmt = select(InvoiceModel).where(
            InvoiceModel.client_ref == client_ref,
            InvoiceModel.stage == InvoiceStage.POSTED.value,
            InvoiceModel.collected_amount < InvoiceModel.stated_amount,
        )
        if company_ref is not None:
            stmt = stmt.where(InvoiceModel.company_ref == company_ref)
        stmt = stmt.order_by(InvoiceModel.issue_date, InvoiceModel.invoice_number)
        return tuple(m.to_dto() for m in self.session.execute(stmt).scalars())

    # =========================================================================
    # Collections
    # =========================================================================

    def list_collections(
        self,
        client_ref: str | None = None,
        company_ref: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        status: CollectionStatus | str | None = None,
    ) -> tuple[Collection, ...]:
        stmt = select(CollectionModel)
        if client_ref is not None:
            stmt = stmt.where(CollectionModel.client_ref == client_ref)
        if company_ref is not None:
            stmt = stmt.where(CollectionModel.company_ref == company_ref)
        if date_from is not None:
            stmt = stmt.where(CollectionModel.collection_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(CollectionModel.collection_date <= date_to)
        if status is not None:
            stmt = stmt.where(CollectionModel.status_clause(status))
        stmt = stmt.order_by(CollectionModel.collection_date, CollectionModel.receipt_number)
        return tuple(m.to_dto() for m in self.session.execute(stmt).scalars())

    # =========================================================================
    # Expenses
    # =========================================================================

    def list_expenses(
        self,
        company_ref: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        status: ExpenseStatus | str | None = None,
        booking_ref: str | None = None,
        category_id: UUID | None = None,
        expense_type: ExpenseType | str | None = None,
    ) -> tuple[Expense, ...]:
        stmt = select(ExpenseModel)
        if company_ref is not None:
            stmt = stmt.where(ExpenseModel.company_ref == company_ref)
        if date_from is not None:
            stmt = stmt.where(ExpenseModel.expense_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(ExpenseModel.expense_date <= date_to)
        if status is not None:
            stmt = stmt.where(ExpenseModel.status == ExpenseStatus(status).value)
        if booking_ref is not None:
            stmt = stmt.where(ExpenseModel.booking_ref == booking_ref)
        if category_id is not None:
            stmt = stmt.where(ExpenseModel.category_id == category_id)
        if expense_type is not None:
            stmt = stmt.where(
                ExpenseModel.expense_type == ExpenseType.parse(expense_type).value
            )
        stmt = stmt.order_by(ExpenseModel.expense_date, ExpenseModel.expense_number)
        return tuple(m.to_dto() for m in self.session.execute(stmt).scalars())

    # =========================================================================
    # Allocations
    # =========================================================================

    def allocations_for_payment(self, payment_id: UUID) -> tuple[PaymentAllocation, ...]:
        rows = self.session.execute(
            select(PaymentAllocationModel)
            .where(PaymentAllocationModel.payment_id == payment_id)
            .order_by(PaymentAllocationModel.created_at, PaymentAllocationModel.invoice_id)
        ).scalars()
        return tuple(r.to_dto() for r in rows)

    def allocations_for_invoice(self, invoice_id: UUID) -> tuple[PaymentAllocation, ...]:
        rows = self.session.execute(
            select(PaymentAllocationModel)
            .where(PaymentAllocationModel.invoice_id == invoice_id)
            .order_by(PaymentAllocationModel.created_at, PaymentAllocationModel.payment_id)
        ).scalars()
        return tuple(r.to_dto() for r in rows)

    # =========================================================================
    # Client summary
    # =========================================================================

    def client_summary(self, client_ref: str, currency: str | None = None) -> ClientSummary:
        """Billed, collected and unapplied totals for one client in one currency."""
        currency = currency or get_active_settings().default_currency

        billed, collected, open_count = self.session.execute(
            select(
                func.coalesce(func.sum(InvoiceModel.stated_amount), 0),
                func.coalesce(func.sum(InvoiceModel.collected_amount), 0),
                func.coalesce(func.sum(case(
                    (InvoiceModel.collected_amount < InvoiceModel.stated_amount, 1),
                    else_=0,
                )), 0),
            ).where(
                InvoiceModel.client_ref == client_ref,
                InvoiceModel.currency == currency,
                InvoiceModel.stage == InvoiceStage.POSTED.value,
            )
        ).one()

        unapplied = self.session.execute(
            select(
                func.coalesce(
                    func.sum(CollectionModel.amount_received - CollectionModel.applied_amount),
                    0,
                )
            ).where(
                CollectionModel.client_ref == client_ref,
                CollectionModel.currency == currency,
            )
        ).scalar_one()

        return ClientSummary(
            client_ref=client_ref,
            currency=currency,
            billed=Money.from_minor(int(billed), currency),
            collected=Money.from_minor(int(collected), currency),
            unapplied=Money.from_minor(int(unapplied), currency),
            open_invoice_count=int(open_count or 0),
        )
