"""
Ledger consistency audit (``ledger_modules.audit``).

Responsibility:
    Re-derive every ledger invariant from the stored rows and report each
    breach.  The services keep these invariants on every write; the auditor
    is the independent check that they did, e.g. after a manual database
    fix or a restore.

Architecture position:
    Modules layer -- read-only.  Uses the selector base session contract:
    never adds, flushes, commits or deletes.

Failure modes:
    None.  Breaches are returned as InvariantViolation values, not raised.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass

from sqlalchemy import select

from ledger_kernel.invariants import LedgerInvariant
from ledger_kernel.logging_config import get_logger
from ledger_kernel.selectors.base import BaseSelector
from ledger_modules.allocation.orm import PaymentAllocationModel
from ledger_modules.billing.orm import InvoiceModel
from ledger_modules.collections.orm import CollectionModel
from ledger_modules.expense.models import APPROVAL_ORDER
from ledger_modules.expense.orm import ExpenseModel

logger = get_logger("modules.audit")


@dataclass(frozen=True)
class InvariantViolation:
    """One breached invariant on one record."""
    invariant: LedgerInvariant
    entity_type: str
    entity_id: str
    detail: str


class LedgerAuditor(BaseSelector):
    """Checks every invoice, collection, allocation and expense row."""

    def verify(self) -> tuple[InvariantViolation, ...]:
        """Return every violation found; an empty tuple means consistent."""
        violations: list[InvariantViolation] = []

        allocations = list(self.session.execute(select(PaymentAllocationModel)).scalars())
        invoices = {
            m.id: m for m in self.session.execute(select(InvoiceModel)).scalars()
        }
        collections = {
            m.id: m for m in self.session.execute(select(CollectionModel)).scalars()
        }

        by_invoice: dict = defaultdict(int)
        by_payment: dict = defaultdict(int)
        for row in allocations:
            by_invoice[row.invoice_id] += row.amount_applied
            by_payment[row.payment_id] += row.amount_applied
            violations.extend(self._check_allocation(row, invoices, collections))

        for invoice in invoices.values():
            violations.extend(self._check_invoice(invoice, by_invoice[invoice.id]))
        for collection in collections.values():
            violations.extend(self._check_collection(collection, by_payment[collection.id]))
        for expense in self.session.execute(select(ExpenseModel)).scalars():
            violations.extend(self._check_expense(expense))

        logger.info("ledger_audit_completed", extra={
            "invoice_count": len(invoices),
            "collection_count": len(collections),
            "allocation_count": len(allocations),
            "violation_count": len(violations),
        })
        for v in violations:
            logger.warning("ledger_invariant_violated", extra={
                "invariant": v.invariant.value,
                "entity_type": v.entity_type,
                "entity_id": v.entity_id,
                "detail": v.detail,
            })
        return tuple(violations)

    def _check_allocation(self, row, invoices, collections):
        ref = f"{row.payment_id}->{row.invoice_id}"
        if row.amount_applied <= 0:
            yield InvariantViolation(
                LedgerInvariant.ALLOCATION_POSITIVE, "allocation", ref,
                f"amount_applied {row.amount_applied}",
            )
        invoice = invoices.get(row.invoice_id)
        if invoice is not None:
            if invoice.stage != "Posted":
                yield InvariantViolation(
                    LedgerInvariant.ALLOCATION_TARGETS_POSTED, "allocation", ref,
                    f"invoice stage is {invoice.stage}",
                )
            if invoice.currency != row.currency:
                yield InvariantViolation(
                    LedgerInvariant.ALLOCATION_CURRENCY, "allocation", ref,
                    f"allocation {row.currency} vs invoice {invoice.currency}",
                )
        collection = collections.get(row.payment_id)
        if collection is not None and collection.currency != row.currency:
            yield InvariantViolation(
                LedgerInvariant.ALLOCATION_CURRENCY, "allocation", ref,
                f"allocation {row.currency} vs collection {collection.currency}",
            )

    def _check_invoice(self, invoice, allocated: int):
        ref = str(invoice.id)
        line_total = sum(line.amount for line in invoice.lines)
        if line_total != invoice.stated_amount:
            yield InvariantViolation(
                LedgerInvariant.INVOICE_STATED_MATCHES_LINES, "invoice", ref,
                f"stated {invoice.stated_amount} but lines sum to {line_total}",
            )
        if allocated != invoice.collected_amount:
            yield InvariantViolation(
                LedgerInvariant.INVOICE_COLLECTED_MATCHES_ALLOCATIONS, "invoice", ref,
                f"collected {invoice.collected_amount} but allocations sum to {allocated}",
            )
        if not 0 <= allocated <= invoice.stated_amount:
            yield InvariantViolation(
                LedgerInvariant.INVOICE_COLLECTED_BOUNDS, "invoice", ref,
                f"allocations {allocated} outside [0, {invoice.stated_amount}]",
            )
        if (invoice.stage == "Posted") != (invoice.invoice_number is not None):
            yield InvariantViolation(
                LedgerInvariant.INVOICE_POSTED_NUMBERED, "invoice", ref,
                f"stage {invoice.stage} with number {invoice.invoice_number!r}",
            )

    def _check_collection(self, collection, allocated: int):
        ref = str(collection.id)
        if allocated != collection.applied_amount:
            yield InvariantViolation(
                LedgerInvariant.PAYMENT_APPLIED_MATCHES_ALLOCATIONS, "collection", ref,
                f"applied {collection.applied_amount} but allocations sum to {allocated}",
            )
        if not 0 <= allocated <= collection.amount_received:
            yield InvariantViolation(
                LedgerInvariant.PAYMENT_APPLIED_BOUNDS, "collection", ref,
                f"allocations {allocated} outside [0, {collection.amount_received}]",
            )

    def _check_expense(self, expense):
        ref = str(expense.id)
        line_total = sum(line.amount for line in expense.lines)
        if line_total != expense.total_amount:
            yield InvariantViolation(
                LedgerInvariant.EXPENSE_TOTAL_MATCHES_LINES, "expense", ref,
                f"total {expense.total_amount} but lines sum to {line_total}",
            )
        chain = expense.approval_chain()
        pending_seen = None
        for stage in APPROVAL_ORDER:
            step = chain.step(stage)
            if not step.is_completed:
                pending_seen = pending_seen or stage
            elif pending_seen is not None:
                yield InvariantViolation(
                    LedgerInvariant.EXPENSE_APPROVAL_ORDER, "expense", ref,
                    f"{stage.value} completed while {pending_seen.value} is pending",
                )
        if expense.status == "Paid" and not chain.is_complete:
            yield InvariantViolation(
                LedgerInvariant.EXPENSE_PAID_APPROVED, "expense", ref,
                "paid without Approved stage",
            )
