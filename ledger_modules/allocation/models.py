"""
Allocation Domain Models (``ledger_modules.allocation.models``).

Frozen dataclasses returned by ``AllocationService``.  The request and
warning types come from the pure planner in ``ledger_engines.allocation``
and are re-exported here so callers import everything allocation-related
from one place.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from ledger_engines.allocation import (
    AllocationRequest,
    ConsistencyWarning,
    PartialAllocationWarning,
    PlannedAllocation,
)
from ledger_kernel.domain.values import Money, sum_money
from ledger_modules.billing.models import Invoice
from ledger_modules.collections.models import Collection


@dataclass(frozen=True)
class PaymentAllocation:
    """Part of a collection applied to one invoice."""
    id: UUID
    payment_id: UUID
    invoice_id: UUID
    amount_applied: Money


@dataclass(frozen=True)
class AllocationResult:
    """
    Outcome of an allocate or deallocate call.

    ``payment`` and ``invoices`` are the recomputed records after commit.
    ``allocations`` are the pair rows this call created or replaced;
    ``removed`` the rows it deleted.  ``warnings`` list every target that
    received less than requested.
    """
    payment: Collection
    invoices: tuple[Invoice, ...]
    allocations: tuple[PaymentAllocation, ...] = ()
    removed: tuple[PaymentAllocation, ...] = ()
    lines: tuple[PlannedAllocation, ...] = ()
    warnings: tuple[ConsistencyWarning, ...] = ()

    @property
    def payment_id(self) -> UUID:
        return self.payment.id

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def total_allocated(self) -> Money:
        """Sum of the pair amounts this call wrote."""
        return sum_money(
            (a.amount_applied for a in self.allocations),
            self.payment.amount_received.currency,
        )

    def invoice(self, invoice_id: UUID) -> Invoice:
        for inv in self.invoices:
            if inv.id == invoice_id:
                return inv
        raise KeyError(invoice_id)

    def warning_for(self, invoice_id: UUID) -> PartialAllocationWarning | None:
        # Latest wins when the same invoice was targeted twice.
        for warning in reversed(self.warnings):
            if isinstance(warning, PartialAllocationWarning) and warning.invoice_id == invoice_id:
                return warning
        return None


__all__ = [
    "AllocationRequest",
    "AllocationResult",
    "ConsistencyWarning",
    "PartialAllocationWarning",
    "PaymentAllocation",
    "PlannedAllocation",
]
