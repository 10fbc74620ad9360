"""
Collection Domain Models (``ledger_modules.collections.models``).

Frozen dataclass value objects for collections (payments received) and
the pure status derivation.  The amount received is fixed at creation;
how much of it is applied comes from allocation rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from uuid import UUID

from ledger_kernel.domain.values import Money


class CollectionStatus(Enum):
    """Derived application status."""
    UNAPPLIED = "Unapplied"
    PARTIALLY_APPLIED = "Partially Applied"
    FULLY_APPLIED = "Fully Applied"


def derive_collection_status(received: Money, applied: Money) -> CollectionStatus:
    if applied.is_zero:
        return CollectionStatus.UNAPPLIED
    if applied < received:
        return CollectionStatus.PARTIALLY_APPLIED
    return CollectionStatus.FULLY_APPLIED


@dataclass(frozen=True)
class Collection:
    """A payment received from a client (official receipt)."""
    id: UUID
    receipt_number: str
    collection_date: date
    client_ref: str
    company_ref: str
    payment_method: str
    amount_received: Money
    applied_amount: Money
    reference_number: str | None = None
    notes: str | None = None

    @property
    def currency(self) -> str:
        return self.amount_received.currency.code

    @property
    def unapplied_balance(self) -> Money:
        return self.amount_received - self.applied_amount

    @property
    def status(self) -> CollectionStatus:
        return derive_collection_status(self.amount_received, self.applied_amount)
