"""
Allocation ORM Models (``ledger_modules.allocation.orm``).

One row per (collection, invoice) pair carrying the amount of the
collection applied to that invoice.  Rows are written only by
``AllocationService``; both ledgers read them to recompute their
collected/applied figures.
"""

from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.domain.values import Money


class PaymentAllocationModel(TrackedBase):
    """
    ORM model for payment allocations.

    Guarantees:
        - (payment_id, invoice_id) is unique (uq_payment_allocations_pair).
        - amount_applied > 0; a pair with nothing applied has no row.
    """

    __tablename__ = "payment_allocations"

    __table_args__ = (
        UniqueConstraint(
            "payment_id", "invoice_id", name="uq_payment_allocations_pair"
        ),
        CheckConstraint(
            "amount_applied > 0", name="ck_payment_allocations_amount_positive"
        ),
        Index("idx_payment_allocations_invoice_id", "invoice_id"),
    )

    payment_id: Mapped[UUID] = mapped_column(
        ForeignKey("collections.id"), nullable=False
    )
    invoice_id: Mapped[UUID] = mapped_column(
        ForeignKey("invoices.id"), nullable=False
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    amount_applied: Mapped[int] = mapped_column(nullable=False)

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from ledger_modules.allocation.models import PaymentAllocation

        return PaymentAllocation(
            id=self.id,
            payment_id=self.payment_id,
            invoice_id=self.invoice_id,
            amount_applied=Money.from_minor(self.amount_applied, self.currency),
        )

    def __repr__(self) -> str:
        return (
            f"<PaymentAllocationModel {self.payment_id} -> {self.invoice_id}: "
            f"{self.amount_applied} {self.currency}>"
        )
