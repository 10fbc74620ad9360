"""
Collection ORM Models (``ledger_modules.collections.orm``).

SQLAlchemy persistence for collections.  ``applied_amount`` is a cache of
the allocation rows' sum, rewritten by ``PaymentLedger.recompute_status``.
"""

from datetime import date

from sqlalchemy import CheckConstraint, Date, Index, String, Text, UniqueConstraint, and_
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.domain.values import Money


class CollectionModel(TrackedBase):
    """
    ORM model for collections.

    Guarantees:
        - receipt_number is unique (uq_collections_receipt_number).
        - amount_received > 0 and 0 <= applied_amount <= amount_received.
    """

    __tablename__ = "collections"

    __table_args__ = (
        UniqueConstraint("receipt_number", name="uq_collections_receipt_number"),
        CheckConstraint("amount_received > 0", name="ck_collections_received_positive"),
        CheckConstraint(
            "applied_amount >= 0 AND applied_amount <= amount_received",
            name="ck_collections_applied_bounds",
        ),
        Index("idx_collections_client_ref", "client_ref"),
        Index("idx_collections_company_ref", "company_ref"),
        Index("idx_collections_collection_date", "collection_date"),
    )

    receipt_number: Mapped[str] = mapped_column(String(50), nullable=False)
    collection_date: Mapped[date] = mapped_column(Date, nullable=False)
    client_ref: Mapped[str] = mapped_column(String(100), nullable=False)
    company_ref: Mapped[str] = mapped_column(String(100), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(50), nullable=False)
    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    amount_received: Mapped[int] = mapped_column(nullable=False)
    applied_amount: Mapped[int] = mapped_column(nullable=False, default=0)

    @classmethod
    def status_clause(cls, status):
        """SQL predicate equivalent to ``derive_collection_status(...) == status``."""
        from ledger_modules.collections.models import CollectionStatus

        status = CollectionStatus(status)
        if status is CollectionStatus.UNAPPLIED:
            return cls.applied_amount == 0
        if status is CollectionStatus.PARTIALLY_APPLIED:
            return and_(cls.applied_amount > 0, cls.applied_amount < cls.amount_received)
        return cls.applied_amount == cls.amount_received

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from ledger_modules.collections.models import Collection

        return Collection(
            id=self.id,
            receipt_number=self.receipt_number,
            collection_date=self.collection_date,
            client_ref=self.client_ref,
            company_ref=self.company_ref,
            payment_method=self.payment_method,
            reference_number=self.reference_number,
            notes=self.notes,
            amount_received=Money.from_minor(self.amount_received, self.currency),
            applied_amount=Money.from_minor(self.applied_amount, self.currency),
        )

    def __repr__(self) -> str:
        return f"<CollectionModel {self.receipt_number}: {self.applied_amount}/{self.amount_received}>"
