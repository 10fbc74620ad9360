"""
Billing ORM Models (``ledger_modules.billing.orm``).

Responsibility
--------------
SQLAlchemy persistence for invoices and their line items.  Maps the frozen
dataclasses in ``models.py`` to the ``invoices`` and ``invoice_lines``
tables.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``ledger_kernel.db.base``
and sibling ``models.py``.  MUST NOT be imported by ``ledger_kernel``.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    and_,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.domain.values import Money


class InvoiceModel(TrackedBase):
    """
    ORM model for invoices.

    Guarantees:
        - invoice_number is unique once assigned (NULL while Draft).
        - stated_amount and collected_amount are minor units in ``currency``.
        - 0 <= collected_amount <= stated_amount (ck_invoices_collected_bounds).
        - No status column: status is derived, see ``status_clause``.
    """

    __tablename__ = "invoices"

    __table_args__ = (
        UniqueConstraint("invoice_number", name="uq_invoices_invoice_number"),
        CheckConstraint(
            "collected_amount >= 0 AND collected_amount <= stated_amount",
            name="ck_invoices_collected_bounds",
        ),
        CheckConstraint("stated_amount > 0", name="ck_invoices_stated_positive"),
        Index("idx_invoices_client_ref", "client_ref"),
        Index("idx_invoices_company_ref", "company_ref"),
        Index("idx_invoices_issue_date", "issue_date"),
        Index("idx_invoices_booking_ref", "booking_ref"),
    )

    invoice_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    stage: Mapped[str] = mapped_column(String(20), nullable=False, default="Draft")
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    client_ref: Mapped[str] = mapped_column(String(100), nullable=False)
    company_ref: Mapped[str] = mapped_column(String(100), nullable=False)
    booking_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    stated_amount: Mapped[int] = mapped_column(nullable=False)
    collected_amount: Mapped[int] = mapped_column(nullable=False, default=0)
    posted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    lines: Mapped[list["InvoiceLineModel"]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InvoiceLineModel.line_number",
    )

    @classmethod
    def status_clause(cls, status):
        """SQL predicate equivalent to ``derive_invoice_status(...) == status``."""
        from ledger_modules.billing.models import InvoiceStatus

        status = InvoiceStatus(status)
        if status is InvoiceStatus.DRAFT:
            return cls.stage == "Draft"
        posted = cls.stage == "Posted"
        if status is InvoiceStatus.POSTED:
            return and_(posted, cls.collected_amount == 0)
        if status is InvoiceStatus.PARTIAL:
            return and_(
                posted,
                cls.collected_amount > 0,
                cls.collected_amount < cls.stated_amount,
            )
        return and_(posted, cls.collected_amount == cls.stated_amount)

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from ledger_modules.billing.models import Invoice, InvoiceStage

        return Invoice(
            id=self.id,
            invoice_number=self.invoice_number,
            stage=InvoiceStage(self.stage),
            issue_date=self.issue_date,
            due_date=self.due_date,
            client_ref=self.client_ref,
            company_ref=self.company_ref,
            booking_ref=self.booking_ref,
            notes=self.notes,
            line_items=tuple(line.to_dto() for line in self.lines),
            stated_amount=Money.from_minor(self.stated_amount, self.currency),
            collected_amount=Money.from_minor(self.collected_amount, self.currency),
            posted_at=self.posted_at,
        )

    def __repr__(self) -> str:
        return f"<InvoiceModel {self.invoice_number or self.id}: {self.stage}>"


class InvoiceLineModel(TrackedBase):
    """ORM model for invoice line items."""

    __tablename__ = "invoice_lines"

    __table_args__ = (
        UniqueConstraint(
            "invoice_id", "line_number", name="uq_invoice_lines_invoice_line"
        ),
        CheckConstraint("amount > 0", name="ck_invoice_lines_amount_positive"),
    )

    invoice_id: Mapped[UUID] = mapped_column(
        ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False
    )
    line_number: Mapped[int] = mapped_column(nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    amount: Mapped[int] = mapped_column(nullable=False)

    invoice: Mapped["InvoiceModel"] = relationship(back_populates="lines")

    def to_dto(self):
        from ledger_modules.billing.models import InvoiceLineItem

        return InvoiceLineItem(
            description=self.description,
            amount=Money.from_minor(self.amount, self.currency),
        )

    @classmethod
    def from_dto(cls, dto, line_number: int, created_by: str | None = None) -> "InvoiceLineModel":
        return cls(
            line_number=line_number,
            description=dto.description,
            currency=dto.amount.currency.code,
            amount=dto.amount.minor_units,
            created_by=created_by,
        )
