"""
Expense ORM Models (``ledger_modules.expense.orm``).

SQLAlchemy persistence for expense vouchers, their line items, and the
approval chain (stored as by/at column pairs per stage).  ``category_id``
is deliberately not a foreign key: the category name is snapshotted at
creation and categories may be removed later.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.domain.values import Money


class ExpenseModel(TrackedBase):
    """
    ORM model for expenses.

    Guarantees:
        - expense_number is unique (uq_expenses_expense_number).
        - total_amount is the sum of line amounts, in minor units.
    """

    __tablename__ = "expenses"

    __table_args__ = (
        UniqueConstraint("expense_number", name="uq_expenses_expense_number"),
        CheckConstraint("total_amount >= 0", name="ck_expenses_total_non_negative"),
        Index("idx_expenses_company_ref", "company_ref"),
        Index("idx_expenses_expense_date", "expense_date"),
        Index("idx_expenses_status", "status"),
        Index("idx_expenses_booking_ref", "booking_ref"),
    )

    expense_number: Mapped[str] = mapped_column(String(50), nullable=False)
    expense_date: Mapped[date] = mapped_column(Date, nullable=False)
    category_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    category_name: Mapped[str] = mapped_column(String(100), nullable=False)
    company_ref: Mapped[str] = mapped_column(String(100), nullable=False)
    payee: Mapped[str] = mapped_column(String(200), nullable=False)
    expense_type: Mapped[str] = mapped_column(String(30), nullable=False)
    payment_channel: Mapped[str] = mapped_column(String(50), nullable=False)
    booking_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    total_amount: Mapped[int] = mapped_column(nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Draft")

    prepared_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    prepared_at: Mapped[datetime | None] = mapped_column(nullable=True)
    noted_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    noted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(nullable=True)

    lines: Mapped[list["ExpenseLineModel"]] = relationship(
        back_populates="expense",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ExpenseLineModel.line_number",
    )

    def approval_chain(self):
        from ledger_modules.expense.models import ApprovalChain, ApprovalStage, ApprovalStep

        return ApprovalChain(
            prepared=ApprovalStep(ApprovalStage.PREPARED, self.prepared_by, self.prepared_at),
            noted=ApprovalStep(ApprovalStage.NOTED, self.noted_by, self.noted_at),
            approved=ApprovalStep(ApprovalStage.APPROVED, self.approved_by, self.approved_at),
        )

    def complete_stage(self, stage, by: str, at: datetime) -> None:
        column = stage.value.lower()
        setattr(self, f"{column}_by", by)
        setattr(self, f"{column}_at", at)

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from ledger_modules.categories.models import ExpenseType
        from ledger_modules.expense.models import Expense, ExpenseStatus

        return Expense(
            id=self.id,
            expense_number=self.expense_number,
            expense_date=self.expense_date,
            category_id=self.category_id,
            category_name=self.category_name,
            company_ref=self.company_ref,
            payee=self.payee,
            expense_type=ExpenseType(self.expense_type),
            payment_channel=self.payment_channel,
            booking_ref=self.booking_ref,
            line_items=tuple(line.to_dto() for line in self.lines),
            total_amount=Money.from_minor(self.total_amount, self.currency),
            status=ExpenseStatus(self.status),
            approval=self.approval_chain(),
            paid_at=self.paid_at,
        )

    def __repr__(self) -> str:
        return f"<ExpenseModel {self.expense_number}: {self.status}>"


class ExpenseLineModel(TrackedBase):
    """ORM model for expense line items."""

    __tablename__ = "expense_lines"

    __table_args__ = (
        UniqueConstraint(
            "expense_id", "line_number", name="uq_expense_lines_expense_line"
        ),
        CheckConstraint("amount > 0", name="ck_expense_lines_amount_positive"),
    )

    expense_id: Mapped[UUID] = mapped_column(
        ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False
    )
    line_number: Mapped[int] = mapped_column(nullable=False)
    particular: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    amount: Mapped[int] = mapped_column(nullable=False)

    expense: Mapped["ExpenseModel"] = relationship(back_populates="lines")

    def to_dto(self):
        from ledger_modules.expense.models import ExpenseLineItem

        return ExpenseLineItem(
            particular=self.particular,
            description=self.description,
            amount=Money.from_minor(self.amount, self.currency),
        )

    @classmethod
    def from_dto(cls, dto, line_number: int, created_by: str | None = None) -> "ExpenseLineModel":
        return cls(
            line_number=line_number,
            particular=dto.particular,
            description=dto.description,
            currency=dto.amount.currency.code,
            amount=dto.amount.minor_units,
            created_by=created_by,
        )
