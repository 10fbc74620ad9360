"""
Expense Category ORM Models (``ledger_modules.categories.orm``).

``name_key`` is the lower-cased name and carries the uniqueness
constraint, so "Trucking" and "trucking" cannot both exist.
"""

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase


def category_name_key(name: str) -> str:
    return " ".join(name.split()).lower()


class ExpenseCategoryModel(TrackedBase):
    """ORM model for expense categories."""

    __tablename__ = "expense_categories"

    __table_args__ = (
        UniqueConstraint("name_key", name="uq_expense_categories_name_key"),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    name_key: Mapped[str] = mapped_column(String(100), nullable=False)
    default_expense_type: Mapped[str] = mapped_column(String(30), nullable=False)
    default_company_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def to_dto(self):
        """Convert ORM model to frozen dataclass."""
        from ledger_modules.categories.models import ExpenseCategory, ExpenseType

        return ExpenseCategory(
            id=self.id,
            name=self.name,
            default_expense_type=ExpenseType(self.default_expense_type),
            default_company_ref=self.default_company_ref,
        )

    def __repr__(self) -> str:
        return f"<ExpenseCategoryModel {self.name}: {self.default_expense_type}>"
