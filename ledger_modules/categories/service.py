"""
Category Registry Service (``ledger_modules.categories.service``).

Maintains the list of expense categories the expense form offers.
Changes here never touch existing expenses.

Transaction boundary: every mutating call commits on success and rolls
back on failure.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_config import LedgerSettings, get_active_settings
from ledger_kernel.exceptions import DuplicateCategoryError, UnknownCategoryError
from ledger_kernel.logging_config import get_logger
from ledger_modules._validation import optional_ref, require_ref
from ledger_modules.categories.models import ExpenseCategory, ExpenseType
from ledger_modules.categories.orm import ExpenseCategoryModel, category_name_key

logger = get_logger("modules.categories.service")

_UNSET = object()


class CategoryRegistry:
    """Add, rename, re-default, remove and seed expense categories."""

    def __init__(self, session: Session, settings: LedgerSettings | None = None):
        self._session = session
        self._settings = settings

    # =========================================================================
    # Queries
    # =========================================================================

    def _load(self, category_id: UUID) -> ExpenseCategoryModel:
        model = self._session.get(ExpenseCategoryModel, category_id)
        if model is None:
            raise UnknownCategoryError(str(category_id))
        return model

    def _find_by_name(self, name: str) -> ExpenseCategoryModel | None:
        return self._session.execute(
            select(ExpenseCategoryModel).where(
                ExpenseCategoryModel.name_key == category_name_key(name)
            )
        ).scalar_one_or_none()

    def get(self, category_id: UUID) -> ExpenseCategory:
        """Raises UnknownCategoryError."""
        return self._load(category_id).to_dto()

    def get_by_name(self, name: str) -> ExpenseCategory:
        """Case-insensitive lookup.  Raises UnknownCategoryError."""
        model = self._find_by_name(name)
        if model is None:
            raise UnknownCategoryError(name)
        return model.to_dto()

    def list_all(self) -> tuple[ExpenseCategory, ...]:
        models = self._session.execute(
            select(ExpenseCategoryModel).order_by(ExpenseCategoryModel.name_key)
        ).scalars()
        return tuple(m.to_dto() for m in models)

    # =========================================================================
    # Mutations
    # =========================================================================

    def add(
        self,
        name: str,
        default_expense_type: ExpenseType | str,
        default_company_ref: str | None = None,
        actor: str | None = None,
    ) -> ExpenseCategory:
        """
        Raises:
            MissingReferenceError: blank name.
            InvalidExpenseTypeError: unknown expense type.
            DuplicateCategoryError: name already used (case-insensitive).
        """
        try:
            model = self._add(name, default_expense_type, default_company_ref, actor)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("expense_category_added", extra={
            "category_id": str(model.id),
            "category_name": model.name,
            "default_expense_type": model.default_expense_type,
        })
        return model.to_dto()

    def _add(self, name, default_expense_type, default_company_ref, actor) -> ExpenseCategoryModel:
        name = " ".join(require_ref("name", name).split())
        expense_type = ExpenseType.parse(default_expense_type)
        if self._find_by_name(name) is not None:
            raise DuplicateCategoryError(name)
        model = ExpenseCategoryModel(
            name=name,
            name_key=category_name_key(name),
            default_expense_type=expense_type.value,
            default_company_ref=optional_ref(default_company_ref),
            created_by=actor,
        )
        self._session.add(model)
        self._session.flush()
        return model

    def update(
        self,
        category_id: UUID,
        name: str | None = None,
        default_expense_type: ExpenseType | str | None = None,
        default_company_ref=_UNSET,
        actor: str | None = None,
    ) -> ExpenseCategory:
        """
        Change a category's name or defaults.

        Pass ``default_company_ref=None`` to clear the default company; omit
        it to leave it unchanged.
        """
        try:
            model = self._load(category_id)
            if name is not None:
                name = " ".join(require_ref("name", name).split())
                other = self._find_by_name(name)
                if other is not None and other.id != model.id:
                    raise DuplicateCategoryError(name)
                model.name = name
                model.name_key = category_name_key(name)
            if default_expense_type is not None:
                model.default_expense_type = ExpenseType.parse(default_expense_type).value
            if default_company_ref is not _UNSET:
                model.default_company_ref = optional_ref(default_company_ref)
            model.updated_by = actor
            self._session.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("expense_category_updated", extra={
            "category_id": str(category_id),
            "category_name": model.name,
        })
        return model.to_dto()

    def remove(self, category_id: UUID) -> None:
        """Delete a category.  Expenses that used it keep their snapshot."""
        try:
            model = self._load(category_id)
            name = model.name
            self._session.delete(model)
            self._session.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("expense_category_removed", extra={
            "category_id": str(category_id),
            "category_name": name,
        })

    def seed_defaults(self, settings: LedgerSettings | None = None) -> tuple[ExpenseCategory, ...]:
        """
        Create the configured starter categories that do not exist yet.

        Idempotent: returns only the categories created by this call.
        """
        settings = settings or self._settings or get_active_settings()
        created = []
        try:
            for seed in settings.starter_categories:
                if self._find_by_name(seed.name) is not None:
                    continue
                created.append(self._add(
                    seed.name, seed.default_expense_type, seed.default_company_ref, None
                ))
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("expense_categories_seeded", extra={
            "created_count": len(created),
            "configured_count": len(settings.starter_categories),
        })
        return tuple(m.to_dto() for m in created)
