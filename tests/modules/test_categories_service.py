"""
Tests for CategoryRegistry.
"""

from uuid import uuid4

import pytest

from ledger_kernel.exceptions import (
    DuplicateCategoryError,
    InvalidExpenseTypeError,
    MissingReferenceError,
    UnknownCategoryError,
)
from ledger_modules.categories.models import ExpenseType
from ledger_modules.categories.orm import category_name_key


class TestNameKey:

    def test_case_and_whitespace_insensitive(self):
        assert category_name_key("  Handling   Fee ") == category_name_key("handling fee")


class TestAdd:

    def test_add_and_get(self, category_registry):
        category = category_registry.add("Handling Fee", ExpenseType.OPERATIONS)
        assert category.name == "Handling Fee"
        assert category.default_expense_type is ExpenseType.OPERATIONS
        assert category.default_company_ref is None
        assert category_registry.get(category.id) == category

    def test_lookup_by_name_ignores_case(self, category_registry):
        category = category_registry.add("Mobilization", "Operations")
        assert category_registry.get_by_name("MOBILIZATION").id == category.id

    def test_duplicate_name_rejected(self, category_registry):
        category_registry.add("Utilities", "Admin")
        with pytest.raises(DuplicateCategoryError):
            category_registry.add(" utilities ", "Admin")

    def test_invalid_type_rejected(self, category_registry):
        with pytest.raises(InvalidExpenseTypeError):
            category_registry.add("Travel", "Travel")

    def test_blank_name_rejected(self, category_registry):
        with pytest.raises(MissingReferenceError):
            category_registry.add("   ", "Admin")


class TestUpdateAndRemove:

    def test_update_defaults(self, category_registry):
        category = category_registry.add("Salaries", "Admin", default_company_ref="JLCS")
        updated = category_registry.update(
            category.id, default_expense_type="Operations", default_company_ref=None
        )
        assert updated.default_expense_type is ExpenseType.OPERATIONS
        assert updated.default_company_ref is None

    def test_omitted_company_is_unchanged(self, category_registry):
        category = category_registry.add("Salaries", "Admin", default_company_ref="JLCS")
        updated = category_registry.update(category.id, name="Payroll")
        assert updated.name == "Payroll"
        assert updated.default_company_ref == "JLCS"

    def test_rename_onto_existing_name_rejected(self, category_registry):
        category_registry.add("Salaries", "Admin")
        other = category_registry.add("Payroll", "Admin")
        with pytest.raises(DuplicateCategoryError):
            category_registry.update(other.id, name="SALARIES")

    def test_remove(self, category_registry):
        category = category_registry.add("Commission", "Commission")
        category_registry.remove(category.id)
        with pytest.raises(UnknownCategoryError):
            category_registry.get(category.id)
        with pytest.raises(UnknownCategoryError):
            category_registry.remove(uuid4())


class TestSeed:

    def test_seed_is_idempotent(self, category_registry, settings):
        created = category_registry.seed_defaults(settings)
        assert {c.name for c in created} == {s.name for s in settings.starter_categories}
        assert category_registry.seed_defaults(settings) == ()
        assert len(category_registry.list_all()) == len(settings.starter_categories)

    def test_seed_keeps_existing_category(self, category_registry, settings):
        existing = category_registry.add("trucking", "Admin")
        category_registry.seed_defaults(settings)
        assert category_registry.get_by_name("Trucking") == existing

    def test_list_sorted_by_name(self, category_registry, seeded_categories):
        names = [c.name for c in category_registry.list_all()]
        assert names == sorted(names, key=str.lower)
