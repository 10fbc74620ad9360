"""
Tests for LedgerSelector read paths.
"""

from datetime import date

import pytest

from ledger_kernel.domain.values import Money
from ledger_modules.billing.models import InvoiceStatus
from ledger_modules.categories.models import ExpenseType
from ledger_modules.collections.models import CollectionStatus
from ledger_modules.expense.models import ExpenseStatus


def _php(amount) -> Money:
    return Money.of(str(amount), "PHP")


@pytest.fixture
def billed(make_invoice, make_collection, allocation_service):
    """ACME: one Paid, one Partial, one Posted, one Draft.  GLOBEX: one Posted."""
    paid = make_invoice("100", issue_date=date(2025, 1, 5), booking_ref="BK-1")
    partial = make_invoice("200", issue_date=date(2025, 1, 10))
    posted = make_invoice("300", issue_date=date(2025, 2, 1))
    draft = make_invoice("400", post=False)
    other = make_invoice("500", client_ref="GLOBEX", company_ref="OTHERCO")

    payment = make_collection("250")
    allocation_service.allocate(payment.id, [(paid.id, _php(100)), (partial.id, _php(50))])
    spare = make_collection("80")
    return {
        "paid": paid, "partial": partial, "posted": posted, "draft": draft,
        "other": other, "payment": payment, "spare": spare,
    }


class TestInvoiceQueries:

    def test_filter_by_status(self, selector, billed):
        def ids(status):
            return [i.id for i in selector.list_invoices(client_ref="ACME", status=status)]

        assert ids(InvoiceStatus.PAID) == [billed["paid"].id]
        assert ids(InvoiceStatus.PARTIAL) == [billed["partial"].id]
        assert ids("Posted") == [billed["posted"].id]
        assert ids(InvoiceStatus.DRAFT) == [billed["draft"].id]

    def test_filter_by_date_and_booking(self, selector, billed):
        january = selector.list_invoices(
            client_ref="ACME", date_from=date(2025, 1, 1), date_to=date(2025, 1, 31)
        )
        assert billed["posted"].id not in [i.id for i in january]
        by_booking = selector.list_invoices(booking_ref="BK-1")
        assert [i.id for i in by_booking] == [billed["paid"].id]

    def test_filter_by_company(self, selector, billed):
        assert [i.id for i in selector.list_invoices(company_ref="OTHERCO")] == [
            billed["other"].id
        ]

    def test_open_invoices_oldest_first(self, selector, billed):
        open_ids = [i.id for i in selector.open_invoices("ACME")]
        assert open_ids == [billed["partial"].id, billed["posted"].id]


class TestCollectionQueries:

    def test_filter_by_status(self, selector, billed):
        partially = selector.list_collections(status=CollectionStatus.PARTIALLY_APPLIED)
        unapplied = selector.list_collections(status="Unapplied")
        assert [c.id for c in partially] == [billed["payment"].id]
        assert [c.id for c in unapplied] == [billed["spare"].id]
        assert selector.list_collections(status=CollectionStatus.FULLY_APPLIED) == ()

    def test_allocation_rows(self, selector, billed):
        rows = selector.allocations_for_payment(billed["payment"].id)
        assert {r.invoice_id for r in rows} == {billed["paid"].id, billed["partial"].id}
        (row,) = selector.allocations_for_invoice(billed["partial"].id)
        assert row.amount_applied == _php(50)


class TestClientSummary:

    def test_totals_cover_posted_invoices_only(self, selector, billed):
        summary = selector.client_summary("ACME", currency="PHP")
        assert summary.billed == _php(600)
        assert summary.collected == _php(150)
        assert summary.outstanding == _php(450)
        assert summary.unapplied == _php(180)
        assert summary.open_invoice_count == 2

    def test_default_currency(self, selector, billed):
        assert selector.client_summary("GLOBEX").billed == _php(500)

    def test_unknown_client_is_zero(self, selector):
        summary = selector.client_summary("NOBODY", currency="PHP")
        assert summary.billed.is_zero
        assert summary.open_invoice_count == 0


class TestExpenseQueries:

    def test_filters(self, selector, make_expense, expense_tracker, seeded_categories):
        trucking = make_expense("100", category="Trucking", booking_ref="BK-9")
        rent = make_expense("200", category="Office Rent", expense_date=date(2025, 3, 1))
        expense_tracker.submit(rent.id)

        assert [e.id for e in selector.list_expenses(status=ExpenseStatus.UNPAID)] == [rent.id]
        assert [e.id for e in selector.list_expenses(booking_ref="BK-9")] == [trucking.id]
        assert [e.id for e in selector.list_expenses(expense_type=ExpenseType.ADMIN)] == [rent.id]
        assert [
            e.id for e in selector.list_expenses(category_id=seeded_categories["Trucking"].id)
        ] == [trucking.id]
        assert [
            e.id for e in selector.list_expenses(date_from=date(2025, 2, 1))
        ] == [rent.id]
