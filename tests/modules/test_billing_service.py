"""
Tests for InvoiceLedger.

Validates:
- Draft creation: stated amount is the line sum, no number assigned
- Draft editing and discarding
- Posting assigns sequential INV-YYYY-NNN numbers and freezes lines
- Line validation: empty, non-positive, mixed currency, missing refs
- recompute_status derives collected amount from allocation rows
"""

from datetime import date
from uuid import uuid4

import pytest

from ledger_kernel.domain.values import Money
from ledger_kernel.exceptions import (
    AlreadyPostedError,
    CurrencyMismatchError,
    EmptyLineItemsError,
    MissingReferenceError,
    UnknownInvoiceError,
)
from ledger_modules.billing.models import (
    InvoiceLineItem,
    InvoiceStage,
    InvoiceStatus,
    derive_invoice_status,
)


def _php(amount) -> Money:
    return Money.of(str(amount), "PHP")


class TestInvoiceStatusDerivation:

    def test_draft_regardless_of_amounts(self):
        assert derive_invoice_status(
            InvoiceStage.DRAFT, _php(100), _php(0)
        ) is InvoiceStatus.DRAFT

    def test_posted_partial_paid(self):
        stated = _php(100)
        assert derive_invoice_status(InvoiceStage.POSTED, stated, _php(0)) is InvoiceStatus.POSTED
        assert derive_invoice_status(InvoiceStage.POSTED, stated, _php(1)) is InvoiceStatus.PARTIAL
        assert derive_invoice_status(InvoiceStage.POSTED, stated, stated) is InvoiceStatus.PAID


class TestCreateDraft:

    def test_stated_is_line_sum(self, invoice_ledger):
        invoice = invoice_ledger.create_draft(
            client_ref="ACME",
            company_ref="JLCS",
            line_items=[
                ("Ocean freight", _php("100000")),
                InvoiceLineItem("Documentation", _php("25000.50")),
            ],
            booking_ref="BK-001",
        )
        assert invoice.stated_amount == _php("125000.50")
        assert invoice.collected_amount.is_zero
        assert invoice.status is InvoiceStatus.DRAFT
        assert invoice.invoice_number is None
        assert [line.description for line in invoice.line_items] == [
            "Ocean freight", "Documentation",
        ]
        assert invoice.booking_ref == "BK-001"

    def test_issue_date_defaults_to_clock(self, invoice_ledger, jan_15):
        invoice = invoice_ledger.create_draft("ACME", "JLCS", [("Freight", _php(1))])
        assert invoice.issue_date == jan_15

    def test_empty_lines_rejected(self, invoice_ledger):
        with pytest.raises(EmptyLineItemsError):
            invoice_ledger.create_draft("ACME", "JLCS", [])

    def test_non_positive_line_rejected(self, invoice_ledger):
        with pytest.raises(EmptyLineItemsError):
            invoice_ledger.create_draft(
                "ACME", "JLCS", [("Freight", _php(100)), ("Rebate", _php(-10))]
            )
        with pytest.raises(EmptyLineItemsError):
            invoice_ledger.create_draft("ACME", "JLCS", [("Freight", _php(0))])

    def test_mixed_currency_rejected(self, invoice_ledger):
        with pytest.raises(CurrencyMismatchError):
            invoice_ledger.create_draft(
                "ACME", "JLCS",
                [("Freight", _php(100)), ("Handling", Money.of("10", "USD"))],
            )

    @pytest.mark.parametrize("client_ref,company_ref", [("", "JLCS"), ("ACME", "  "), (None, "JLCS")])
    def test_missing_refs_rejected(self, invoice_ledger, client_ref, company_ref):
        with pytest.raises(MissingReferenceError):
            invoice_ledger.create_draft(client_ref, company_ref, [("Freight", _php(1))])

    def test_foreign_currency_invoice(self, invoice_ledger):
        invoice = invoice_ledger.create_draft(
            "ACME", "JLCS", [("Freight", Money.of("1200", "USD"))]
        )
        assert invoice.currency == "USD"


class TestEditDraft:

    def test_replace_lines(self, invoice_ledger):
        draft = invoice_ledger.create_draft(
            "ACME", "JLCS", [("Freight", _php(100)), ("Handling", _php(50))]
        )
        updated = invoice_ledger.update_draft_lines(
            draft.id, [("Freight", _php(120))], actor="clerk"
        )
        assert updated.stated_amount == _php(120)
        assert len(updated.line_items) == 1
        assert invoice_ledger.get(draft.id).stated_amount == _php(120)

    def test_invalid_edit_leaves_draft_unchanged(self, invoice_ledger):
        draft = invoice_ledger.create_draft("ACME", "JLCS", [("Freight", _php(100))])
        with pytest.raises(EmptyLineItemsError):
            invoice_ledger.update_draft_lines(draft.id, [])
        assert invoice_ledger.get(draft.id).stated_amount == _php(100)

    def test_discard_draft(self, invoice_ledger):
        draft = invoice_ledger.create_draft("ACME", "JLCS", [("Freight", _php(100))])
        invoice_ledger.discard_draft(draft.id)
        with pytest.raises(UnknownInvoiceError):
            invoice_ledger.get(draft.id)


class TestPost:

    def test_post_assigns_number_and_freezes(self, invoice_ledger):
        draft = invoice_ledger.create_draft("ACME", "JLCS", [("Freight", _php(100))])
        posted = invoice_ledger.post(draft.id, actor="clerk")
        assert posted.invoice_number == "INV-2025-001"
        assert posted.status is InvoiceStatus.POSTED
        assert posted.posted_at is not None

        with pytest.raises(AlreadyPostedError) as exc_info:
            invoice_ledger.update_draft_lines(posted.id, [("Freight", _php(1))])
        assert exc_info.value.invoice_number == "INV-2025-001"
        with pytest.raises(AlreadyPostedError):
            invoice_ledger.post(posted.id)
        with pytest.raises(AlreadyPostedError):
            invoice_ledger.discard_draft(posted.id)

    def test_numbers_are_sequential_per_year(self, make_invoice):
        first = make_invoice("100")
        second = make_invoice("200")
        next_year = make_invoice("300", issue_date=date(2026, 2, 1))
        assert first.invoice_number == "INV-2025-001"
        assert second.invoice_number == "INV-2025-002"
        assert next_year.invoice_number == "INV-2026-001"

    def test_drafts_do_not_consume_numbers(self, invoice_ledger, make_invoice):
        invoice_ledger.create_draft("ACME", "JLCS", [("Freight", _php(1))])
        assert make_invoice("100").invoice_number == "INV-2025-001"

    def test_post_unknown(self, invoice_ledger):
        with pytest.raises(UnknownInvoiceError):
            invoice_ledger.post(uuid4())


class TestRecompute:

    def test_recompute_without_allocations(self, invoice_ledger, make_invoice):
        invoice = make_invoice("1000")
        recomputed = invoice_ledger.recompute_status(invoice.id)
        assert recomputed.collected_amount.is_zero
        assert recomputed.status is InvoiceStatus.POSTED

    def test_recompute_reads_allocation_rows(
        self, invoice_ledger, make_invoice, make_collection, allocation_service,
    ):
        invoice = make_invoice("1000")
        payment = make_collection("400")
        allocation_service.allocate(payment.id, [(invoice.id, _php(400))])

        recomputed = invoice_ledger.recompute_status(invoice.id)
        assert recomputed.collected_amount == _php(400)
        assert recomputed.balance == _php(600)
        assert recomputed.status is InvoiceStatus.PARTIAL
