"""
Tests for AllocationService.

Validates:
- Full and partial settlement of invoices
- Clamping to the invoice balance and the unapplied payment, with warnings
- Replace semantics when a pair is allocated twice
- Deallocation restores both sides
- Atomicity: a rejected call changes nothing
"""

from uuid import uuid4

import pytest

from ledger_kernel.domain.values import Money
from ledger_kernel.exceptions import (
    CurrencyMismatchError,
    InvoiceNotPostedError,
    NoSuchAllocationError,
    NonPositiveAmountError,
    UnknownInvoiceError,
    UnknownPaymentError,
)
from ledger_modules.allocation.models import AllocationRequest, PartialAllocationWarning
from ledger_modules.billing.models import InvoiceStatus
from ledger_modules.collections.models import CollectionStatus


def _php(amount) -> Money:
    return Money.of(str(amount), "PHP")


class TestSettlementScenarios:

    def test_full_settlement(self, make_invoice, make_collection, allocation_service):
        invoice = make_invoice("125000")
        payment = make_collection("125000")

        result = allocation_service.allocate(payment.id, [(invoice.id, _php("125000"))])

        settled = result.invoice(invoice.id)
        assert settled.status is InvoiceStatus.PAID
        assert settled.balance.is_zero
        assert result.payment.status is CollectionStatus.FULLY_APPLIED
        assert result.payment.unapplied_balance.is_zero
        assert not result.has_warnings

    def test_partial_settlement(self, make_invoice, make_collection, allocation_service):
        invoice = make_invoice("85000")
        payment = make_collection("40000")

        result = allocation_service.allocate(payment.id, [(invoice.id, _php("40000"))])

        assert result.invoice(invoice.id).status is InvoiceStatus.PARTIAL
        assert result.invoice(invoice.id).balance == _php("45000")
        assert result.payment.status is CollectionStatus.FULLY_APPLIED
        assert result.payment.unapplied_balance.is_zero

    def test_clamped_by_unapplied_payment(self, make_invoice, make_collection, allocation_service):
        invoice_a = make_invoice("45000")
        invoice_b = make_invoice("10000")
        payment = make_collection("50000")

        result = allocation_service.allocate(payment.id, [
            AllocationRequest(invoice_a.id, _php("45000")),
            AllocationRequest(invoice_b.id, _php("15000")),
        ])

        assert result.invoice(invoice_a.id).status is InvoiceStatus.PAID
        assert result.invoice(invoice_b.id).collected_amount == _php("5000")
        assert result.invoice(invoice_b.id).status is InvoiceStatus.PARTIAL
        assert result.payment.applied_amount == _php("50000")
        assert result.payment.status is CollectionStatus.FULLY_APPLIED

        warning = result.warning_for(invoice_b.id)
        assert isinstance(warning, PartialAllocationWarning)
        assert warning.allocated == _php("5000")
        assert warning.invoice_room == _php("10000")
        assert warning.shortfall == _php("5000")
        assert warning.over_balance == _php("5000")
        assert warning.unapplied == _php("10000")
        assert result.warning_for(invoice_a.id) is None
        assert result.total_allocated == _php("50000")

    def test_clamped_by_invoice_balance(self, make_invoice, make_collection, allocation_service):
        invoice = make_invoice("10000")
        payment = make_collection("50000")

        result = allocation_service.allocate(payment.id, [(invoice.id, _php("15000"))])

        assert result.invoice(invoice.id).status is InvoiceStatus.PAID
        assert result.payment.applied_amount == _php("10000")
        assert result.payment.status is CollectionStatus.PARTIALLY_APPLIED
        warning = result.warning_for(invoice.id)
        assert warning.over_balance == _php("5000")
        assert warning.shortfall.is_zero

    def test_one_payment_across_invoices_of_several_payments(
        self, make_invoice, make_collection, allocation_service, selector,
    ):
        invoice = make_invoice("100")
        first = make_collection("60")
        second = make_collection("60")

        allocation_service.allocate(first.id, [(invoice.id, _php(60))])
        result = allocation_service.allocate(second.id, [(invoice.id, _php(60))])

        assert result.invoice(invoice.id).status is InvoiceStatus.PAID
        assert result.payment.applied_amount == _php(40)
        assert len(selector.allocations_for_invoice(invoice.id)) == 2


class TestReplaceSemantics:

    def test_reallocating_a_pair_replaces_amount(
        self, make_invoice, make_collection, allocation_service, selector,
    ):
        invoice = make_invoice("1000")
        payment = make_collection("1000")

        allocation_service.allocate(payment.id, [(invoice.id, _php(300))])
        result = allocation_service.allocate(payment.id, [(invoice.id, _php(500))])

        assert result.payment.applied_amount == _php(500)
        assert result.invoice(invoice.id).collected_amount == _php(500)
        rows = selector.allocations_for_payment(payment.id)
        assert len(rows) == 1
        assert rows[0].amount_applied == _php(500)

    def test_zero_target_is_a_no_op(self, make_invoice, make_collection, allocation_service):
        invoice = make_invoice("1000")
        payment = make_collection("1000")

        result = allocation_service.allocate(payment.id, [(invoice.id, Money.zero("PHP"))])

        assert result.allocations == ()
        assert result.payment.applied_amount.is_zero
        assert result.invoice(invoice.id).status is InvoiceStatus.POSTED


class TestDeallocate:

    def test_paid_invoice_returns_to_partial(
        self, make_invoice, make_collection, allocation_service,
    ):
        invoice = make_invoice("100")
        first = make_collection("60")
        second = make_collection("40")
        allocation_service.allocate(first.id, [(invoice.id, _php(60))])
        paid = allocation_service.allocate(second.id, [(invoice.id, _php(40))])
        assert paid.invoice(invoice.id).status is InvoiceStatus.PAID

        result = allocation_service.deallocate(second.id, invoice.id, actor="clerk")

        assert result.invoice(invoice.id).status is InvoiceStatus.PARTIAL
        assert result.invoice(invoice.id).collected_amount == _php(60)
        assert result.payment.status is CollectionStatus.UNAPPLIED
        assert result.removed[0].amount_applied == _php(40)

    def test_payment_returns_to_partially_applied(
        self, make_invoice, make_collection, allocation_service,
    ):
        a = make_invoice("50")
        b = make_invoice("50")
        payment = make_collection("100")
        allocation_service.allocate(payment.id, [(a.id, _php(50)), (b.id, _php(50))])

        result = allocation_service.deallocate(payment.id, a.id)

        assert result.payment.status is CollectionStatus.PARTIALLY_APPLIED
        assert result.payment.applied_amount == _php(50)
        assert result.invoice(a.id).status is InvoiceStatus.POSTED

    def test_missing_pair(self, make_invoice, make_collection, allocation_service):
        invoice = make_invoice("100")
        payment = make_collection("100")
        with pytest.raises(NoSuchAllocationError):
            allocation_service.deallocate(payment.id, invoice.id)

    def test_unknown_ids(self, make_invoice, make_collection, allocation_service):
        invoice = make_invoice("100")
        payment = make_collection("100")
        with pytest.raises(UnknownPaymentError):
            allocation_service.deallocate(uuid4(), invoice.id)
        with pytest.raises(UnknownInvoiceError):
            allocation_service.deallocate(payment.id, uuid4())


class TestAtomicity:

    def _assert_untouched(self, invoice_ledger, payment_ledger, selector, invoice, payment):
        assert invoice_ledger.get(invoice.id).collected_amount.is_zero
        assert payment_ledger.get(payment.id).applied_amount.is_zero
        assert selector.allocations_for_payment(payment.id) == ()

    def test_negative_target_rejects_whole_call(
        self, make_invoice, make_collection, allocation_service,
        invoice_ledger, payment_ledger, selector,
    ):
        good = make_invoice("100")
        payment = make_collection("100")
        with pytest.raises(NonPositiveAmountError):
            allocation_service.allocate(payment.id, [
                (good.id, _php(50)),
                (good.id, _php(-1)),
            ])
        self._assert_untouched(invoice_ledger, payment_ledger, selector, good, payment)

    def test_unknown_invoice_rejects_whole_call(
        self, make_invoice, make_collection, allocation_service,
        invoice_ledger, payment_ledger, selector,
    ):
        good = make_invoice("100")
        payment = make_collection("100")
        with pytest.raises(UnknownInvoiceError):
            allocation_service.allocate(payment.id, [(good.id, _php(50)), (uuid4(), _php(10))])
        self._assert_untouched(invoice_ledger, payment_ledger, selector, good, payment)

    def test_draft_invoice_rejects_whole_call(
        self, make_invoice, make_collection, allocation_service,
        invoice_ledger, payment_ledger, selector,
    ):
        good = make_invoice("100")
        draft = make_invoice("100", post=False)
        payment = make_collection("100")
        with pytest.raises(InvoiceNotPostedError):
            allocation_service.allocate(payment.id, [(good.id, _php(50)), (draft.id, _php(10))])
        self._assert_untouched(invoice_ledger, payment_ledger, selector, good, payment)

    def test_currency_mismatch(
        self, invoice_ledger, make_collection, allocation_service, payment_ledger, selector,
    ):
        usd_invoice = invoice_ledger.create_posted(
            "ACME", "JLCS", [("Freight", Money.of("100", "USD"))]
        )
        payment = make_collection("100")
        with pytest.raises(CurrencyMismatchError):
            allocation_service.allocate(payment.id, [(usd_invoice.id, Money.of("10", "USD"))])
        with pytest.raises(CurrencyMismatchError):
            allocation_service.allocate(payment.id, [(usd_invoice.id, _php(10))])
        self._assert_untouched(invoice_ledger, payment_ledger, selector, usd_invoice, payment)

    def test_unknown_payment(self, make_invoice, allocation_service):
        invoice = make_invoice("100")
        with pytest.raises(UnknownPaymentError):
            allocation_service.allocate(uuid4(), [(invoice.id, _php(10))])

    def test_rejection_is_logged(
        self, captured_logs, make_invoice, make_collection, allocation_service,
    ):
        invoice = make_invoice("100")
        payment = make_collection("100")
        with pytest.raises(NonPositiveAmountError):
            allocation_service.allocate(payment.id, [(invoice.id, _php(-1))])
        rejected = [r for r in captured_logs() if r["message"] == "allocation_rejected"]
        assert rejected[0]["error_code"] == "NON_POSITIVE_AMOUNT"
