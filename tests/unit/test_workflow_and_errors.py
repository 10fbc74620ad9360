"""
Tests for the workflow definitions and the typed error hierarchy.
"""

from datetime import datetime, timezone

import pytest

from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.workflow import Transition, Workflow
from ledger_kernel.exceptions import (
    AlreadyPostedError,
    ApprovalIncompleteError,
    ConsistencyError,
    EmptyLineItemsError,
    LedgerError,
    LedgerInvariantError,
    NotFoundError,
    OutOfOrderApprovalError,
    StateError,
    UnknownInvoiceError,
    ValidationError,
)
from ledger_modules.billing.workflows import INVOICE_WORKFLOW
from ledger_modules.expense.workflows import EXPENSE_WORKFLOW


class TestWorkflowDefinition:

    def test_unknown_initial_state_rejected(self):
        with pytest.raises(ValueError):
            Workflow(
                name="w", description="", initial_state="Nope",
                states=("A",), transitions=(),
            )

    def test_transition_to_unknown_state_rejected(self):
        with pytest.raises(ValueError):
            Workflow(
                name="w", description="", initial_state="A",
                states=("A",), transitions=(Transition("A", "B", action="go"),),
            )

    def test_terminal_state_cannot_have_outgoing_transition(self):
        with pytest.raises(ValueError):
            Workflow(
                name="w", description="", initial_state="A",
                states=("A", "B"),
                transitions=(
                    Transition("A", "B", action="go"),
                    Transition("B", "A", action="back"),
                ),
                terminal_states=("B",),
            )


class TestInvoiceWorkflow:

    def test_draft_actions(self):
        assert INVOICE_WORKFLOW.can("Draft", "post")
        assert INVOICE_WORKFLOW.can("Draft", "edit_lines")
        assert INVOICE_WORKFLOW.can("Draft", "discard")

    def test_posted_is_terminal(self):
        assert INVOICE_WORKFLOW.actions_from("Posted") == ()
        assert not INVOICE_WORKFLOW.can("Posted", "edit_lines")
        assert not INVOICE_WORKFLOW.can("Posted", "post")


class TestExpenseWorkflow:

    def test_lifecycle(self):
        assert EXPENSE_WORKFLOW.can("Draft", "submit")
        assert EXPENSE_WORKFLOW.can("Unpaid", "mark_paid")
        assert not EXPENSE_WORKFLOW.can("Draft", "mark_paid")
        assert not EXPENSE_WORKFLOW.can("Unpaid", "edit_lines")

    def test_paid_is_terminal(self):
        assert EXPENSE_WORKFLOW.actions_from("Paid") == ()
        assert EXPENSE_WORKFLOW.find_transition("Unpaid", "mark_paid").to_state == "Paid"


class TestErrorHierarchy:

    def test_categories(self):
        assert issubclass(EmptyLineItemsError, ValidationError)
        assert issubclass(UnknownInvoiceError, NotFoundError)
        assert issubclass(AlreadyPostedError, StateError)
        assert issubclass(OutOfOrderApprovalError, StateError)
        assert issubclass(LedgerInvariantError, ConsistencyError)
        for cls in (ValidationError, NotFoundError, StateError, ConsistencyError):
            assert issubclass(cls, LedgerError)

    def test_errors_carry_fields(self):
        err = OutOfOrderApprovalError("exp-1", "Approved", "Noted")
        assert err.code == "OUT_OF_ORDER_APPROVAL"
        assert err.stage == "Approved"
        assert err.pending_stage == "Noted"

        err = ApprovalIncompleteError("exp-1", ["Approved"])
        assert err.pending_stages == ["Approved"]

    def test_codes_are_unique(self):
        def walk(cls):
            for sub in cls.__subclasses__():
                yield sub
                yield from walk(sub)

        codes = [cls.code for cls in walk(LedgerError)]
        assert len(codes) == len(set(codes))


class TestDeterministicClock:

    def test_fixed_until_advanced(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now()
        first = clock.now()
        assert clock.tick() > first

    def test_today_follows_now(self):
        clock = DeterministicClock(datetime(2024, 12, 31, 23, 0, tzinfo=timezone.utc))
        assert clock.today().year == 2024
        clock.advance(3600)
        assert clock.today().year == 2025
