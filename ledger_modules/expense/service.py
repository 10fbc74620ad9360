"""
Expense Module Service (``ledger_modules.expense.service``).

ExpenseApprovalTracker drives an expense voucher from Draft through
submission and the Prepared / Noted / Approved sign-offs to Paid.

All rule checks run against the loaded row before anything is changed,
so a rejected call leaves the voucher exactly as it was.

Transaction boundary: this service commits on success, rolls back on
failure.

Usage:
    tracker = ExpenseApprovalTracker(session, clock=clock)
    expense = tracker.create(
        category_id=trucking.id, payee="Juan Trucking", payment_channel="Cash",
        line_items=[("Trucking", Money.of("8500", "PHP"))],
    )
    tracker.submit(expense.id)
    tracker.advance_approval(expense.id, ApprovalStage.PREPARED, by="clerk")
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_config import LedgerSettings, get_active_settings
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.values import Currency, Money
from ledger_kernel.exceptions import (
    EmptyLineItemsError,
    NotDraftError,
    UnknownCategoryError,
    UnknownExpenseError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.services.sequence_service import SequenceService
from ledger_modules._validation import check_line_amounts, optional_ref, require_ref
from ledger_modules.categories.models import ExpenseType
from ledger_modules.categories.orm import ExpenseCategoryModel
from ledger_modules.expense.models import (
    ApprovalStage,
    Expense,
    ExpenseLineItem,
    ExpenseStatus,
    check_can_advance,
    check_can_pay,
    parse_stage,
)
from ledger_modules.expense.orm import ExpenseLineModel, ExpenseModel
from ledger_modules.expense.workflows import EXPENSE_WORKFLOW

logger = get_logger("modules.expense.service")

LineInput = ExpenseLineItem | tuple[str, Money] | tuple[str, str | None, Money]


def _coerce_lines(line_items: Iterable[LineInput]) -> list[ExpenseLineItem]:
    lines = []
    for item in line_items:
        if isinstance(item, ExpenseLineItem):
            lines.append(item)
        elif len(item) == 2:
            particular, amount = item
            lines.append(ExpenseLineItem(particular=particular, amount=amount))
        else:
            particular, description, amount = item
            lines.append(ExpenseLineItem(
                particular=particular, description=description, amount=amount
            ))
    return lines


class ExpenseApprovalTracker:
    """
    Expense vouchers and their three-stage approval chain.

    Lines are editable only in Draft.  Approval stages may be signed while
    the voucher is Draft or Unpaid, strictly in order, each exactly once.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        settings: LedgerSettings | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._settings = settings or get_active_settings()
        self._sequences = SequenceService(session)

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, expense_id: UUID) -> Expense:
        """Raises UnknownExpenseError."""
        return self._load(expense_id).to_dto()

    def _load(self, expense_id: UUID, for_update: bool = False) -> ExpenseModel:
        stmt = select(ExpenseModel).where(ExpenseModel.id == expense_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        model = self._session.execute(stmt).scalar_one_or_none()
        if model is None:
            raise UnknownExpenseError(str(expense_id))
        return model

    def _apply_lines(
        self, model: ExpenseModel, lines: list[ExpenseLineItem], actor: str | None
    ) -> None:
        check_line_amounts(
            "expense", (line.amount for line in lines),
            currency=Currency(model.currency), allow_empty=True,
        )
        total = Money.zero(model.currency)
        for line in lines:
            total = total + line.amount
        if model.lines:
            # Old rows must be gone before new ones reuse their line numbers.
            model.lines.clear()
            self._session.flush()
        model.lines = [
            ExpenseLineModel.from_dto(line, line_number=i, created_by=actor)
            for i, line in enumerate(lines, start=1)
        ]
        model.total_amount = total.minor_units

    # =========================================================================
    # Draft
    # =========================================================================

    def create(
        self,
        category_id: UUID,
        payee: str,
        payment_channel: str,
        line_items: Iterable[LineInput] = (),
        company_ref: str | None = None,
        expense_type: ExpenseType | str | None = None,
        booking_ref: str | None = None,
        expense_date: date | None = None,
        currency: str | None = None,
        actor: str | None = None,
    ) -> Expense:
        """
        Create a Draft expense, copying the category's defaults.

        ``currency`` defaults to the first line's currency, then to the
        configured default currency.

        Raises:
            UnknownCategoryError: category_id does not resolve.
            MissingReferenceError: payee, payment channel or company absent.
            InvalidExpenseTypeError: unknown expense type.
            EmptyLineItemsError: a supplied line amount <= 0.
            CurrencyMismatchError: lines in more than one currency.
        """
        with LogContext.bind(actor_id=actor):
            try:
                category = self._session.get(ExpenseCategoryModel, category_id)
                if category is None:
                    raise UnknownCategoryError(str(category_id))

                payee = require_ref("payee", payee)
                payment_channel = require_ref("payment_channel", payment_channel)
                company_ref = require_ref(
                    "company_ref", optional_ref(company_ref) or category.default_company_ref
                )
                resolved_type = ExpenseType.parse(
                    expense_type if expense_type is not None else category.default_expense_type
                )
                lines = _coerce_lines(line_items)
                if currency is None:
                    currency = (
                        lines[0].amount.currency.code if lines
                        else self._settings.default_currency
                    )
                currency = Currency(currency).code

                expense_date = expense_date or self._clock.today()
                numbering = self._settings.numbering
                model = ExpenseModel(
                    expense_date=expense_date,
                    category_id=category.id,
                    category_name=category.name,
                    company_ref=company_ref,
                    payee=payee,
                    expense_type=resolved_type.value,
                    payment_channel=payment_channel,
                    booking_ref=optional_ref(booking_ref),
                    currency=currency,
                    status=ExpenseStatus.DRAFT.value,
                    created_by=actor,
                )
                self._apply_lines(model, lines, actor)
                model.expense_number = self._sequences.next_document_number(
                    numbering.expense_prefix, expense_date.year, numbering.width
                )
                self._session.add(model)
                self._session.flush()
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info("expense_created", extra={
                "expense_id": str(model.id),
                "expense_number": model.expense_number,
                "category_name": model.category_name,
                "total_amount": model.total_amount,
                "currency": model.currency,
            })
            return model.to_dto()

    def update_lines(
        self,
        expense_id: UUID,
        line_items: Iterable[LineInput],
        actor: str | None = None,
    ) -> Expense:
        """Replace a draft's line items.  Raises NotDraftError otherwise."""
        with LogContext.bind(expense_id=expense_id, actor_id=actor):
            try:
                model = self._load(expense_id, for_update=True)
                if not EXPENSE_WORKFLOW.can(model.status, "edit_lines"):
                    raise NotDraftError(str(expense_id), model.status)
                self._apply_lines(model, _coerce_lines(line_items), actor)
                model.updated_by = actor
                self._session.flush()
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info("expense_lines_updated", extra={
                "line_count": len(model.lines),
                "total_amount": model.total_amount,
            })
            return model.to_dto()

    def submit(self, expense_id: UUID, actor: str | None = None) -> Expense:
        """
        Draft -> Unpaid.  Lines are frozen from here on.

        Raises:
            NotDraftError: already submitted.
            EmptyLineItemsError: no line items.
        """
        with LogContext.bind(expense_id=expense_id, actor_id=actor):
            try:
                model = self._load(expense_id, for_update=True)
                if not EXPENSE_WORKFLOW.can(model.status, "submit"):
                    raise NotDraftError(str(expense_id), model.status)
                if not model.lines:
                    raise EmptyLineItemsError(
                        "expense", "at least one line item is required to submit"
                    )
                model.status = ExpenseStatus.UNPAID.value
                model.updated_by = actor
                self._session.flush()
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info("expense_submitted", extra={
                "expense_number": model.expense_number,
                "total_amount": model.total_amount,
            })
            return model.to_dto()

    # =========================================================================
    # Approval
    # =========================================================================

    def advance_approval(
        self,
        expense_id: UUID,
        stage: ApprovalStage | str,
        by: str,
    ) -> Expense:
        """
        Complete one approval stage.

        Raises:
            InvalidApprovalStageError: ``stage`` is not an approval stage.
            MissingReferenceError: ``by`` absent.
            AlreadyPaidError: expense is Paid.
            OutOfOrderApprovalError: an earlier stage is still Pending.
            StageAlreadyCompletedError: the stage was already signed.
        """
        with LogContext.bind(expense_id=expense_id, actor_id=by):
            try:
                stage = parse_stage(stage)
                by = require_ref("by", by)
                model = self._load(expense_id, for_update=True)
                check_can_advance(
                    model.id, ExpenseStatus(model.status), model.approval_chain(), stage
                )
                model.complete_stage(stage, by, self._clock.now())
                model.updated_by = by
                self._session.flush()
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info("expense_approval_advanced", extra={
                "stage": stage.value,
                "expense_number": model.expense_number,
            })
            return model.to_dto()

    def mark_paid(self, expense_id: UUID, actor: str | None = None) -> Expense:
        """
        Unpaid -> Paid (terminal).

        Raises:
            AlreadyPaidError: already Paid.
            ExpenseNotSubmittedError: still Draft.
            ApprovalIncompleteError: Approved stage not completed.
        """
        with LogContext.bind(expense_id=expense_id, actor_id=actor):
            try:
                model = self._load(expense_id, for_update=True)
                check_can_pay(model.id, ExpenseStatus(model.status), model.approval_chain())
                model.status = ExpenseStatus.PAID.value
                model.paid_at = self._clock.now()
                model.updated_by = actor
                self._session.flush()
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info("expense_paid", extra={
                "expense_number": model.expense_number,
                "total_amount": model.total_amount,
                "currency": model.currency,
            })
            return model.to_dto()
