"""
Billing Module Service (``ledger_modules.billing.service``).

InvoiceLedger owns the invoice lifecycle: drafting, editing drafts,
posting (which assigns the invoice number and freezes the lines) and
recomputing the collected amount from allocation rows.

Transaction boundary: public operations commit on success and roll back
on failure.  ``recompute_status`` only flushes; it runs inside the
allocation service's transaction.

Usage:
    ledger = InvoiceLedger(session, clock=clock)
    draft = ledger.create_draft(
        client_ref="ACME", company_ref="JLCS",
        line_items=[("Ocean freight", Money.of("125000", "PHP"))],
    )
    posted = ledger.post(draft.id)
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledger_config import LedgerSettings, get_active_settings
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.values import Money
from ledger_kernel.exceptions import (
    AlreadyPostedError,
    LedgerInvariantError,
    UnknownInvoiceError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.services.sequence_service import SequenceService
from ledger_modules._validation import check_line_amounts, optional_ref, require_ref
from ledger_modules.allocation.orm import PaymentAllocationModel
from ledger_modules.billing.models import Invoice, InvoiceLineItem, InvoiceStage
from ledger_modules.billing.orm import InvoiceLineModel, InvoiceModel
from ledger_modules.billing.workflows import INVOICE_WORKFLOW

logger = get_logger("modules.billing.service")

LineInput = InvoiceLineItem | tuple[str, Money]


def _coerce_lines(line_items: Iterable[LineInput]) -> list[InvoiceLineItem]:
    lines = []
    for item in line_items:
        if isinstance(item, InvoiceLineItem):
            lines.append(item)
        else:
            description, amount = item
            lines.append(InvoiceLineItem(description=description, amount=amount))
    return lines


class InvoiceLedger:
    """
    Creates, edits, posts and recomputes invoices.

    Stated amount is always the sum of the line items.  Collected amount is
    always the sum of the invoice's allocation rows and is never set by a
    caller.
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

    def get(self, invoice_id: UUID) -> Invoice:
        """Raises UnknownInvoiceError."""
        return self._load(invoice_id).to_dto()

    def _load(self, invoice_id: UUID, for_update: bool = False) -> InvoiceModel:
        stmt = select(InvoiceModel).where(InvoiceModel.id == invoice_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        model = self._session.execute(stmt).scalar_one_or_none()
        if model is None:
            raise UnknownInvoiceError(str(invoice_id))
        return model

    def _require_draft(self, model: InvoiceModel, action: str) -> None:
        if not INVOICE_WORKFLOW.can(model.stage, action):
            raise AlreadyPostedError(str(model.id), model.invoice_number)

    def _validated_lines(self, line_items: Iterable[LineInput]) -> list[InvoiceLineItem]:
        lines = _coerce_lines(line_items)
        check_line_amounts("invoice", (line.amount for line in lines))
        return lines

    def _apply_lines(self, model: InvoiceModel, lines: list[InvoiceLineItem], actor: str | None) -> None:
        currency = lines[0].amount.currency
        stated = Money.zero(currency)
        for line in lines:
            stated = stated + line.amount
        if model.lines:
            # Old rows must be gone before new ones reuse their line numbers.
            model.lines.clear()
            self._session.flush()
        model.lines = [
            InvoiceLineModel.from_dto(line, line_number=i, created_by=actor)
            for i, line in enumerate(lines, start=1)
        ]
        model.currency = currency.code
        model.stated_amount = stated.minor_units

    # =========================================================================
    # Drafts
    # =========================================================================

    def create_draft(
        self,
        client_ref: str,
        company_ref: str,
        line_items: Iterable[LineInput],
        booking_ref: str | None = None,
        issue_date: date | None = None,
        due_date: date | None = None,
        notes: str | None = None,
        actor: str | None = None,
    ) -> Invoice:
        """
        Create a Draft invoice.

        Raises:
            MissingReferenceError: client_ref or company_ref absent.
            EmptyLineItemsError: no lines, or a line amount <= 0.
            CurrencyMismatchError: lines in more than one currency.
        """
        try:
            model = self._build_draft(
                client_ref, company_ref, line_items, booking_ref,
                issue_date, due_date, notes, actor,
            )
            self._session.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("invoice_draft_created", extra={
            "invoice_id": str(model.id),
            "client_ref": model.client_ref,
            "stated_amount": model.stated_amount,
            "currency": model.currency,
        })
        return model.to_dto()

    def _build_draft(
        self,
        client_ref, company_ref, line_items, booking_ref,
        issue_date, due_date, notes, actor,
    ) -> InvoiceModel:
        client_ref = require_ref("client_ref", client_ref)
        company_ref = require_ref("company_ref", company_ref)
        lines = self._validated_lines(line_items)

        model = InvoiceModel(
            stage=InvoiceStage.DRAFT.value,
            issue_date=issue_date or self._clock.today(),
            due_date=due_date,
            client_ref=client_ref,
            company_ref=company_ref,
            booking_ref=optional_ref(booking_ref),
            notes=notes,
            collected_amount=0,
            created_by=actor,
        )
        self._apply_lines(model, lines, actor)
        self._session.add(model)
        return model

    def update_draft_lines(
        self,
        invoice_id: UUID,
        line_items: Iterable[LineInput],
        actor: str | None = None,
    ) -> Invoice:
        """Replace a draft's line items.  Raises AlreadyPostedError once posted."""
        with LogContext.bind(invoice_id=invoice_id, actor_id=actor):
            try:
                model = self._load(invoice_id, for_update=True)
                self._require_draft(model, "edit_lines")
                lines = self._validated_lines(line_items)
                self._apply_lines(model, lines, actor)
                model.updated_by = actor
                self._session.flush()
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info("invoice_draft_lines_updated", extra={
                "line_count": len(lines),
                "stated_amount": model.stated_amount,
            })
            return model.to_dto()

    def discard_draft(self, invoice_id: UUID) -> None:
        """Delete a draft.  Posted invoices are never deleted."""
        with LogContext.bind(invoice_id=invoice_id):
            try:
                model = self._load(invoice_id, for_update=True)
                self._require_draft(model, "discard")
                self._session.delete(model)
                self._session.flush()
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise
            logger.info("invoice_draft_discarded")

    # =========================================================================
    # Posting
    # =========================================================================

    def post(self, invoice_id: UUID, actor: str | None = None) -> Invoice:
        """
        Post a draft: assign its invoice number and freeze its lines.

        Raises:
            UnknownInvoiceError: no such invoice.
            AlreadyPostedError: invoice is not a Draft.
        """
        with LogContext.bind(invoice_id=invoice_id, actor_id=actor):
            try:
                model = self._load(invoice_id, for_update=True)
                self._post_model(model, actor)
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise
            return model.to_dto()

    def create_posted(
        self,
        client_ref: str,
        company_ref: str,
        line_items: Iterable[LineInput],
        booking_ref: str | None = None,
        issue_date: date | None = None,
        due_date: date | None = None,
        notes: str | None = None,
        actor: str | None = None,
    ) -> Invoice:
        """Create and post an invoice in one transaction."""
        try:
            model = self._build_draft(
                client_ref, company_ref, line_items, booking_ref,
                issue_date, due_date, notes, actor,
            )
            self._session.flush()
            self._post_model(model, actor)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        return model.to_dto()

    def _post_model(self, model: InvoiceModel, actor: str | None) -> None:
        self._require_draft(model, "post")
        numbering = self._settings.numbering
        model.invoice_number = self._sequences.next_document_number(
            numbering.invoice_prefix, model.issue_date.year, numbering.width
        )
        model.stage = InvoiceStage.POSTED.value
        model.posted_at = self._clock.now()
        model.updated_by = actor
        self._session.flush()
        logger.info("invoice_posted", extra={
            "invoice_id": str(model.id),
            "invoice_number": model.invoice_number,
            "stated_amount": model.stated_amount,
            "currency": model.currency,
        })

    # =========================================================================
    # Recompute (flush-only, called inside the allocation transaction)
    # =========================================================================

    def recompute_status(self, invoice_id: UUID) -> Invoice:
        """
        Rewrite collected_amount from the invoice's allocation rows.

        Raises:
            LedgerInvariantError: the rows sum outside [0, stated].
        """
        model = self._load(invoice_id)
        collected = self._session.execute(
            select(func.coalesce(func.sum(PaymentAllocationModel.amount_applied), 0))
            .where(PaymentAllocationModel.invoice_id == invoice_id)
        ).scalar_one()
        collected = int(collected)

        if collected < 0 or collected > model.stated_amount:
            raise LedgerInvariantError(
                "invoice",
                str(invoice_id),
                f"collected {collected} outside [0, {model.stated_amount}] "
                f"{model.currency}",
            )
        if collected and model.stage != InvoiceStage.POSTED.value:
            raise LedgerInvariantError(
                "invoice", str(invoice_id), f"{model.stage} invoice has allocations"
            )

        if model.collected_amount != collected:
            model.collected_amount = collected
            self._session.flush()

        invoice = model.to_dto()
        logger.debug("invoice_status_recomputed", extra={
            "invoice_id": str(invoice_id),
            "collected_amount": collected,
            "status": invoice.status.value,
        })
        return invoice
