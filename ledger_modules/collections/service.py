"""
Collections Module Service (``ledger_modules.collections.service``).

PaymentLedger records collections and keeps each collection's applied
amount equal to the sum of its allocation rows.

Transaction boundary: ``create`` and ``discard`` commit on success and roll
back on failure.  ``recompute_status`` only flushes.

Usage:
    ledger = PaymentLedger(session, clock=clock)
    collection = ledger.create(
        client_ref="ACME", company_ref="JLCS", payment_method="Check",
        amount_received=Money.of("50000", "PHP"), reference_number="CHK-0042",
    )
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledger_config import LedgerSettings, get_active_settings
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.values import Money
from ledger_kernel.exceptions import (
    DuplicateReceiptNumberError,
    LedgerInvariantError,
    NonPositiveAmountError,
    PaymentHasAllocationsError,
    UnknownPaymentError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.services.sequence_service import SequenceService
from ledger_modules._validation import optional_ref, require_ref
from ledger_modules.allocation.orm import PaymentAllocationModel
from ledger_modules.collections.models import Collection
from ledger_modules.collections.orm import CollectionModel

logger = get_logger("modules.collections.service")

# Auto-numbering skips past receipt numbers a caller already typed in.
_MAX_RECEIPT_NUMBER_ATTEMPTS = 1000


class PaymentLedger:
    """Records collections and recomputes how much of each is applied."""

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

    def get(self, payment_id: UUID) -> Collection:
        """Raises UnknownPaymentError."""
        return self._load(payment_id).to_dto()

    def _load(self, payment_id: UUID, for_update: bool = False) -> CollectionModel:
        stmt = select(CollectionModel).where(CollectionModel.id == payment_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        model = self._session.execute(stmt).scalar_one_or_none()
        if model is None:
            raise UnknownPaymentError(str(payment_id))
        return model

    def _receipt_exists(self, receipt_number: str) -> bool:
        return self._session.execute(
            select(CollectionModel.id).where(
                CollectionModel.receipt_number == receipt_number
            )
        ).first() is not None

    def _next_receipt_number(self, year: int) -> str:
        numbering = self._settings.numbering
        for _ in range(_MAX_RECEIPT_NUMBER_ATTEMPTS):
            candidate = self._sequences.next_document_number(
                numbering.receipt_prefix, year, numbering.width
            )
            if not self._receipt_exists(candidate):
                return candidate
        raise DuplicateReceiptNumberError(candidate)

    def create(
        self,
        client_ref: str,
        company_ref: str,
        payment_method: str,
        amount_received: Money,
        reference_number: str | None = None,
        receipt_number: str | None = None,
        collection_date: date | None = None,
        notes: str | None = None,
        actor: str | None = None,
    ) -> Collection:
        """
        Record a collection with nothing applied yet.

        Raises:
            MissingReferenceError: client, company or payment method absent.
            NonPositiveAmountError: amount_received <= 0.
            DuplicateReceiptNumberError: receipt_number already used.
        """
        with LogContext.bind(actor_id=actor):
            try:
                client_ref = require_ref("client_ref", client_ref)
                company_ref = require_ref("company_ref", company_ref)
                payment_method = require_ref("payment_method", payment_method)
                if not amount_received.is_positive:
                    raise NonPositiveAmountError(
                        "amount_received", str(amount_received.amount)
                    )

                collection_date = collection_date or self._clock.today()
                receipt_number = optional_ref(receipt_number)
                if receipt_number is None:
                    receipt_number = self._next_receipt_number(collection_date.year)
                elif self._receipt_exists(receipt_number):
                    raise DuplicateReceiptNumberError(receipt_number)

                model = CollectionModel(
                    receipt_number=receipt_number,
                    collection_date=collection_date,
                    client_ref=client_ref,
                    company_ref=company_ref,
                    payment_method=payment_method,
                    reference_number=optional_ref(reference_number),
                    notes=notes,
                    currency=amount_received.currency.code,
                    amount_received=amount_received.minor_units,
                    applied_amount=0,
                    created_by=actor,
                )
                self._session.add(model)
                self._session.flush()
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info("collection_created", extra={
                "payment_id": str(model.id),
                "receipt_number": receipt_number,
                "client_ref": model.client_ref,
                "amount_received": model.amount_received,
                "currency": model.currency,
            })
            return model.to_dto()

    def discard(self, payment_id: UUID) -> None:
        """
        Delete a collection that has never been applied.

        Raises:
            UnknownPaymentError: no such collection.
            PaymentHasAllocationsError: allocation rows still reference it.
        """
        with LogContext.bind(payment_id=payment_id):
            try:
                model = self._load(payment_id, for_update=True)
                count = self._session.execute(
                    select(func.count())
                    .select_from(PaymentAllocationModel)
                    .where(PaymentAllocationModel.payment_id == payment_id)
                ).scalar_one()
                if count:
                    raise PaymentHasAllocationsError(str(payment_id), count)
                receipt_number = model.receipt_number
                self._session.delete(model)
                self._session.flush()
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise
            logger.info("collection_discarded", extra={
                "receipt_number": receipt_number,
            })

    def recompute_status(self, payment_id: UUID) -> Collection:
        """
        Rewrite applied_amount from the collection's allocation rows.

        Raises:
            LedgerInvariantError: the rows sum outside [0, received].
        """
        model = self._load(payment_id)
        applied = int(self._session.execute(
            select(func.coalesce(func.sum(PaymentAllocationModel.amount_applied), 0))
            .where(PaymentAllocationModel.payment_id == payment_id)
        ).scalar_one())

        if applied < 0 or applied > model.amount_received:
            raise LedgerInvariantError(
                "collection",
                str(payment_id),
                f"applied {applied} outside [0, {model.amount_received}] {model.currency}",
            )

        if model.applied_amount != applied:
            model.applied_amount = applied
            self._session.flush()

        collection = model.to_dto()
        logger.debug("collection_status_recomputed", extra={
            "payment_id": str(payment_id),
            "applied_amount": applied,
            "status": collection.status.value,
        })
        return collection
