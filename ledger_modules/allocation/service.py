"""
Allocation Module Service (``ledger_modules.allocation.service``).

Thin glue between the pure planner and the two ledgers:

1. Lock the collection row, then every targeted invoice row in ascending
   id order (``SELECT ... FOR UPDATE``), so the clamp reads balances no
   other transaction can move underneath it.
2. Validate every target before writing anything.
3. Plan with ``AllocationPlanner`` and write the resulting pair rows.
4. Have PaymentLedger and InvoiceLedger recompute from the rows.
5. Commit, or roll back everything.

Usage:
    service = AllocationService(session)
    result = service.allocate(collection.id, [
        AllocationRequest(invoice_a.id, Money.of("45000", "PHP")),
        AllocationRequest(invoice_b.id, Money.of("15000", "PHP")),
    ])
    for warning in result.warnings:
        print(warning.invoice_id, warning.unapplied)
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_config import LedgerSettings, get_active_settings
from ledger_engines.allocation import (
    AllocationPlanner,
    AllocationRequest,
    InvoicePosition,
    PaymentPosition,
)
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.values import Currency, Money
from ledger_kernel.exceptions import (
    InvoiceNotPostedError,
    LedgerError,
    LedgerInvariantError,
    NoSuchAllocationError,
    UnknownInvoiceError,
    UnknownPaymentError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_modules.allocation.models import AllocationResult
from ledger_modules.allocation.orm import PaymentAllocationModel
from ledger_modules.billing.models import InvoiceStage
from ledger_modules.billing.orm import InvoiceModel
from ledger_modules.billing.service import InvoiceLedger
from ledger_modules.collections.orm import CollectionModel
from ledger_modules.collections.service import PaymentLedger

logger = get_logger("modules.allocation.service")

TargetInput = AllocationRequest | tuple[UUID, Money]


def _coerce_targets(targets: Iterable[TargetInput]) -> list[AllocationRequest]:
    requests = []
    for target in targets:
        if isinstance(target, AllocationRequest):
            requests.append(target)
        else:
            invoice_id, amount = target
            requests.append(AllocationRequest(invoice_id=invoice_id, amount=amount))
    return requests


class AllocationService:
    """
    Applies collections to invoices.

    Transaction boundary: this service commits on success, rolls back on
    failure.  The ledgers' recompute calls flush into the same transaction.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        settings: LedgerSettings | None = None,
    ):
        self._session = session
        settings = settings or get_active_settings()
        clock = clock or SystemClock()
        self._planner = AllocationPlanner()
        self._invoices = InvoiceLedger(session, clock=clock, settings=settings)
        self._payments = PaymentLedger(session, clock=clock, settings=settings)

    # =========================================================================
    # Locking
    # =========================================================================

    def _lock_payment(self, payment_id: UUID) -> CollectionModel:
        model = self._session.execute(
            select(CollectionModel)
            .where(CollectionModel.id == payment_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if model is None:
            raise UnknownPaymentError(str(payment_id))
        return model

    def _lock_invoices(self, invoice_ids: Sequence[UUID]) -> dict[UUID, InvoiceModel]:
        """Lock invoices one by one in ascending id order."""
        locked: dict[UUID, InvoiceModel] = {}
        for invoice_id in sorted(set(invoice_ids), key=str):
            model = self._session.execute(
                select(InvoiceModel)
                .where(InvoiceModel.id == invoice_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
            if model is None:
                raise UnknownInvoiceError(str(invoice_id))
            if model.stage != InvoiceStage.POSTED.value:
                raise InvoiceNotPostedError(str(invoice_id))
            locked[invoice_id] = model
        return locked

    def _pair_rows(
        self, payment_id: UUID, invoice_ids: Iterable[UUID]
    ) -> dict[UUID, PaymentAllocationModel]:
        invoice_ids = list(invoice_ids)
        if not invoice_ids:
            return {}
        rows = self._session.execute(
            select(PaymentAllocationModel).where(
                PaymentAllocationModel.payment_id == payment_id,
                PaymentAllocationModel.invoice_id.in_(invoice_ids),
            )
        ).scalars()
        return {row.invoice_id: row for row in rows}

    # =========================================================================
    # Allocate
    # =========================================================================

    def allocate(
        self,
        payment_id: UUID,
        targets: Iterable[TargetInput],
        actor: str | None = None,
    ) -> AllocationResult:
        """
        Apply a collection to invoices in the given order.

        Each target is clamped to the invoice's open balance and to what is
        left of the collection; clamped targets come back as
        PartialAllocationWarning entries.  Targeting a pair that already has
        an allocation replaces its amount.

        Raises:
            UnknownPaymentError, UnknownInvoiceError: ids do not resolve.
            NonPositiveAmountError: a target amount is negative.
            CurrencyMismatchError: a target is not in the collection's currency.
            InvoiceNotPostedError: a target invoice is still a Draft.
            LedgerInvariantError: recomputed figures break their bounds.
        """
        requests = _coerce_targets(targets)

        with LogContext.bind(payment_id=payment_id, actor_id=actor):
            try:
                payment = self._lock_payment(payment_id)
                currency = Currency(payment.currency)
                for request in requests:
                    self._planner.check_request(currency, request)

                invoice_ids = [r.invoice_id for r in requests]
                invoices = self._lock_invoices(invoice_ids)
                rows = self._pair_rows(payment_id, invoices)

                plan = self._planner.plan(
                    payment=PaymentPosition(
                        payment_id=payment.id,
                        received=Money.from_minor(payment.amount_received, currency),
                        applied=Money.from_minor(payment.applied_amount, currency),
                    ),
                    invoices={
                        inv_id: InvoicePosition(
                            invoice_id=inv_id,
                            stated=Money.from_minor(inv.stated_amount, inv.currency),
                            collected=Money.from_minor(inv.collected_amount, inv.currency),
                        )
                        for inv_id, inv in invoices.items()
                    },
                    existing={
                        inv_id: Money.from_minor(row.amount_applied, row.currency)
                        for inv_id, row in rows.items()
                    },
                    requests=requests,
                )

                written = []
                for inv_id, amount in plan.pair_amounts.items():
                    row = rows.get(inv_id)
                    if row is None:
                        row = PaymentAllocationModel(
                            payment_id=payment.id,
                            invoice_id=inv_id,
                            currency=amount.currency.code,
                            created_by=actor,
                        )
                        self._session.add(row)
                    else:
                        row.updated_by = actor
                    row.amount_applied = amount.minor_units
                    written.append(row)
                self._session.flush()

                collection = self._payments.recompute_status(payment.id)
                if collection.applied_amount != plan.applied_after:
                    raise LedgerInvariantError(
                        "collection",
                        str(payment.id),
                        f"planned applied {plan.applied_after} but rows sum to "
                        f"{collection.applied_amount}",
                    )
                ordered_ids = list(dict.fromkeys(invoice_ids))
                recomputed = {
                    inv_id: self._invoices.recompute_status(inv_id)
                    for inv_id in sorted(invoices, key=str)
                }
                allocations = tuple(row.to_dto() for row in written)
                self._session.commit()

            except LedgerError as e:
                self._session.rollback()
                logger.warning("allocation_rejected", extra={
                    "error_code": e.code,
                    "target_count": len(requests),
                })
                raise
            except Exception:
                self._session.rollback()
                raise

            for warning in plan.warnings:
                logger.warning("allocation_clamped", extra={
                    "invoice_id": str(warning.invoice_id),
                    "requested": warning.requested.minor_units,
                    "allocated": warning.allocated.minor_units,
                    "shortfall": warning.shortfall.minor_units,
                    "over_balance": warning.over_balance.minor_units,
                })
            logger.info("allocation_committed", extra={
                "pair_count": len(allocations),
                "applied_amount": collection.applied_amount.minor_units,
                "status": collection.status.value,
                "warning_count": len(plan.warnings),
            })

            return AllocationResult(
                payment=collection,
                invoices=tuple(recomputed[inv_id] for inv_id in ordered_ids),
                allocations=allocations,
                lines=plan.lines,
                warnings=plan.warnings,
            )

    # =========================================================================
    # Deallocate
    # =========================================================================

    def deallocate(
        self,
        payment_id: UUID,
        invoice_id: UUID,
        actor: str | None = None,
    ) -> AllocationResult:
        """
        Remove the allocation of a collection to one invoice.

        Raises:
            UnknownPaymentError, UnknownInvoiceError: ids do not resolve.
            NoSuchAllocationError: the pair has no allocation.
        """
        with LogContext.bind(payment_id=payment_id, invoice_id=invoice_id, actor_id=actor):
            try:
                self._lock_payment(payment_id)
                invoice = self._session.execute(
                    select(InvoiceModel)
                    .where(InvoiceModel.id == invoice_id)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                ).scalar_one_or_none()
                if invoice is None:
                    raise UnknownInvoiceError(str(invoice_id))

                row = self._pair_rows(payment_id, [invoice_id]).get(invoice_id)
                if row is None:
                    raise NoSuchAllocationError(str(payment_id), str(invoice_id))
                removed = row.to_dto()
                self._session.delete(row)
                self._session.flush()

                collection = self._payments.recompute_status(payment_id)
                recomputed = self._invoices.recompute_status(invoice_id)
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info("allocation_removed", extra={
                "amount_removed": removed.amount_applied.minor_units,
                "applied_amount": collection.applied_amount.minor_units,
                "invoice_status": recomputed.status.value,
            })
            return AllocationResult(
                payment=collection,
                invoices=(recomputed,),
                removed=(removed,),
            )
