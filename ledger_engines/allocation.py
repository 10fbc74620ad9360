"""
Module: ledger_engines.allocation
Responsibility:
    Plan how a collection is applied across invoices.  Each requested
    amount is clamped to the smaller of the invoice's open balance and the
    payment's unapplied balance, in the order the caller gave the targets.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import ledger_kernel.domain and ledger_kernel.exceptions.
    The AllocationService feeds it positions read from locked rows and
    persists what it returns.

Invariants enforced:
    - No invoice is planned past its stated amount and no payment past its
      amount received.
    - One allocation per (payment, invoice): a target for a pair that
      already has an allocation replaces it rather than stacking on it.
    - Every request is validated before any planning, so a bad target
      rejects the whole call.

Failure modes:
    - NonPositiveAmountError for a negative requested amount.
    - CurrencyMismatchError when a request or invoice is not in the
      payment's currency.
    - UnknownInvoiceError when a request names an invoice with no position.

Usage:
    from ledger_engines.allocation import (
        AllocationPlanner, AllocationRequest, InvoicePosition, PaymentPosition,
    )

    plan = AllocationPlanner().plan(
        payment=PaymentPosition(pay_id, received=Money.of("50000", "PHP"),
                                applied=Money.zero("PHP")),
        invoices={inv_a: InvoicePosition(inv_a, stated=..., collected=...)},
        existing={},
        requests=[AllocationRequest(inv_a, Money.of("45000", "PHP"))],
    )
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import ClassVar
from uuid import UUID

from ledger_kernel.domain.values import Currency, Money
from ledger_kernel.exceptions import (
    CurrencyMismatchError,
    NonPositiveAmountError,
    UnknownInvoiceError,
)
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.allocation")


@dataclass(frozen=True)
class AllocationRequest:
    """One caller target: apply ``amount`` of the payment to ``invoice_id``."""

    invoice_id: UUID
    amount: Money


@dataclass(frozen=True)
class InvoicePosition:
    """Stated and collected figures of an invoice at planning time."""

    invoice_id: UUID
    stated: Money
    collected: Money

    @property
    def balance(self) -> Money:
        return self.stated - self.collected


@dataclass(frozen=True)
class PaymentPosition:
    """Received and applied figures of a collection at planning time."""

    payment_id: UUID
    received: Money
    applied: Money

    @property
    def unapplied(self) -> Money:
        return self.received - self.applied


@dataclass(frozen=True)
class ConsistencyWarning:
    """
    A non-fatal condition reported alongside a successful result.

    Warnings are returned, never raised.
    """

    code: ClassVar[str] = "CONSISTENCY_WARNING"


@dataclass(frozen=True)
class PartialAllocationWarning(ConsistencyWarning):
    """
    A target received less than requested.

    ``invoice_room`` is the invoice's open balance (plus any amount the
    pair already held) when the target was planned.  The cut splits in
    two: ``over_balance`` is what the request asked for beyond that room,
    and ``shortfall`` is what the collection could not cover within it.
    """

    code: ClassVar[str] = "PARTIAL_ALLOCATION"

    invoice_id: UUID
    requested: Money
    allocated: Money
    invoice_room: Money

    @property
    def over_balance(self) -> Money:
        return self.requested - min(self.requested, self.invoice_room)

    @property
    def shortfall(self) -> Money:
        return min(self.requested, self.invoice_room) - self.allocated

    @property
    def unapplied(self) -> Money:
        return self.requested - self.allocated


@dataclass(frozen=True)
class PlannedAllocation:
    """Outcome for one request, in caller order."""

    invoice_id: UUID
    requested: Money
    allocated: Money
    previous: Money

    @property
    def is_clamped(self) -> bool:
        return self.allocated < self.requested


@dataclass(frozen=True)
class AllocationPlan:
    """
    Complete plan for one allocate call.

    ``pair_amounts`` holds the final amount for every (payment, invoice)
    pair the plan writes, keyed by invoice id in first-touch order.
    """

    payment_id: UUID
    lines: tuple[PlannedAllocation, ...]
    warnings: tuple[PartialAllocationWarning, ...]
    applied_after: Money
    collected_after: Mapping[UUID, Money] = field(default_factory=dict)
    pair_amounts: Mapping[UUID, Money] = field(default_factory=dict)

    @property
    def touched_invoice_ids(self) -> tuple[UUID, ...]:
        return tuple(self.pair_amounts)


class AllocationPlanner:
    """
    Stateless clamp-and-replace planner.

    For each request, in order::

        invoice room  = stated   - (collected - existing pair amount)
        payment room  = received - (applied   - existing pair amount)
        allocated     = min(requested, invoice room, payment room)

    A request of zero is skipped.  A request that is clamped produces a
    PartialAllocationWarning.  A positive ``allocated`` becomes the pair's
    new amount, and the running collected/applied figures move by
    ``allocated - existing`` so later requests see the effect of earlier ones.
    """

    def plan(
        self,
        payment: PaymentPosition,
        invoices: Mapping[UUID, InvoicePosition],
        existing: Mapping[UUID, Money],
        requests: Sequence[AllocationRequest],
    ) -> AllocationPlan:
        self.validate(payment, invoices, requests)

        currency = payment.received.currency
        zero = Money.zero(currency)
        applied = payment.applied
        collected = {inv_id: pos.collected for inv_id, pos in invoices.items()}
        pairs: dict[UUID, Money] = dict(existing)
        pair_amounts: dict[UUID, Money] = {}
        lines: list[PlannedAllocation] = []
        warnings: list[PartialAllocationWarning] = []

        for request in requests:
            if request.amount.is_zero:
                continue

            inv_id = request.invoice_id
            previous = pairs.get(inv_id, zero)
            invoice_room = invoices[inv_id].stated - (collected[inv_id] - previous)
            payment_room = payment.received - (applied - previous)
            allocated = min(request.amount, invoice_room, payment_room)

            if allocated.is_positive:
                collected[inv_id] = collected[inv_id] - previous + allocated
                applied = applied - previous + allocated
                pairs[inv_id] = allocated
                pair_amounts[inv_id] = allocated

            if allocated < request.amount:
                warnings.append(
                    PartialAllocationWarning(
                        invoice_id=inv_id,
                        requested=request.amount,
                        allocated=allocated,
                        invoice_room=invoice_room,
                    )
                )

            lines.append(
                PlannedAllocation(
                    invoice_id=inv_id,
                    requested=request.amount,
                    allocated=allocated,
                    previous=previous,
                )
            )

        logger.debug(
            "allocation_planned",
            extra={
                "payment_id": str(payment.payment_id),
                "request_count": len(requests),
                "pair_count": len(pair_amounts),
                "warning_count": len(warnings),
                "applied_after": applied.minor_units,
            },
        )

        return AllocationPlan(
            payment_id=payment.payment_id,
            lines=tuple(lines),
            warnings=tuple(warnings),
            applied_after=applied,
            collected_after={k: collected[k] for k in pair_amounts},
            pair_amounts=pair_amounts,
        )

    @staticmethod
    def check_request(currency: Currency, request: AllocationRequest) -> None:
        """Amount and currency checks that need no invoice position."""
        if request.amount.currency != currency:
            raise CurrencyMismatchError(currency.code, request.amount.currency.code)
        if request.amount.is_negative:
            raise NonPositiveAmountError("amount", str(request.amount.amount))

    def validate(
        self,
        payment: PaymentPosition,
        invoices: Mapping[UUID, InvoicePosition],
        requests: Sequence[AllocationRequest],
    ) -> None:
        """Reject the whole call if any single request is unusable."""
        currency = payment.received.currency
        for request in requests:
            self.check_request(currency, request)
        for request in requests:
            position = invoices.get(request.invoice_id)
            if position is None:
                raise UnknownInvoiceError(str(request.invoice_id))
            if position.stated.currency != currency:
                raise CurrencyMismatchError(
                    currency.code, position.stated.currency.code
                )
