"""
Input checks shared by the ledger services (``ledger_modules._validation``).

Every check raises a typed ValidationError and runs before the calling
service touches the session.
"""

from __future__ import annotations

from collections.abc import Iterable

from ledger_kernel.domain.values import Currency, Money
from ledger_kernel.exceptions import (
    CurrencyMismatchError,
    EmptyLineItemsError,
    MissingReferenceError,
)


def require_ref(field_name: str, value: str | None) -> str:
    """Return ``value`` stripped, or raise if it is absent or blank."""
    if value is None or not str(value).strip():
        raise MissingReferenceError(field_name)
    return str(value).strip()


def optional_ref(value: str | None) -> str | None:
    if value is None or not str(value).strip():
        return None
    return str(value).strip()


def check_line_amounts(
    document_type: str,
    amounts: Iterable[Money],
    currency: Currency | None = None,
    allow_empty: bool = False,
) -> Currency | None:
    """
    Validate line amounts and return their common currency.

    Raises:
        EmptyLineItemsError: No lines (unless ``allow_empty``), or a line
            amount is zero or negative.
        CurrencyMismatchError: Lines disagree with each other or with
            ``currency``.
    """
    amounts = list(amounts)
    if not amounts:
        if allow_empty:
            return currency
        raise EmptyLineItemsError(document_type, "at least one line item is required")

    for index, amount in enumerate(amounts, start=1):
        if currency is None:
            currency = amount.currency
        elif amount.currency != currency:
            raise CurrencyMismatchError(currency.code, amount.currency.code)
        if not amount.is_positive:
            raise EmptyLineItemsError(
                document_type, f"line {index} amount must be positive, got {amount}"
            )
    return currency
