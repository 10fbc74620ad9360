"""
Values -- Immutable, self-validating money value objects.

Responsibility:
    Provides Currency and Money, the only types through which the ledgers
    add, subtract and compare amounts.  Money stores an integer count of
    minor units (centavos for PHP), so repeated allocation and
    deallocation can never accumulate rounding drift.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by every other ledger module.

Invariants enforced:
    - Amounts are integers in minor units; floats are rejected at the
      boundary.
    - Arithmetic and comparison across currencies raise
      CurrencyMismatchError; there is no implicit conversion.
    - Subtraction below zero is representable (negative Money) so callers
      can detect and report it; nothing is silently clamped.

Failure modes:
    - InvalidCurrencyError on an unregistered currency code.
    - TypeError on float amounts or non-integer minor units.
    - ValueError when a major-unit amount is finer than the currency's
      minor unit (e.g. PHP 1.005).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from ledger_kernel.domain.currency import CurrencyRegistry
from ledger_kernel.exceptions import CurrencyMismatchError, InvalidCurrencyError


@dataclass(frozen=True, slots=True)
class Currency:
    """
    Currency code value object.

    Guarantees:
        - Immutable and hashable
        - code is uppercase and registered in CurrencyRegistry
    """

    code: str

    def __post_init__(self) -> None:
        normalized = self.code.upper().strip() if isinstance(self.code, str) else ""
        if not CurrencyRegistry.is_valid(normalized):
            raise InvalidCurrencyError(str(self.code))
        object.__setattr__(self, "code", normalized)

    @property
    def decimal_places(self) -> int:
        return CurrencyRegistry.get_decimal_places(self.code)

    @property
    def minor_unit_factor(self) -> int:
        return 10 ** self.decimal_places

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"Currency({self.code!r})"


@dataclass(frozen=True, slots=True)
class Money:
    """
    Monetary amount value object.

    Contract:
        Pairs an integer minor-unit count with its Currency -- they are
        never separated.  ``Money.of("125000", "PHP")`` and
        ``Money.from_minor(12500000, "PHP")`` are the same value.

    Guarantees:
        - Immutable and hashable
        - minor_units is always an int (never float, never Decimal)
        - add / subtract / compare enforce the same-currency rule
    """

    minor_units: int
    currency: Currency

    def __post_init__(self) -> None:
        if isinstance(self.minor_units, bool) or not isinstance(self.minor_units, int):
            raise TypeError(
                f"minor_units must be int, got {type(self.minor_units).__name__}"
            )
        if isinstance(self.currency, str):
            object.__setattr__(self, "currency", Currency(self.currency))
        elif not isinstance(self.currency, Currency):
            raise TypeError(f"currency must be Currency or str, got {type(self.currency)}")

    @classmethod
    def of(cls, amount: Decimal | str | int, currency: str | Currency) -> Money:
        """
        Build Money from a major-unit amount.

        Raises:
            TypeError: If amount is a float.
            ValueError: If amount is not numeric or is finer than the
                currency's minor unit.
        """
        if isinstance(amount, float):
            raise TypeError("Money amounts must not be float; pass Decimal or str")
        if isinstance(currency, str):
            currency = Currency(currency)
        try:
            major = amount if isinstance(amount, Decimal) else Decimal(str(amount))
        except (InvalidOperation, ValueError) as e:
            raise ValueError(f"Invalid amount: {amount!r}") from e
        if not major.is_finite():
            raise ValueError(f"Invalid amount: {amount!r}")
        scaled = major.scaleb(currency.decimal_places)
        if scaled != scaled.to_integral_value():
            raise ValueError(
                f"{amount} has more precision than {currency.code} allows "
                f"({currency.decimal_places} decimal places)"
            )
        return cls(minor_units=int(scaled), currency=currency)

    @classmethod
    def from_minor(cls, minor_units: int, currency: str | Currency) -> Money:
        """Build Money directly from stored minor units."""
        return cls(minor_units=minor_units, currency=currency)

    @classmethod
    def zero(cls, currency: str | Currency) -> Money:
        """Create a zero amount in the given currency."""
        return cls(minor_units=0, currency=currency)

    @property
    def amount(self) -> Decimal:
        """Major-unit Decimal view, for display and serialization only."""
        return Decimal(self.minor_units).scaleb(-self.currency.decimal_places)

    @property
    def is_zero(self) -> bool:
        return self.minor_units == 0

    @property
    def is_positive(self) -> bool:
        return self.minor_units > 0

    @property
    def is_negative(self) -> bool:
        return self.minor_units < 0

    def _require_same_currency(self, other: Money) -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(self.currency.code, other.currency.code)

    def add(self, other: Money) -> Money:
        """Add two Money values of the same currency."""
        self._require_same_currency(other)
        return Money(self.minor_units + other.minor_units, self.currency)

    def subtract(self, other: Money) -> Money:
        """Subtract; the result may be negative and is never clamped."""
        self._require_same_currency(other)
        return Money(self.minor_units - other.minor_units, self.currency)

    def compare(self, other: Money) -> int:
        """Return -1, 0 or 1."""
        self._require_same_currency(other)
        return (self.minor_units > other.minor_units) - (self.minor_units < other.minor_units)

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return self.add(other)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return self.subtract(other)

    def __neg__(self) -> Money:
        return Money(-self.minor_units, self.currency)

    def __lt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return self.compare(other) < 0

    def __le__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return self.compare(other) <= 0

    def __gt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return self.compare(other) > 0

    def __ge__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return self.compare(other) >= 0

    def __str__(self) -> str:
        return f"{self.amount} {self.currency.code}"

    def __repr__(self) -> str:
        return f"Money({self.amount!r}, {self.currency!r})"


def sum_money(values, currency: str | Currency) -> Money:
    """Sum an iterable of Money, starting from zero in ``currency``."""
    total = Money.zero(currency)
    for value in values:
        total = total.add(value)
    return total
