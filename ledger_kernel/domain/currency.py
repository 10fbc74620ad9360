"""Currency -- ISO 4217 registry and minor-unit precision."""

from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True)
class CurrencyInfo:
    """Information about a single ISO 4217 currency."""

    code: str
    decimal_places: int
    name: str

    @property
    def minor_unit_factor(self) -> int:
        """How many minor units make one major unit (100 for PHP)."""
        return 10 ** self.decimal_places


class CurrencyRegistry:
    """Registry of the currencies the console bills and collects in."""

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        "PHP": CurrencyInfo("PHP", 2, "Philippine Peso"),
        "USD": CurrencyInfo("USD", 2, "US Dollar"),
        "EUR": CurrencyInfo("EUR", 2, "Euro"),
        "GBP": CurrencyInfo("GBP", 2, "Pound Sterling"),
        "JPY": CurrencyInfo("JPY", 0, "Japanese Yen"),
        "CNY": CurrencyInfo("CNY", 2, "Chinese Yuan"),
        "HKD": CurrencyInfo("HKD", 2, "Hong Kong Dollar"),
        "SGD": CurrencyInfo("SGD", 2, "Singapore Dollar"),
        "KRW": CurrencyInfo("KRW", 0, "South Korean Won"),
        "AUD": CurrencyInfo("AUD", 2, "Australian Dollar"),
        "KWD": CurrencyInfo("KWD", 3, "Kuwaiti Dinar"),
    }

    @classmethod
    def is_valid(cls, code: str) -> bool:
        """Check if a currency code is registered."""
        if not code or not isinstance(code, str):
            return False
        return code.upper().strip() in cls._CURRENCIES

    @classmethod
    def get_info(cls, code: str) -> CurrencyInfo | None:
        """Get currency information by code."""
        if not code or not isinstance(code, str):
            return None
        return cls._CURRENCIES.get(code.upper().strip())

    @classmethod
    def get_decimal_places(cls, code: str) -> int:
        """Get decimal places for a registered currency."""
        info = cls.get_info(code)
        if info is None:
            raise KeyError(f"Unregistered currency: {code!r}")
        return info.decimal_places

    @classmethod
    def all_codes(cls) -> frozenset[str]:
        """Get all registered currency codes."""
        return frozenset(cls._CURRENCIES.keys())
