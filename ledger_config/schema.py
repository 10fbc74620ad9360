"""
Settings schema (``ledger_config.schema``).

Frozen dataclasses describing the console's ledger settings: the default
currency, document numbering, and the starter expense categories.  Every
class validates itself in ``__post_init__`` so a bad YAML file fails at
load time rather than at first use.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ledger_kernel.domain.currency import CurrencyRegistry
from ledger_kernel.logging_config import get_logger

logger = get_logger("config.schema")

VALID_EXPENSE_TYPES = frozenset({"Operations", "Admin", "Commission", "Itemized Cost"})


@dataclass(frozen=True)
class NumberingSettings:
    """Prefixes and zero-padding for generated document numbers."""

    invoice_prefix: str = "INV"
    receipt_prefix: str = "OR"
    expense_prefix: str = "EXP"
    width: int = 3

    def __post_init__(self):
        for name in ("invoice_prefix", "receipt_prefix", "expense_prefix"):
            value = getattr(self, name)
            if not value or not value.strip():
                raise ValueError(f"{name} cannot be empty")
            if "-" in value:
                raise ValueError(f"{name} cannot contain '-': {value!r}")
        if self.width < 1:
            raise ValueError(f"width must be at least 1, got {self.width}")
        prefixes = {self.invoice_prefix, self.receipt_prefix, self.expense_prefix}
        if len(prefixes) != 3:
            raise ValueError("invoice, receipt and expense prefixes must differ")


@dataclass(frozen=True)
class CategorySeed:
    """A starter expense category."""

    name: str
    default_expense_type: str
    default_company_ref: str | None = None

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("category name cannot be empty")
        if self.default_expense_type not in VALID_EXPENSE_TYPES:
            raise ValueError(
                f"Unknown expense type {self.default_expense_type!r} for category "
                f"{self.name!r}; expected one of {sorted(VALID_EXPENSE_TYPES)}"
            )


@dataclass(frozen=True)
class LedgerSettings:
    """
    Top-level ledger settings.

        settings = LedgerSettings(default_currency="PHP")
        settings = load_settings(Path("ledger.yaml"))
    """

    default_currency: str = "PHP"
    numbering: NumberingSettings = field(default_factory=NumberingSettings)
    starter_categories: tuple[CategorySeed, ...] = ()

    def __post_init__(self):
        if not CurrencyRegistry.is_valid(self.default_currency):
            raise ValueError(f"Unknown default currency {self.default_currency!r}")
        seen: set[str] = set()
        for seed in self.starter_categories:
            key = seed.name.strip().lower()
            if key in seen:
                raise ValueError(f"Duplicate starter category {seed.name!r}")
            seen.add(key)
        logger.debug(
            "ledger_settings_initialized",
            extra={
                "default_currency": self.default_currency,
                "starter_category_count": len(self.starter_categories),
            },
        )
