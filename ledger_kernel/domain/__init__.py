"""Pure domain layer: money, time and workflow value objects (zero I/O)."""

from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.currency import CurrencyInfo, CurrencyRegistry
from ledger_kernel.domain.values import Currency, Money, sum_money
from ledger_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    "Clock",
    "Currency",
    "CurrencyInfo",
    "CurrencyRegistry",
    "DeterministicClock",
    "Guard",
    "Money",
    "SystemClock",
    "Transition",
    "Workflow",
    "sum_money",
]
