"""
Pure calculation engines for the ledger.

Engines take value objects, return value objects and never touch the
database, the clock or the network.
"""

from ledger_engines.allocation import (
    AllocationPlan,
    AllocationPlanner,
    AllocationRequest,
    ConsistencyWarning,
    InvoicePosition,
    PartialAllocationWarning,
    PaymentPosition,
    PlannedAllocation,
)

__all__ = [
    "AllocationPlan",
    "AllocationPlanner",
    "AllocationRequest",
    "ConsistencyWarning",
    "InvoicePosition",
    "PartialAllocationWarning",
    "PaymentPosition",
    "PlannedAllocation",
]
