"""
Allocation Module.

Applies collections to invoices.  The clamp itself is the pure
``ledger_engines.allocation.AllocationPlanner``; ``AllocationService`` in
``ledger_modules.allocation.service`` locks rows, runs the planner, writes
allocation rows and has both ledgers recompute.
"""

from ledger_modules.allocation.models import (
    AllocationRequest,
    AllocationResult,
    PartialAllocationWarning,
    PaymentAllocation,
)

__all__ = [
    "AllocationRequest",
    "AllocationResult",
    "PartialAllocationWarning",
    "PaymentAllocation",
]
