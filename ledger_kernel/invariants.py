"""
Ledger Invariants Contract.

These invariants hold after every committed ledger operation.  They are
enforced by the services (validation before mutation, recompute after),
backed by database check constraints, and re-derived from rows by
``ledger_modules.audit.LedgerAuditor``.

This module exists solely to declare them explicitly.
"""

from enum import Enum, unique


@unique
class LedgerInvariant(str, Enum):
    """Non-configurable invariants of the billing and collection ledgers."""

    INVOICE_STATED_MATCHES_LINES = "invoice_stated_matches_lines"
    """stated_amount equals the sum of the invoice's line items."""

    INVOICE_COLLECTED_MATCHES_ALLOCATIONS = "invoice_collected_matches_allocations"
    """collected_amount equals the sum of allocation rows on the invoice."""

    INVOICE_COLLECTED_BOUNDS = "invoice_collected_bounds"
    """0 <= collected_amount <= stated_amount."""

    INVOICE_POSTED_NUMBERED = "invoice_posted_numbered"
    """A posted invoice carries an invoice number; a draft does not."""

    PAYMENT_APPLIED_MATCHES_ALLOCATIONS = "payment_applied_matches_allocations"
    """applied_amount equals the sum of allocation rows on the collection."""

    PAYMENT_APPLIED_BOUNDS = "payment_applied_bounds"
    """0 <= applied_amount <= amount_received."""

    ALLOCATION_POSITIVE = "allocation_positive"
    """Every allocation row applies a strictly positive amount."""

    ALLOCATION_TARGETS_POSTED = "allocation_targets_posted"
    """Allocations only reference posted invoices."""

    ALLOCATION_CURRENCY = "allocation_currency"
    """An allocation is in the currency of both its collection and invoice."""

    EXPENSE_TOTAL_MATCHES_LINES = "expense_total_matches_lines"
    """total_amount equals the sum of the expense's line items."""

    EXPENSE_APPROVAL_ORDER = "expense_approval_order"
    """No approval stage is completed while an earlier one is pending."""

    EXPENSE_PAID_APPROVED = "expense_paid_approved"
    """A paid expense has its Approved stage completed."""


ALL_LEDGER_INVARIANTS: frozenset[LedgerInvariant] = frozenset(LedgerInvariant)

# The kernel package may not import from these packages.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "ledger_engines",
    "ledger_config",
    "ledger_modules",
)
