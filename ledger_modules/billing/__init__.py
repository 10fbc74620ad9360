"""
Billing Module.

Invoices issued to clients: drafting, posting, and the status derived from
what has been collected against them.  ``InvoiceLedger`` lives in
``ledger_modules.billing.service``.
"""

from ledger_modules.billing.models import (
    Invoice,
    InvoiceLineItem,
    InvoiceStage,
    InvoiceStatus,
    derive_invoice_status,
)
from ledger_modules.billing.workflows import INVOICE_WORKFLOW

__all__ = [
    "INVOICE_WORKFLOW",
    "Invoice",
    "InvoiceLineItem",
    "InvoiceStage",
    "InvoiceStatus",
    "derive_invoice_status",
]
