"""
Collections Module.

Payments received from clients (official receipts) and how much of each
has been applied to invoices.  ``PaymentLedger`` lives in
``ledger_modules.collections.service``.
"""

from ledger_modules.collections.models import (
    Collection,
    CollectionStatus,
    derive_collection_status,
)

__all__ = [
    "Collection",
    "CollectionStatus",
    "derive_collection_status",
]
