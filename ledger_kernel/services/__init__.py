"""Kernel services (flush-only; callers own the transaction)."""

from ledger_kernel.services.sequence_service import (
    SequenceCounter,
    SequenceService,
    format_document_number,
)

__all__ = ["SequenceCounter", "SequenceService", "format_document_number"]
