"""
Ledger Modules.

Thin orchestration layers over the ledger kernel and engines.
Each module contains:
- Domain models (the nouns, frozen dataclasses)
- ORM models (persistence)
- Workflows (state machines), where the record has a stored lifecycle
- A service that owns its transaction boundary

Modules:
- billing: invoices issued to clients
- collections: payments received (official receipts)
- allocation: applying collections to invoices
- expense: expense vouchers and their approval chain
- categories: expense categories and their defaults

Cross-module read paths live in ``ledger_modules.selectors`` and the
consistency check in ``ledger_modules.audit``.
"""
