"""
Ledger Kernel

The consistency core for billings, collections and expenses:
- Integer minor-unit Money (no float drift)
- Typed, coded exceptions
- Structured JSON logging
- SQLAlchemy persistence with row-level locking
"""

__version__ = "0.1.0"
