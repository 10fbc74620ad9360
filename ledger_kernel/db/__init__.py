"""Database layer: declarative base and engine construction."""

from ledger_kernel.db.base import Base, TrackedBase, UUIDString
from ledger_kernel.db.engine import create_ledger_engine, init_engine_from_url

__all__ = [
    "Base",
    "TrackedBase",
    "UUIDString",
    "create_ledger_engine",
    "init_engine_from_url",
]
