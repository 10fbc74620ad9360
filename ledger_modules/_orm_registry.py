"""
Module ORM Registry (``ledger_modules._orm_registry``).

Ensures every module's SQLAlchemy models are imported so that
``Base.metadata`` holds their tables before the schema is created.
Idempotent -- repeated calls are harmless.
"""

from sqlalchemy.engine import Engine

from ledger_kernel.db.base import Base


def import_all_orm_models() -> None:
    """Import the kernel counter table and every ``ledger_modules.*.orm``."""
    import ledger_kernel.services.sequence_service  # noqa: F401
    # fmt: off
    import ledger_modules.allocation.orm  # noqa: F401
    import ledger_modules.billing.orm  # noqa: F401
    import ledger_modules.categories.orm  # noqa: F401
    import ledger_modules.collections.orm  # noqa: F401
    import ledger_modules.expense.orm  # noqa: F401
    # fmt: on


def create_all_tables(engine: Engine) -> None:
    """Register every module model, then create the full schema."""
    import_all_orm_models()
    Base.metadata.create_all(engine)


def drop_all_tables(engine: Engine) -> None:
    import_all_orm_models()
    Base.metadata.drop_all(engine)
