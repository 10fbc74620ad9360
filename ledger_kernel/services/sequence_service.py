"""
SequenceService -- monotonic document numbering via locked counter rows.

Responsibility:
    Hands out invoice, receipt and expense numbers of the form
    ``{prefix}-{YYYY}-{seq}`` (``INV-2025-001``).  Each prefix+year pair has
    its own counter row, locked with ``SELECT ... FOR UPDATE`` so concurrent
    posts never receive the same number.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by InvoiceLedger.post, PaymentLedger.create and
    ExpenseApprovalTracker.create.

Invariants enforced:
    - Numbers within a sequence are strictly increasing; the counter row
      is the sole source of truth, never ``MAX(number) + 1``.
    - The increment is only visible once the caller's transaction commits.
      Rollback returns the value.

Failure modes:
    - IntegrityError on a concurrent first-use race is absorbed by a
      savepoint and a re-read of the winner's row.
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from ledger_kernel.db.base import Base
from ledger_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """
    Sequence counter table.

    One row per named sequence (``INV-2025``, ``OR-2025`` ...).
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )


def format_document_number(prefix: str, year: int, seq: int, width: int = 3) -> str:
    """``format_document_number("INV", 2025, 7)`` -> ``"INV-2025-007"``."""
    return f"{prefix}-{year:04d}-{seq:0{width}d}"


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Get the next value for a named sequence.

        Locks the counter row (creating it on first use), increments it and
        returns the new value.  The first value of a sequence is 1.
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            # First use.  The savepoint keeps a lost creation race from
            # rolling back the caller's other work.
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def next_document_number(self, prefix: str, year: int, width: int = 3) -> str:
        """Allocate the next ``{prefix}-{year}-{seq}`` number."""
        seq = self.next_value(f"{prefix}-{year:04d}")
        return format_document_number(prefix, year, seq, width)

    def current_value(self, sequence_name: str) -> int | None:
        """Current value of a sequence without incrementing, or None."""
        counter = self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()

        return counter.current_value if counter else None
