"""
Pytest fixtures for the ledger test suite.

Provides:
- A fresh in-memory SQLite database per test (full schema)
- Deterministic clock and settings
- Service fixtures for every ledger
- Builders for posted invoices, collections and expenses

Environment Variables:
- DATABASE_URL: PostgreSQL connection URL.  Only tests marked ``postgres``
  use it; they are skipped when it is not set.
"""

import json
import logging
import os
from io import StringIO

import pytest
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from ledger_config import CategorySeed, LedgerSettings, NumberingSettings
from ledger_kernel.db.engine import create_ledger_engine
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.values import Money
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_modules._orm_registry import create_all_tables
from ledger_modules.allocation.service import AllocationService
from ledger_modules.audit import LedgerAuditor
from ledger_modules.billing.service import InvoiceLedger
from ledger_modules.categories.service import CategoryRegistry
from ledger_modules.collections.service import PaymentLedger
from ledger_modules.expense.service import ExpenseApprovalTracker
from ledger_modules.selectors import LedgerSelector


TEST_ACTOR = "test-clerk"


def php(amount) -> Money:
    """Money in PHP from a str/int/Decimal major-unit amount."""
    return Money.of(amount if isinstance(amount, (int, Decimal)) else str(amount), "PHP")


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ledger logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, allocation_service):
            allocation_service.allocate(...)
            logs = captured_logs()
            assert any(r["message"] == "allocation_committed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL"
    )


def get_database_url() -> str | None:
    return os.environ.get("DATABASE_URL")


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine():
    """Fresh in-memory database with the full schema."""
    eng = create_ledger_engine("sqlite://")
    create_all_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    sess = Session(bind=engine, expire_on_commit=False)
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def deterministic_clock():
    """Clock fixed at 2025-01-15 09:00 UTC."""
    return DeterministicClock()


@pytest.fixture
def settings():
    return LedgerSettings(
        default_currency="PHP",
        numbering=NumberingSettings(),
        starter_categories=(
            CategorySeed("Trucking", "Operations"),
            CategorySeed("Fumigation", "Itemized Cost"),
            CategorySeed("Office Rent", "Admin", "JLCS"),
            CategorySeed("Commission", "Commission"),
        ),
    )


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def invoice_ledger(session, deterministic_clock, settings):
    return InvoiceLedger(session, clock=deterministic_clock, settings=settings)


@pytest.fixture
def payment_ledger(session, deterministic_clock, settings):
    return PaymentLedger(session, clock=deterministic_clock, settings=settings)


@pytest.fixture
def allocation_service(session, deterministic_clock, settings):
    return AllocationService(session, clock=deterministic_clock, settings=settings)


@pytest.fixture
def category_registry(session, settings):
    return CategoryRegistry(session, settings=settings)


@pytest.fixture
def expense_tracker(session, deterministic_clock, settings):
    return ExpenseApprovalTracker(session, clock=deterministic_clock, settings=settings)


@pytest.fixture
def selector(session):
    return LedgerSelector(session)


@pytest.fixture
def auditor(session):
    return LedgerAuditor(session)


# =============================================================================
# Builders
# =============================================================================


@pytest.fixture
def make_invoice(invoice_ledger):
    """
    Create a posted invoice with one line per amount.

    Usage::

        inv = make_invoice("10000", "5000", client_ref="ACME")
    """
    def _make(*amounts, client_ref="ACME", company_ref="JLCS",
              issue_date=None, booking_ref=None, post=True):
        lines = [(f"Charge {i}", php(a)) for i, a in enumerate(amounts or ("10000",), 1)]
        create = invoice_ledger.create_posted if post else invoice_ledger.create_draft
        return create(
            client_ref=client_ref,
            company_ref=company_ref,
            line_items=lines,
            booking_ref=booking_ref,
            issue_date=issue_date,
            actor=TEST_ACTOR,
        )
    return _make


@pytest.fixture
def make_collection(payment_ledger):
    """Create a collection of ``amount`` PHP."""
    def _make(amount, client_ref="ACME", company_ref="JLCS",
              payment_method="Check", collection_date=None, receipt_number=None):
        return payment_ledger.create(
            client_ref=client_ref,
            company_ref=company_ref,
            payment_method=payment_method,
            amount_received=php(amount),
            collection_date=collection_date,
            receipt_number=receipt_number,
            actor=TEST_ACTOR,
        )
    return _make


@pytest.fixture
def seeded_categories(category_registry, settings):
    category_registry.seed_defaults(settings)
    return {c.name: c for c in category_registry.list_all()}


@pytest.fixture
def make_expense(expense_tracker, seeded_categories):
    """Create a Draft expense in the given category."""
    def _make(*amounts, category="Trucking", payee="Juan Trucking",
              company_ref="JLCS", expense_date=None, booking_ref=None):
        lines = [(f"Particular {i}", php(a)) for i, a in enumerate(amounts, 1)]
        return expense_tracker.create(
            category_id=seeded_categories[category].id,
            payee=payee,
            payment_channel="Cash",
            line_items=lines,
            company_ref=company_ref,
            expense_date=expense_date,
            booking_ref=booking_ref,
            actor=TEST_ACTOR,
        )
    return _make


@pytest.fixture
def jan_15():
    return date(2025, 1, 15)
