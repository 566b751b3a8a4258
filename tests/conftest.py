"""
Pytest fixtures for the rental reservation test suite.

Provides:
- Structured logging setup and LogContext isolation
- Deterministic clock
- In-memory repository and a ReconciliationService over it
- SQLite-backed engine/session for the SQL repository tests
- Reservation / transaction builders

Environment Variables:
- RENTAL_TEST_DATABASE_URL: database for SQL tests (defaults to in-memory SQLite).
"""

import json
import logging
import os
from datetime import date, datetime, timezone
from io import StringIO
from uuid import uuid4

import pytest

from rental_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from rental_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from rental_kernel.domain.clock import DeterministicClock
from rental_kernel.domain.reservation import Reservation
from rental_kernel.domain.transaction import PaymentMethod, Transaction, TransactionKind
from rental_kernel.domain.values import Money
from rental_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from rental_kernel.services.memory_repository import InMemoryReservationRepository
from rental_services.reconciliation_service import ReconciliationService

TEST_ACTOR = "cashier-test"
FIXED_NOW = datetime(2024, 6, 1, 15, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
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
    Capture rental_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, service):
            service.apply_payment(...)
            logs = captured_logs()
            assert any(r["message"] == "payment_applied" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("rental_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Builders
# =============================================================================


def cop(amount) -> Money:
    """Money in COP from a major-unit amount."""
    return Money.of(str(amount), "COP")


def make_reservation(
    subtotal="500000",
    discount="0",
    deposit="0",
    currency="COP",
    **overrides,
) -> Reservation:
    fields = {
        "id": uuid4(),
        "code": f"RES-{uuid4().hex[:8]}",
        "client_ref": "client-1",
        "event_date": date(2024, 6, 15),
        "subtotal": Money.of(subtotal, currency),
        "discount": Money.of(discount, currency),
        "deposit": Money.of(deposit, currency),
    }
    fields.update(overrides)
    return Reservation(**fields)


def make_transaction(
    reservation: Reservation,
    amount="100000",
    kind=TransactionKind.PAYMENT,
    currency=None,
    **overrides,
) -> Transaction:
    fields = {
        "id": uuid4(),
        "reservation_id": reservation.id,
        "kind": kind,
        "amount": Money.of(amount, currency or reservation.currency),
        "method": PaymentMethod.CASH,
        "recorded_at": FIXED_NOW,
        "recorded_by_ref": TEST_ACTOR,
    }
    fields.update(overrides)
    return Transaction(**fields)


# =============================================================================
# Service fixtures
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(FIXED_NOW)


@pytest.fixture
def repository() -> InMemoryReservationRepository:
    return InMemoryReservationRepository()


@pytest.fixture
def service(repository, clock) -> ReconciliationService:
    return ReconciliationService(repository, clock)


@pytest.fixture
def open_reservation(service):
    """Factory opening a reservation through the facade."""

    def _open(subtotal="500000", discount=None, deposit=None, code=None) -> Reservation:
        return service.open_reservation(
            code=code or f"RES-{uuid4().hex[:8]}",
            client_ref="client-1",
            event_date=date(2024, 6, 15),
            subtotal=cop(subtotal),
            discount=cop(discount) if discount is not None else None,
            deposit=cop(deposit) if deposit is not None else None,
        )

    return _open


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def db_engine():
    """Fresh schema on the test database, with ledger immutability listeners."""
    url = os.environ.get("RENTAL_TEST_DATABASE_URL", "sqlite:///:memory:")
    engine = init_engine_from_url(url)
    create_tables()
    register_immutability_listeners()
    yield engine
    unregister_immutability_listeners()
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine):
    """Session owned by the test; rolled back and closed afterwards."""
    sess = get_session()
    yield sess
    sess.rollback()
    sess.close()
