"""
Tests for the Reservation, Transaction and inventory value objects.

Covers:
- Derived total and zero-default deposit/discount
- Construction invariants (negative amounts, discount > subtotal, currency)
- Transaction kind/method normalization
- Lot quantity bounds
"""

from datetime import date
from uuid import uuid4

import pytest

from rental_kernel.domain.inventory import Lot, MaintenanceStatus, MaintenanceTask
from rental_kernel.domain.reservation import PaymentStatus, Reservation, ReservationStatus
from rental_kernel.domain.transaction import (
    PaymentMethod,
    TransactionInput,
    TransactionKind,
)
from rental_kernel.domain.values import Money
from rental_kernel.exceptions import (
    CurrencyMismatchError,
    InvalidLotError,
    InvalidReservationError,
)
from tests.conftest import FIXED_NOW, TEST_ACTOR, cop, make_reservation, make_transaction


class TestReservationFigures:
    """Tests for derived monetary figures."""

    def test_total_is_subtotal_minus_discount(self):
        reservation = make_reservation(subtotal="600000", discount="100000")

        assert reservation.total == cop("500000")

    def test_defaults_to_zero_discount_and_deposit(self):
        reservation = Reservation(
            id=uuid4(),
            code="RES-1",
            client_ref="c",
            event_date=date(2024, 6, 15),
            subtotal=cop("1000"),
        )

        assert reservation.discount.is_zero
        assert reservation.deposit.is_zero
        assert reservation.total == cop("1000")

    def test_open_starts_requested_and_pending(self):
        reservation = Reservation.open(
            code="  RES-2  ",
            client_ref="c",
            event_date=date(2024, 6, 15),
            subtotal=cop("1000"),
        )

        assert reservation.code == "RES-2"
        assert reservation.status == ReservationStatus.REQUESTED
        assert reservation.payment_status == PaymentStatus.PENDING
        assert reservation.version == 1

    def test_currency_property(self):
        assert make_reservation(currency="USD").currency == "USD"


class TestReservationInvariants:
    """Tests for construction-time validation."""

    def test_discount_above_subtotal_rejected(self):
        with pytest.raises(InvalidReservationError):
            make_reservation(subtotal="100", discount="101")

    def test_discount_equal_to_subtotal_allowed(self):
        assert make_reservation(subtotal="100", discount="100").total.is_zero

    def test_negative_subtotal_rejected(self):
        with pytest.raises(InvalidReservationError):
            make_reservation(subtotal="-1")

    def test_negative_deposit_rejected(self):
        with pytest.raises(InvalidReservationError):
            make_reservation(deposit="-1")

    def test_mixed_currency_rejected(self):
        with pytest.raises(CurrencyMismatchError):
            Reservation(
                id=uuid4(),
                code="RES-1",
                client_ref="c",
                event_date=date(2024, 6, 15),
                subtotal=cop("1000"),
                deposit=Money.of("10", "USD"),
            )

    def test_empty_code_rejected(self):
        with pytest.raises(InvalidReservationError):
            make_reservation(code="   ")

    def test_version_must_be_positive(self):
        with pytest.raises(InvalidReservationError):
            make_reservation(version=0)


class TestTransaction:
    def test_kind_coerced_from_value(self):
        txn = make_transaction(make_reservation(), kind="Refund")

        assert txn.kind == TransactionKind.REFUND

    def test_method_enum_normalized_to_value(self):
        txn = make_transaction(make_reservation(), method=PaymentMethod.NEQUI)

        assert txn.method == "Nequi"

    def test_free_text_method_kept(self):
        txn = make_transaction(make_reservation(), method="  Bancolombia QR ")

        assert txn.method == "Bancolombia QR"

    def test_blank_method_rejected(self):
        with pytest.raises(ValueError):
            make_transaction(make_reservation(), method=" ")

    def test_input_to_transaction(self):
        reservation = make_reservation()
        entry = TransactionInput(
            kind=TransactionKind.PAYMENT,
            amount=cop("1000"),
            method=PaymentMethod.CARD,
            recorded_by_ref=TEST_ACTOR,
            external_reference="ext-1",
        )

        txn = entry.to_transaction(reservation.id, FIXED_NOW)

        assert txn.reservation_id == reservation.id
        assert txn.recorded_at == FIXED_NOW
        assert txn.method == "Card"
        assert txn.external_reference == "ext-1"
        assert not txn.is_compensating


class TestInventory:
    def test_lot_quantity_bounds(self):
        with pytest.raises(InvalidLotError):
            Lot(id="L1", product_ref="p", initial_quantity=5, current_quantity=6)
        with pytest.raises(InvalidLotError):
            Lot(id="L1", product_ref="p", initial_quantity=5, current_quantity=-1)

    def test_depleted_lot(self):
        lot = Lot(id="L1", product_ref="p", initial_quantity=5, current_quantity=0)

        assert lot.is_depleted

    def test_maintenance_status_coerced(self):
        task = MaintenanceTask(id="M1", asset_ref="a", status="InProgress")

        assert task.status == MaintenanceStatus.IN_PROGRESS
