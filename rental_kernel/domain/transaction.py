"""
Transaction -- immutable ledger entries owned by a reservation.

Responsibility:
    Value objects for payment, refund and deposit-return entries, plus the
    caller-supplied ``TransactionInput`` request the facade stamps into a
    ``Transaction``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Direction is encoded by ``kind``, never by the sign of ``amount``.
      Positivity of ``amount`` is enforced by the ledger engine so that a
      rejected entry can still be described as a value (InvalidAmountError
      carries it).
    - Entries are frozen; corrections are new ``Refund`` entries whose
      ``reverses_id`` points at the original.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from rental_kernel.domain.values import Money


class TransactionKind(str, Enum):
    """Direction of a ledger entry."""

    PAYMENT = "Payment"
    REFUND = "Refund"
    DEPOSIT_RETURN = "DepositReturn"


class PaymentMethod(str, Enum):
    """Known payment methods; the ledger itself treats methods as opaque strings."""

    CASH = "Cash"
    CARD = "Card"
    TRANSFER = "Transfer"
    NEQUI = "Nequi"
    DAVIPLATA = "Daviplata"
    PAYU = "PayU"
    STRIPE = "Stripe"


def _method_value(method: PaymentMethod | str) -> str:
    if isinstance(method, PaymentMethod):
        return method.value
    if not method or not method.strip():
        raise ValueError("payment method is required")
    return method.strip()


@dataclass(frozen=True)
class Transaction:
    """A recorded ledger entry.

    Contract: frozen; ``recorded_at`` and ``recorded_by_ref`` are set once.
    """

    id: UUID
    reservation_id: UUID
    kind: TransactionKind
    amount: Money
    method: str
    recorded_at: datetime
    recorded_by_ref: str
    external_reference: str | None = None
    receipt_url: str | None = None
    notes: str | None = None
    reverses_id: UUID | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.kind, TransactionKind):
            object.__setattr__(self, "kind", TransactionKind(self.kind))
        object.__setattr__(self, "method", _method_value(self.method))

    @property
    def is_compensating(self) -> bool:
        """True if this entry reverses an earlier payment."""
        return self.reverses_id is not None


@dataclass(frozen=True)
class TransactionInput:
    """What a caller supplies to record a ledger entry.

    The facade assigns the id and ``recorded_at`` from its clock.
    """

    kind: TransactionKind
    amount: Money
    method: PaymentMethod | str
    recorded_by_ref: str
    external_reference: str | None = None
    receipt_url: str | None = None
    notes: str | None = None
    reverses_id: UUID | None = None

    def to_transaction(
        self,
        reservation_id: UUID,
        recorded_at: datetime,
        transaction_id: UUID | None = None,
    ) -> Transaction:
        return Transaction(
            id=transaction_id or uuid4(),
            reservation_id=reservation_id,
            kind=self.kind,
            amount=self.amount,
            method=_method_value(self.method),
            recorded_at=recorded_at,
            recorded_by_ref=self.recorded_by_ref,
            external_reference=self.external_reference,
            receipt_url=self.receipt_url,
            notes=self.notes,
            reverses_id=self.reverses_id,
        )
