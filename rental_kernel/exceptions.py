"""
Typed Exception Hierarchy for the Rental Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every failure the engine can report is a local, recoverable condition the
caller must translate into a user-facing message ("cannot deliver an unpaid
reservation", "someone else changed this reservation, reload and retry").
Callers must never parse message strings to decide what happened:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (current vs. requested status, amounts)

Example - WRONG way to handle errors:
    try:
        service.change_status(reservation_id, ReservationStatus.DELIVERED)
    except Exception as e:
        if "payment" in str(e):  # FRAGILE - message might change
            show_unpaid_warning()

Example - RIGHT way:
    try:
        service.change_status(reservation_id, ReservationStatus.DELIVERED)
    except PaymentRequiredError as e:
        show_unpaid_warning(e.payment_status, e.required_status)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from RentalKernelError:

    RentalKernelError (base)
    |
    +-- CurrencyError
    |   +-- InvalidCurrencyError
    |   +-- CurrencyMismatchError
    |
    +-- LedgerError
    |   +-- InvalidAmountError
    |   |   +-- RefundExceedsPaidError
    |   |   +-- DepositReturnExceededError
    |   +-- TransactionOwnershipError
    |   +-- TransactionNotFoundError
    |   +-- TransactionAlreadyReversedError
    |   +-- InvalidReversalError
    |
    +-- ReservationError
    |   +-- ReservationNotFoundError
    |   +-- InvalidReservationError
    |   +-- DuplicateReservationCodeError
    |   +-- InvalidTransitionError
    |   +-- PaymentRequiredError
    |   +-- TerminalReservationError
    |
    +-- InventoryError
    |   +-- InvalidLotError
    |
    +-- ConcurrencyError
    |   +-- ConflictError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|----------------------------------------
Currency        | INVALID_CURRENCY              | Not a registered ISO 4217 code
                | CURRENCY_MISMATCH             | Mixed currencies in one computation
----------------|-------------------------------|----------------------------------------
Ledger          | INVALID_AMOUNT                | Transaction amount <= 0
                | REFUND_EXCEEDS_PAID           | Refund larger than net paid amount
                | DEPOSIT_RETURN_EXCEEDED       | Returning more deposit than is held
                | TRANSACTION_OWNERSHIP         | Entry belongs to another reservation
                | TRANSACTION_NOT_FOUND         | Transaction ID doesn't exist
                | TRANSACTION_ALREADY_REVERSED  | Compensating entry already recorded
                | INVALID_REVERSAL              | Only payments can be reversed
----------------|-------------------------------|----------------------------------------
Reservation     | RESERVATION_NOT_FOUND         | Reservation ID doesn't exist
                | INVALID_RESERVATION           | discount > subtotal, negative amounts
                | DUPLICATE_RESERVATION_CODE    | Reservation code already taken
                | INVALID_TRANSITION            | Status change not in transition table
                | PAYMENT_REQUIRED              | Delivering without required payment
                | TERMINAL_RESERVATION          | New money on a cancelled reservation
----------------|-------------------------------|----------------------------------------
Inventory       | INVALID_LOT                   | current_quantity out of bounds
----------------|-------------------------------|----------------------------------------
Concurrency     | CONFLICT                      | Stale version on save (reload, retry)
----------------|-------------------------------|----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION        | Updating or deleting a ledger entry

===============================================================================
HANDLING PATTERNS
===============================================================================

1. CONFLICTS ARE THE CALLER'S TO RETRY:

    for attempt in range(3):
        try:
            return service.apply_payment(reservation_id, payment)
        except ConflictError:
            continue  # reload happens inside apply_payment

   (``rental_services.retry.run_with_conflict_retry`` packages this loop.)

2. USE STRUCTURED DATA (not message parsing):

    except InvalidTransitionError as e:
        return {
            "error": e.code,
            "from": e.from_status,
            "to": e.to_status,
            "requires_override": e.requires_override,
        }
"""


class RentalKernelError(Exception):
    """
    Base exception for all rental kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "RENTAL_KERNEL_ERROR"


# Currency-related exceptions


class CurrencyError(RentalKernelError):
    """Base exception for currency-related errors."""

    code: str = "CURRENCY_ERROR"


class InvalidCurrencyError(CurrencyError):
    """Invalid ISO 4217 currency code provided."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid ISO 4217 currency code: '{currency}'")


class CurrencyMismatchError(CurrencyError):
    """Attempted operation on mismatched currencies."""

    code: str = "CURRENCY_MISMATCH"

    def __init__(self, currency1: str, currency2: str):
        self.currency1 = currency1
        self.currency2 = currency2
        super().__init__(f"Currency mismatch: {currency1} vs {currency2}")


# Ledger-related exceptions


class LedgerError(RentalKernelError):
    """Base exception for transaction ledger errors."""

    code: str = "LEDGER_ERROR"


class InvalidAmountError(LedgerError):
    """Transaction amount is not strictly positive."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: str, reason: str = "amount must be greater than zero"):
        self.amount = amount
        self.reason = reason
        super().__init__(f"Invalid transaction amount {amount}: {reason}")


class RefundExceedsPaidError(InvalidAmountError):
    """Refund would take the net paid amount below zero."""

    code: str = "REFUND_EXCEEDS_PAID"

    def __init__(self, amount: str, total_paid: str):
        self.total_paid = total_paid
        super().__init__(amount, f"refund exceeds net paid amount {total_paid}")


class DepositReturnExceededError(InvalidAmountError):
    """Deposit return larger than the deposit still held."""

    code: str = "DEPOSIT_RETURN_EXCEEDED"

    def __init__(self, amount: str, deposit_outstanding: str):
        self.deposit_outstanding = deposit_outstanding
        super().__init__(
            amount, f"only {deposit_outstanding} of the deposit is still held"
        )


class TransactionOwnershipError(LedgerError):
    """Transaction belongs to a different reservation."""

    code: str = "TRANSACTION_OWNERSHIP"

    def __init__(self, transaction_id: str, reservation_id: str, owner_id: str):
        self.transaction_id = transaction_id
        self.reservation_id = reservation_id
        self.owner_id = owner_id
        super().__init__(
            f"Transaction {transaction_id} belongs to reservation {owner_id}, "
            f"not {reservation_id}"
        )


class TransactionNotFoundError(LedgerError):
    """Transaction with given ID was not found."""

    code: str = "TRANSACTION_NOT_FOUND"

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction not found: {transaction_id}")


class TransactionAlreadyReversedError(LedgerError):
    """A compensating entry already exists for this transaction."""

    code: str = "TRANSACTION_ALREADY_REVERSED"

    def __init__(self, transaction_id: str, reversal_id: str):
        self.transaction_id = transaction_id
        self.reversal_id = reversal_id
        super().__init__(
            f"Transaction {transaction_id} was already reversed by {reversal_id}"
        )


class InvalidReversalError(LedgerError):
    """Transaction kind cannot be reversed with a compensating refund."""

    code: str = "INVALID_REVERSAL"

    def __init__(self, transaction_id: str, kind: str):
        self.transaction_id = transaction_id
        self.kind = kind
        super().__init__(
            f"Cannot reverse transaction {transaction_id}: kind {kind} "
            "has no compensating entry"
        )


# Reservation-related exceptions


class ReservationError(RentalKernelError):
    """Base exception for reservation lifecycle errors."""

    code: str = "RESERVATION_ERROR"


class ReservationNotFoundError(ReservationError):
    """Reservation with given ID was not found."""

    code: str = "RESERVATION_NOT_FOUND"

    def __init__(self, reservation_id: str):
        self.reservation_id = reservation_id
        super().__init__(f"Reservation not found: {reservation_id}")


class InvalidReservationError(ReservationError):
    """Reservation figures violate a construction invariant."""

    code: str = "INVALID_RESERVATION"

    def __init__(self, reservation_code: str, reason: str):
        self.reservation_code = reservation_code
        self.reason = reason
        super().__init__(f"Invalid reservation {reservation_code}: {reason}")


class DuplicateReservationCodeError(ReservationError):
    """Reservation code is already in use."""

    code: str = "DUPLICATE_RESERVATION_CODE"

    def __init__(self, reservation_code: str):
        self.reservation_code = reservation_code
        super().__init__(f"Reservation code already exists: {reservation_code}")


class InvalidTransitionError(ReservationError):
    """Requested status is not reachable from the current status."""

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        reservation_id: str,
        from_status: str,
        to_status: str,
        requires_override: bool = False,
    ):
        self.reservation_id = reservation_id
        self.from_status = from_status
        self.to_status = to_status
        self.requires_override = requires_override
        suffix = " without an administrative override" if requires_override else ""
        super().__init__(
            f"Reservation {reservation_id} cannot move from {from_status} "
            f"to {to_status}{suffix}"
        )


class PaymentRequiredError(ReservationError):
    """Goods cannot be released before the required payment is received."""

    code: str = "PAYMENT_REQUIRED"

    def __init__(self, reservation_id: str, payment_status: str, required_status: str):
        self.reservation_id = reservation_id
        self.payment_status = payment_status
        self.required_status = required_status
        super().__init__(
            f"Reservation {reservation_id} is {payment_status}; "
            f"delivery requires {required_status}"
        )


class TerminalReservationError(ReservationError):
    """Reservation is cancelled and only accepts refunds."""

    code: str = "TERMINAL_RESERVATION"

    def __init__(self, reservation_id: str, status: str, kind: str):
        self.reservation_id = reservation_id
        self.status = status
        self.kind = kind
        super().__init__(
            f"Reservation {reservation_id} is {status}: cannot record {kind}"
        )


# Inventory-related exceptions


class InventoryError(RentalKernelError):
    """Base exception for lot and maintenance input errors."""

    code: str = "INVENTORY_ERROR"


class InvalidLotError(InventoryError):
    """Lot quantities violate 0 <= current <= initial."""

    code: str = "INVALID_LOT"

    def __init__(self, lot_id: str, reason: str):
        self.lot_id = lot_id
        self.reason = reason
        super().__init__(f"Invalid lot {lot_id}: {reason}")


# Concurrency-related exceptions


class ConcurrencyError(RentalKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ConflictError(ConcurrencyError):
    """Optimistic concurrency conflict: the record changed since it was read."""

    code: str = "CONFLICT"

    def __init__(self, entity_type: str, entity_id: str, expected_version: int):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_version = expected_version
        super().__init__(
            f"Conflict on {entity_type} {entity_id}: expected version "
            f"{expected_version} but it was modified by another request"
        )


# Immutability-related exceptions


class ImmutabilityError(RentalKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    Ledger transactions are append-only; corrections are compensating
    refunds, never updates or deletes.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
