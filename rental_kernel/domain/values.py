"""
Values -- Immutable, self-validating monetary value objects.

Responsibility:
    Provides Currency and Money, the foundational value types for every
    reservation figure (subtotal, discount, deposit, ledger amounts).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by every other domain module. No outward dependencies except
    rental_kernel.domain.currency and rental_kernel.exceptions.

Invariants enforced:
    - Money is stored as an integer count of minor units (cents); binary
      floating point never enters a monetary computation.
    - Currency codes are validated against CurrencyRegistry at construction.
    - Arithmetic and comparison between two Money values require the same
      currency (CurrencyMismatchError otherwise).
    - Scaling, division and percentages round to the currency's minor unit
      with ROUND_HALF_UP.

Failure modes:
    - InvalidCurrencyError on unknown currency codes.
    - CurrencyMismatchError when mixing currencies.
    - TypeError when a float (or bool) is offered as an amount or factor.
    - ValueError when a major-unit amount has more precision than the
      currency allows (input is never silently rounded).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from rental_kernel.domain.currency import CurrencyRegistry
from rental_kernel.exceptions import CurrencyMismatchError


def round_half_up(value: Decimal) -> int:
    """Round a Decimal to the nearest integer, ties away from zero."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True, slots=True)
class Currency:
    """
    ISO 4217 currency code value object.

    Contract:
        Wraps a three-letter code, normalized (uppercased) and validated
        against CurrencyRegistry on construction.

    Non-goals:
        - Does NOT perform conversion between currencies.
    """

    code: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "code", CurrencyRegistry.validate(self.code))

    @property
    def exponent(self) -> int:
        """Number of decimal places of the minor unit (2 for cents)."""
        return CurrencyRegistry.get_exponent(self.code)

    @property
    def minor_per_major(self) -> int:
        return 10 ** self.exponent

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"Currency({self.code!r})"


@dataclass(frozen=True, slots=True)
class Money:
    """
    Monetary amount value object.

    Contract:
        Pairs an integer count of minor units with its Currency -- they are
        NEVER separated.

    Guarantees:
        - Immutable and hashable (frozen dataclass with slots)
        - minor_units is always an int
        - Arithmetic operations enforce the same-currency constraint

    Non-goals:
        - Does NOT format amounts for display (presentation layer concern)
        - Does NOT convert between currencies
    """

    minor_units: int
    currency: Currency

    def __post_init__(self) -> None:
        if isinstance(self.minor_units, bool) or not isinstance(self.minor_units, int):
            raise TypeError(
                f"minor_units must be int, got {type(self.minor_units).__name__}"
            )
        if isinstance(self.currency, str):
            object.__setattr__(self, "currency", Currency(self.currency))
        elif not isinstance(self.currency, Currency):
            raise TypeError(f"currency must be Currency or str, got {type(self.currency)}")

    @classmethod
    def of(cls, amount: Decimal | str | int, currency: str | Currency) -> Money:
        """
        Create Money from an amount expressed in MAJOR units.

        ``Money.of("1250.50", "COP")`` holds 125050 minor units.

        Raises:
            TypeError: If amount is a float.
            ValueError: If amount is not a number or carries more decimal
                places than the currency's minor unit.
            InvalidCurrencyError: If the currency is unknown.
        """
        if isinstance(amount, (float, bool)):
            raise TypeError("Money amounts must not be float; use Decimal or str")
        if isinstance(currency, str):
            currency = Currency(currency)
        try:
            value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
        except InvalidOperation as e:
            raise ValueError(f"Invalid amount: {amount}") from e
        if not value.is_finite():
            raise ValueError(f"Invalid amount: {amount}")

        scaled = value * currency.minor_per_major
        if scaled != scaled.to_integral_value():
            raise ValueError(
                f"Amount {amount} has more precision than {currency.code} allows "
                f"({currency.exponent} decimal places)"
            )
        return cls(minor_units=int(scaled), currency=currency)

    @classmethod
    def from_minor(cls, minor_units: int, currency: str | Currency) -> Money:
        """Create Money from a count of minor units."""
        return cls(minor_units=minor_units, currency=currency)

    @classmethod
    def zero(cls, currency: str | Currency) -> Money:
        """Create a zero amount in the given currency."""
        return cls(minor_units=0, currency=currency)

    @classmethod
    def sum(cls, values: Iterable[Money], currency: str | Currency) -> Money:
        """Sum Money values, all of which must be in ``currency``."""
        total = cls.zero(currency)
        for value in values:
            total = total + value
        return total

    @property
    def amount(self) -> Decimal:
        """Exact amount in major units."""
        return Decimal(self.minor_units).scaleb(-self.currency.exponent)

    @property
    def is_zero(self) -> bool:
        return self.minor_units == 0

    @property
    def is_positive(self) -> bool:
        return self.minor_units > 0

    @property
    def is_negative(self) -> bool:
        return self.minor_units < 0

    def _require_same_currency(self, other: Money) -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(self.currency.code, other.currency.code)

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._require_same_currency(other)
        return Money(self.minor_units + other.minor_units, self.currency)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._require_same_currency(other)
        return Money(self.minor_units - other.minor_units, self.currency)

    def __neg__(self) -> Money:
        return Money(-self.minor_units, self.currency)

    def __abs__(self) -> Money:
        return Money(abs(self.minor_units), self.currency)

    def __mul__(self, factor: Decimal | int) -> Money:
        """Multiply by a scalar, rounding half-up to the minor unit."""
        if isinstance(factor, bool) or not isinstance(factor, (int, Decimal)):
            return NotImplemented
        return Money(round_half_up(Decimal(self.minor_units) * factor), self.currency)

    def __rmul__(self, factor: Decimal | int) -> Money:
        return self.__mul__(factor)

    def __truediv__(self, divisor: Decimal | int) -> Money:
        """Divide by a scalar, rounding half-up to the minor unit."""
        if isinstance(divisor, bool) or not isinstance(divisor, (int, Decimal)):
            return NotImplemented
        if divisor == 0:
            raise ZeroDivisionError("Money division by zero")
        return Money(round_half_up(Decimal(self.minor_units) / Decimal(divisor)), self.currency)

    def percent(self, pct: Decimal | int | str) -> Money:
        """Return ``pct`` percent of this amount, rounded half-up once."""
        if isinstance(pct, (float, bool)):
            raise TypeError("Percentages must not be float; use Decimal or str")
        factor = pct if isinstance(pct, Decimal) else Decimal(str(pct))
        return Money(round_half_up(Decimal(self.minor_units) * factor / 100), self.currency)

    def ratio_to(self, other: Money) -> Decimal:
        """
        Unrounded ratio self / other.

        Raises:
            CurrencyMismatchError: If currencies differ.
            ZeroDivisionError: If other is zero.
        """
        self._require_same_currency(other)
        if other.minor_units == 0:
            raise ZeroDivisionError("ratio against zero Money")
        return Decimal(self.minor_units) / Decimal(other.minor_units)

    def max(self, other: Money) -> Money:
        """The larger of two same-currency amounts."""
        return self if self >= other else other

    def __lt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._require_same_currency(other)
        return self.minor_units < other.minor_units

    def __le__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._require_same_currency(other)
        return self.minor_units <= other.minor_units

    def __gt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._require_same_currency(other)
        return self.minor_units > other.minor_units

    def __ge__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._require_same_currency(other)
        return self.minor_units >= other.minor_units

    def __str__(self) -> str:
        return f"{self.amount} {self.currency.code}"

    def __repr__(self) -> str:
        return f"Money({self.minor_units!r}, {self.currency!r})"
