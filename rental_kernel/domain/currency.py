"""Currency -- ISO 4217 registry of minor-unit exponents."""

from dataclasses import dataclass
from typing import ClassVar

from rental_kernel.exceptions import InvalidCurrencyError


@dataclass(frozen=True)
class CurrencyInfo:
    """Information about a single ISO 4217 currency."""

    code: str
    exponent: int
    name: str


class CurrencyRegistry:
    """Registry of ISO 4217 currencies and their minor-unit exponents."""

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        # Americas
        "COP": CurrencyInfo("COP", 2, "Colombian Peso"),
        "USD": CurrencyInfo("USD", 2, "US Dollar"),
        "MXN": CurrencyInfo("MXN", 2, "Mexican Peso"),
        "ARS": CurrencyInfo("ARS", 2, "Argentine Peso"),
        "BRL": CurrencyInfo("BRL", 2, "Brazilian Real"),
        "PEN": CurrencyInfo("PEN", 2, "Peruvian Sol"),
        "BOB": CurrencyInfo("BOB", 2, "Bolivian Boliviano"),
        "UYU": CurrencyInfo("UYU", 2, "Uruguayan Peso"),
        "CRC": CurrencyInfo("CRC", 2, "Costa Rican Colon"),
        "DOP": CurrencyInfo("DOP", 2, "Dominican Peso"),
        "GTQ": CurrencyInfo("GTQ", 2, "Guatemalan Quetzal"),
        "CAD": CurrencyInfo("CAD", 2, "Canadian Dollar"),
        "CLP": CurrencyInfo("CLP", 0, "Chilean Peso"),
        "PYG": CurrencyInfo("PYG", 0, "Paraguayan Guarani"),
        # Europe
        "EUR": CurrencyInfo("EUR", 2, "Euro"),
        "GBP": CurrencyInfo("GBP", 2, "Pound Sterling"),
        "CHF": CurrencyInfo("CHF", 2, "Swiss Franc"),
        "ISK": CurrencyInfo("ISK", 0, "Icelandic Krona"),
        # Asia-Pacific
        "JPY": CurrencyInfo("JPY", 0, "Japanese Yen"),
        "KRW": CurrencyInfo("KRW", 0, "South Korean Won"),
        "VND": CurrencyInfo("VND", 0, "Vietnamese Dong"),
        "CNY": CurrencyInfo("CNY", 2, "Chinese Yuan"),
        "INR": CurrencyInfo("INR", 2, "Indian Rupee"),
        "AUD": CurrencyInfo("AUD", 2, "Australian Dollar"),
        "NZD": CurrencyInfo("NZD", 2, "New Zealand Dollar"),
        # Middle East / Africa
        "BHD": CurrencyInfo("BHD", 3, "Bahraini Dinar"),
        "JOD": CurrencyInfo("JOD", 3, "Jordanian Dinar"),
        "KWD": CurrencyInfo("KWD", 3, "Kuwaiti Dinar"),
        "OMR": CurrencyInfo("OMR", 3, "Omani Rial"),
        "TND": CurrencyInfo("TND", 3, "Tunisian Dinar"),
        "AED": CurrencyInfo("AED", 2, "UAE Dirham"),
        "ZAR": CurrencyInfo("ZAR", 2, "South African Rand"),
        "XOF": CurrencyInfo("XOF", 0, "West African CFA Franc"),
    }

    @classmethod
    def is_valid(cls, code: str) -> bool:
        """Check if a currency code is registered."""
        return code in cls._CURRENCIES

    @classmethod
    def get_exponent(cls, code: str) -> int:
        """
        Get the minor-unit exponent for a currency.

        Raises:
            InvalidCurrencyError: If the code is not registered.
        """
        info = cls._CURRENCIES.get(code)
        if info is None:
            raise InvalidCurrencyError(code)
        return info.exponent

    @classmethod
    def validate(cls, code: str) -> str:
        """
        Normalize and validate a currency code.

        Returns:
            The uppercased, stripped code.

        Raises:
            InvalidCurrencyError: If the code is not registered.
        """
        normalized = code.upper().strip() if code else ""
        if normalized not in cls._CURRENCIES:
            raise InvalidCurrencyError(code)
        return normalized

    @classmethod
    def all_codes(cls) -> frozenset[str]:
        """Get all registered currency codes."""
        return frozenset(cls._CURRENCIES)
