"""Currency -- ISO 4217 registry and the decimal places each currency rounds to."""

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar


@dataclass(frozen=True)
class CurrencyInfo:
    """Information about a single ISO 4217 currency."""

    code: str
    decimal_places: int
    name: str

    @property
    def quantum(self) -> Decimal:
        """Smallest representable unit, for Decimal.quantize()."""
        if self.decimal_places == 0:
            return Decimal("1")
        return Decimal("0." + "0" * (self.decimal_places - 1) + "1")


class CurrencyRegistry:
    """Currencies the engines accept, with their minor-unit precision."""

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        # Americas
        "USD": CurrencyInfo("USD", 2, "US Dollar"),
        "CAD": CurrencyInfo("CAD", 2, "Canadian Dollar"),
        "MXN": CurrencyInfo("MXN", 2, "Mexican Peso"),
        "DOP": CurrencyInfo("DOP", 2, "Dominican Peso"),
        "COP": CurrencyInfo("COP", 2, "Colombian Peso"),
        "ARS": CurrencyInfo("ARS", 2, "Argentine Peso"),
        "BRL": CurrencyInfo("BRL", 2, "Brazilian Real"),
        "CLP": CurrencyInfo("CLP", 0, "Chilean Peso"),
        "PEN": CurrencyInfo("PEN", 2, "Peruvian Sol"),
        "CRC": CurrencyInfo("CRC", 2, "Costa Rican Colon"),
        "GTQ": CurrencyInfo("GTQ", 2, "Guatemalan Quetzal"),
        "PAB": CurrencyInfo("PAB", 2, "Panamanian Balboa"),
        # Europe
        "EUR": CurrencyInfo("EUR", 2, "Euro"),
        "GBP": CurrencyInfo("GBP", 2, "Pound Sterling"),
        "CHF": CurrencyInfo("CHF", 2, "Swiss Franc"),
        "SEK": CurrencyInfo("SEK", 2, "Swedish Krona"),
        "NOK": CurrencyInfo("NOK", 2, "Norwegian Krone"),
        "DKK": CurrencyInfo("DKK", 2, "Danish Krone"),
        "ISK": CurrencyInfo("ISK", 0, "Icelandic Krona"),
        # Asia-Pacific
        "JPY": CurrencyInfo("JPY", 0, "Japanese Yen"),
        "KRW": CurrencyInfo("KRW", 0, "South Korean Won"),
        "CNY": CurrencyInfo("CNY", 2, "Chinese Yuan"),
        "INR": CurrencyInfo("INR", 2, "Indian Rupee"),
        "AUD": CurrencyInfo("AUD", 2, "Australian Dollar"),
        "NZD": CurrencyInfo("NZD", 2, "New Zealand Dollar"),
        "SGD": CurrencyInfo("SGD", 2, "Singapore Dollar"),
        "VND": CurrencyInfo("VND", 0, "Vietnamese Dong"),
        # Middle East / Africa
        "AED": CurrencyInfo("AED", 2, "UAE Dirham"),
        "BHD": CurrencyInfo("BHD", 3, "Bahraini Dinar"),
        "KWD": CurrencyInfo("KWD", 3, "Kuwaiti Dinar"),
        "JOD": CurrencyInfo("JOD", 3, "Jordanian Dinar"),
        "OMR": CurrencyInfo("OMR", 3, "Omani Rial"),
        "ZAR": CurrencyInfo("ZAR", 2, "South African Rand"),
        "XOF": CurrencyInfo("XOF", 0, "West African CFA Franc"),
    }

    DEFAULT_DECIMAL_PLACES: ClassVar[int] = 2

    @classmethod
    def is_valid(cls, code: str) -> bool:
        """Check if a currency code is registered."""
        if not code or not isinstance(code, str):
            return False
        return code.upper().strip() in cls._CURRENCIES

    @classmethod
    def get_info(cls, code: str) -> CurrencyInfo | None:
        """Get currency information by code."""
        if not code or not isinstance(code, str):
            return None
        return cls._CURRENCIES.get(code.upper().strip())

    @classmethod
    def get_decimal_places(cls, code: str) -> int:
        """Decimal places a currency rounds to."""
        info = cls.get_info(code)
        return info.decimal_places if info else cls.DEFAULT_DECIMAL_PLACES

    @classmethod
    def get_quantum(cls, code: str) -> Decimal:
        """Quantize exponent derived from the currency's precision."""
        places = cls.get_decimal_places(code)
        return Decimal(10) ** -places if places else Decimal("1")

    @classmethod
    def all_codes(cls) -> frozenset[str]:
        """Get all registered currency codes."""
        return frozenset(cls._CURRENCIES.keys())
