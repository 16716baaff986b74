"""Currency -- ISO 4217 registry and decimal-place derived scale factors."""

from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True)
class IsoCurrency:
    """Registry entry for a single ISO 4217 currency."""

    code: str
    decimal_places: int
    name: str

    @property
    def scale_factor(self) -> int:
        """Minor units per major unit (100 for USD, 1 for JPY, 1000 for BHD)."""
        return 10 ** self.decimal_places


class CurrencyRegistry:
    """Registry of ISO 4217 currencies with decimal places.

    Used when a currency is created by code (strategy import, CLI) so its
    scale factor comes from the standard instead of a guess.
    """

    # Source: https://www.iso.org/iso-4217-currency-codes.html
    _CURRENCIES: ClassVar[dict[str, IsoCurrency]] = {
        # Major currencies
        "USD": IsoCurrency("USD", 2, "US Dollar"),
        "EUR": IsoCurrency("EUR", 2, "Euro"),
        "GBP": IsoCurrency("GBP", 2, "Pound Sterling"),
        "JPY": IsoCurrency("JPY", 0, "Japanese Yen"),
        "CHF": IsoCurrency("CHF", 2, "Swiss Franc"),
        "CAD": IsoCurrency("CAD", 2, "Canadian Dollar"),
        "AUD": IsoCurrency("AUD", 2, "Australian Dollar"),
        "NZD": IsoCurrency("NZD", 2, "New Zealand Dollar"),
        # Zero decimal currencies
        "CLP": IsoCurrency("CLP", 0, "Chilean Peso"),
        "ISK": IsoCurrency("ISK", 0, "Icelandic Krona"),
        "KRW": IsoCurrency("KRW", 0, "South Korean Won"),
        "PYG": IsoCurrency("PYG", 0, "Paraguayan Guarani"),
        "UGX": IsoCurrency("UGX", 0, "Ugandan Shilling"),
        "VND": IsoCurrency("VND", 0, "Vietnamese Dong"),
        "XAF": IsoCurrency("XAF", 0, "Central African CFA Franc"),
        "XOF": IsoCurrency("XOF", 0, "West African CFA Franc"),
        # Three decimal currencies
        "BHD": IsoCurrency("BHD", 3, "Bahraini Dinar"),
        "IQD": IsoCurrency("IQD", 3, "Iraqi Dinar"),
        "JOD": IsoCurrency("JOD", 3, "Jordanian Dinar"),
        "KWD": IsoCurrency("KWD", 3, "Kuwaiti Dinar"),
        "LYD": IsoCurrency("LYD", 3, "Libyan Dinar"),
        "OMR": IsoCurrency("OMR", 3, "Omani Rial"),
        "TND": IsoCurrency("TND", 3, "Tunisian Dinar"),
        # Four decimal currencies (special)
        "CLF": IsoCurrency("CLF", 4, "Chilean Unidad de Fomento"),
        # Two decimal currencies
        "AED": IsoCurrency("AED", 2, "UAE Dirham"),
        "ARS": IsoCurrency("ARS", 2, "Argentine Peso"),
        "BRL": IsoCurrency("BRL", 2, "Brazilian Real"),
        "CNY": IsoCurrency("CNY", 2, "Chinese Yuan"),
        "CZK": IsoCurrency("CZK", 2, "Czech Koruna"),
        "DKK": IsoCurrency("DKK", 2, "Danish Krone"),
        "HKD": IsoCurrency("HKD", 2, "Hong Kong Dollar"),
        "HUF": IsoCurrency("HUF", 2, "Hungarian Forint"),
        "IDR": IsoCurrency("IDR", 2, "Indonesian Rupiah"),
        "ILS": IsoCurrency("ILS", 2, "Israeli New Shekel"),
        "INR": IsoCurrency("INR", 2, "Indian Rupee"),
        "MXN": IsoCurrency("MXN", 2, "Mexican Peso"),
        "MYR": IsoCurrency("MYR", 2, "Malaysian Ringgit"),
        "NOK": IsoCurrency("NOK", 2, "Norwegian Krone"),
        "PHP": IsoCurrency("PHP", 2, "Philippine Peso"),
        "PLN": IsoCurrency("PLN", 2, "Polish Zloty"),
        "RON": IsoCurrency("RON", 2, "Romanian Leu"),
        "SAR": IsoCurrency("SAR", 2, "Saudi Riyal"),
        "SEK": IsoCurrency("SEK", 2, "Swedish Krona"),
        "SGD": IsoCurrency("SGD", 2, "Singapore Dollar"),
        "THB": IsoCurrency("THB", 2, "Thai Baht"),
        "TRY": IsoCurrency("TRY", 2, "Turkish Lira"),
        "TWD": IsoCurrency("TWD", 2, "New Taiwan Dollar"),
        "UAH": IsoCurrency("UAH", 2, "Ukrainian Hryvnia"),
        "ZAR": IsoCurrency("ZAR", 2, "South African Rand"),
        # Special codes
        "XAU": IsoCurrency("XAU", 0, "Gold (troy ounce)"),
        "XXX": IsoCurrency("XXX", 0, "No currency"),
    }

    # Default decimal places for codes outside the table
    DEFAULT_DECIMAL_PLACES: ClassVar[int] = 2

    @classmethod
    def normalize(cls, code: str) -> str:
        return code.upper().strip()

    @classmethod
    def get_info(cls, code: str) -> IsoCurrency | None:
        """Get currency information by code."""
        if not code or not isinstance(code, str):
            return None
        return cls._CURRENCIES.get(cls.normalize(code))

    @classmethod
    def get_decimal_places(cls, code: str) -> int:
        info = cls.get_info(code)
        return info.decimal_places if info else cls.DEFAULT_DECIMAL_PLACES

    @classmethod
    def get_scale_factor(cls, code: str) -> int:
        """Scale factor for ``code``; unknown codes use the default precision."""
        return 10 ** cls.get_decimal_places(code)
