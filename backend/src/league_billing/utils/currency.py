"""Currencies league prices can be charged in, and conversion to gateway subunits."""
from decimal import ROUND_HALF_UP, Decimal
from typing import NamedTuple


class CurrencyInfo(NamedTuple):
    symbol: str
    decimal_places: int


# ISO 4217 codes enabled on the Stripe account
CURRENCIES = {
    "INR": CurrencyInfo("₹", 2),
    "USD": CurrencyInfo("$", 2),
    "EUR": CurrencyInfo("€", 2),
    "GBP": CurrencyInfo("£", 2),
    "SGD": CurrencyInfo("S$", 2),
    "AED": CurrencyInfo("AED ", 2),
    "JPY": CurrencyInfo("¥", 0),
}


def validate_currency(currency: str) -> bool:
    return bool(currency) and currency.upper() in CURRENCIES


def _info(currency: str) -> CurrencyInfo:
    code = currency.upper()
    return CURRENCIES.get(code, CurrencyInfo(code, 2))


def get_currency_symbol(currency: str) -> str:
    """Display symbol, falling back to the ISO code itself (``"CHF"``)."""
    return _info(currency).symbol


def convert_to_smallest_unit(amount: Decimal, currency: str) -> int:
    """
    Amount in the gateway's integer unit (paise for INR, whole yen for JPY).

    Totals are already rounded to two places; any residue rounds half up
    instead of truncating, so 10.005 INR becomes 1001 paise.
    """
    exponent = Decimal(1).scaleb(-_info(currency).decimal_places)
    return int((Decimal(amount) / exponent).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def convert_from_smallest_unit(amount: int, currency: str) -> Decimal:
    return Decimal(amount).scaleb(-_info(currency).decimal_places)


def format_money(amount: Decimal, currency: str) -> str:
    """``₹999.00``: symbol plus exactly two decimals, as shown on price breakdowns."""
    return f"{get_currency_symbol(currency)}{Decimal(amount):.2f}"


def format_rate(rate: Decimal, currency: str) -> str:
    """Per-day and per-participant rates without padding: ``₹5``, ``₹2.5``."""
    return f"{get_currency_symbol(currency)}{Decimal(rate).normalize():f}"
