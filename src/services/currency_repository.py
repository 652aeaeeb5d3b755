from __future__ import annotations

import logging
from typing import Protocol

from domain.conversion import compute_conversion
from domain.models import ConversionResult
from domain.outcome import Failure, Outcome, Success

from .errors import MarketDataError

logger = logging.getLogger(__name__)

REFERENCE_BASE = "USD"

CURRENCY_NAMES: dict[str, str] = {
    "USD": "United States Dollar",
    "EUR": "Euro",
    "GBP": "British Pound Sterling",
    "JPY": "Japanese Yen",
    "AUD": "Australian Dollar",
    "CAD": "Canadian Dollar",
    "CHF": "Swiss Franc",
    "CNY": "Chinese Yuan",
    "INR": "Indian Rupee",
    "MXN": "Mexican Peso",
    "BRL": "Brazilian Real",
    "ZAR": "South African Rand",
    "RUB": "Russian Ruble",
    "KRW": "South Korean Won",
    "SGD": "Singapore Dollar",
    "HKD": "Hong Kong Dollar",
    "NOK": "Norwegian Krone",
    "SEK": "Swedish Krona",
    "DKK": "Danish Krone",
    "NZD": "New Zealand Dollar",
    "TRY": "Turkish Lira",
    "PLN": "Polish Zloty",
    "THB": "Thai Baht",
    "IDR": "Indonesian Rupiah",
    "MYR": "Malaysian Ringgit",
    "PHP": "Philippine Peso",
    "CZK": "Czech Koruna",
    "HUF": "Hungarian Forint",
    "ILS": "Israeli New Shekel",
    "CLP": "Chilean Peso",
    "PKR": "Pakistani Rupee",
    "AED": "United Arab Emirates Dirham",
    "SAR": "Saudi Riyal",
    "EGP": "Egyptian Pound",
}


class RateFetcher(Protocol):
    def fetch_rates(self, base: str) -> dict[str, float]: ...


def currency_name(code: str) -> str:
    return CURRENCY_NAMES.get(code, code)


class CurrencyRepository:
    """Turns raw rate mappings into currency lists and conversions.

    Client errors are converted into :class:`Failure` here; callers never see
    exceptions for expected network, decode or empty-input problems.
    """

    def __init__(self, fetcher: RateFetcher) -> None:
        self.fetcher = fetcher

    def list_currencies(self, base: str = REFERENCE_BASE) -> Outcome[dict[str, str]]:
        base_code = base.upper()
        try:
            rates = self.fetcher.fetch_rates(base_code)
        except (MarketDataError, ValueError) as exc:
            logger.warning("Failed to load currency list for base=%s: %s", base_code, exc)
            return Failure.from_error(exc)

        currencies = {code: currency_name(code) for code in rates}
        # The upstream mapping never lists the base against itself.
        currencies[base_code] = currency_name(base_code)
        return Success(currencies)

    def convert(self, amount: float, from_currency: str, to_currency: str) -> Outcome[ConversionResult]:
        source = from_currency.upper()
        target = to_currency.upper()
        if source == target:
            return Success(compute_conversion(amount, 1.0, source, target))

        try:
            rates = self.fetcher.fetch_rates(source)
        except (MarketDataError, ValueError) as exc:
            logger.warning("Failed to convert %s->%s: %s", source, target, exc)
            return Failure.from_error(exc)

        rate = rates.get(target, 0.0)
        if target not in rates:
            logger.info("No %s rate in %s payload; passing through rate 0", target, source)
        return Success(compute_conversion(amount, rate, source, target))


__all__ = ["CURRENCY_NAMES", "REFERENCE_BASE", "CurrencyRepository", "RateFetcher", "currency_name"]
