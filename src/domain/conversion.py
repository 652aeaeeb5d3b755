from __future__ import annotations

import re

from .models import ConversionResult

_AMOUNT_PATTERN = re.compile(r"^\d*\.?\d*$")


def compute_conversion(amount: float, rate: float, from_currency: str, to_currency: str) -> ConversionResult:
    inverse_rate = 1.0 / rate if rate > 0 else 0.0
    return ConversionResult(
        rate=rate,
        inverse_rate=inverse_rate,
        converted_amount=amount * rate,
        from_currency=from_currency,
        to_currency=to_currency,
    )


def is_amount_text(text: str) -> bool:
    """Whether ``text`` is acceptable while typing a decimal amount ("", "12.", ".5")."""
    return bool(_AMOUNT_PATTERN.match(text))


def parse_amount(text: str) -> float | None:
    """Parse a typed amount; returns ``None`` for anything that must not trigger a fetch."""
    if not text or text == "." or not is_amount_text(text):
        return None
    value = float(text)
    if value <= 0:
        return None
    return value


def price_change(price: float, previous_close: float) -> tuple[float, float]:
    change = price - previous_close
    percent_change = change / previous_close * 100 if previous_close > 0 else 0.0
    return change, percent_change


__all__ = ["compute_conversion", "is_amount_text", "parse_amount", "price_change"]
