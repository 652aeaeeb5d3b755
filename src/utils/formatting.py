from __future__ import annotations


def format_amount(value: float) -> str:
    return f"{value:.2f}"


def format_rate(value: float) -> str:
    return f"{value:.4f}"


def rate_text(from_currency: str, rate: float, to_currency: str) -> str:
    return f"1 {from_currency} = {format_rate(rate)} {to_currency}"


def format_change(value: float | None, *, digits: int = 4) -> str:
    if value is None:
        return "-"
    return f"{value:+.{digits}f}"


def format_percent(value: float | None) -> str:
    if value is None:
        return "-"
    return f"{value:+.2f}%"


def amount_input_text(value: float) -> str:
    """Render a price as text accepted by the amount field (no exponent notation)."""
    text = f"{value:.6f}".rstrip("0")
    return text[:-1] if text.endswith(".") else text
