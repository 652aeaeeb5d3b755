from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator


@dataclass(frozen=True)
class RateSample:
    timestamp: datetime
    rate: float

    @property
    def value(self) -> float:
        return self.rate


@dataclass(frozen=True)
class QuoteSample:
    symbol: str
    timestamp: datetime
    price: float

    @property
    def value(self) -> float:
        return self.price


class StockCategory(StrEnum):
    MOST_ACTIVE = "MOST_ACTIVE"
    GAINERS = "GAINERS"
    LOSERS = "LOSERS"


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class CurrencyItem(FrozenModel):
    code: str
    name: str


class ConversionResult(FrozenModel):
    """Result of converting ``amount`` units of ``from_currency``.

    ``inverse_rate`` is ``1 / rate`` for a positive rate and ``0`` otherwise; a
    zero rate is passed through from upstream rather than rejected.
    """

    rate: float
    inverse_rate: float
    converted_amount: float
    from_currency: str
    to_currency: str


class StockWithPrice(FrozenModel):
    symbol: str
    name: str
    price: float
    change: float | None = None
    percent_change: float | None = None
    exchange: str = "NASDAQ"
    currency: str = "USD"


class StockSearchResult(FrozenModel):
    symbol: str
    name: str
    exchange: str
    currency: str = "USD"


class ForexPair(FrozenModel):
    from_currency: str
    to_currency: str
    current_rate: float
    rate_change: float | None = None
    rate_history: tuple[RateSample, ...] = ()

    @property
    def key(self) -> str:
        return pair_key(self.from_currency, self.to_currency)


class ChatMessage(FrozenModel):
    text: str
    is_user: bool
    timestamp: datetime

    @model_validator(mode="after")
    def _validate_text(self) -> ChatMessage:
        if self.is_user and not self.text.strip():
            raise ValueError("user messages must be non-blank")
        return self


class CurrencyPair(FrozenModel):
    from_currency: str = Field(min_length=1)
    to_currency: str = Field(min_length=1)

    @property
    def key(self) -> str:
        return pair_key(self.from_currency, self.to_currency)


def pair_key(from_currency: str, to_currency: str) -> str:
    return f"{from_currency.upper()}_{to_currency.upper()}"


__all__ = [
    "ChatMessage",
    "ConversionResult",
    "CurrencyItem",
    "CurrencyPair",
    "ForexPair",
    "QuoteSample",
    "RateSample",
    "StockCategory",
    "StockSearchResult",
    "StockWithPrice",
    "pair_key",
]
