from __future__ import annotations

from datetime import datetime

from .models import (
    ChatMessage,
    ConversionResult,
    CurrencyItem,
    ForexPair,
    FrozenModel,
    QuoteSample,
    RateSample,
    StockCategory,
    StockSearchResult,
    StockWithPrice,
)

UNAVAILABLE = "N/A"


class StreamSnapshot(FrozenModel):
    """Fields every refresh stream exposes to the presentation layer."""

    is_loading: bool = False
    error_message: str | None = None
    last_update: datetime | None = None
    auto_refresh_enabled: bool = True


class ConversionSnapshot(StreamSnapshot):
    amount: str = ""
    number_of_shares: str = ""
    from_currency: CurrencyItem = CurrencyItem(code="USD", name="United States Dollar")
    to_currency: CurrencyItem = CurrencyItem(code="EUR", name="Euro")
    available_currencies: tuple[CurrencyItem, ...] = ()

    conversion: ConversionResult | None = None
    converted_amount_text: str = ""
    rate_text: str = ""
    inverse_rate_text: str = ""
    total_cost_in_from: str = ""
    total_cost_in_to: str = ""

    current_rate: float = 0.0
    rate_change: float | None = None
    rate_history: tuple[RateSample, ...] = ()

    stock_symbol: str = ""
    stock_name: str = ""
    is_loading_stock: bool = False
    stock_error_message: str | None = None
    stock_search_results: tuple[StockSearchResult, ...] = ()
    show_stock_search: bool = False


class StockListSnapshot(StreamSnapshot):
    category: StockCategory = StockCategory.MOST_ACTIVE
    stocks: tuple[StockWithPrice, ...] = ()
    price_history: dict[str, tuple[QuoteSample, ...]] = {}
    price_changes: dict[str, float | None] = {}


class ForexMarketSnapshot(StreamSnapshot):
    forex_pairs: tuple[ForexPair, ...] = ()


class ChatSnapshot(FrozenModel):
    messages: tuple[ChatMessage, ...] = ()
    is_loading: bool = False
    error: str | None = None


__all__ = [
    "UNAVAILABLE",
    "ChatSnapshot",
    "ConversionSnapshot",
    "ForexMarketSnapshot",
    "StockListSnapshot",
    "StreamSnapshot",
]
