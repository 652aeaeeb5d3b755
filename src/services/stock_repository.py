from __future__ import annotations

import logging
from typing import Callable, Protocol

from domain.conversion import price_change
from domain.models import StockCategory, StockSearchResult, StockWithPrice
from domain.outcome import Failure, Outcome, Success

from .batch import fetch_batch
from .errors import EmptyResult, MarketDataError
from .stock_quote_client import ChartQuote, SymbolMatch

logger = logging.getLogger(__name__)

DEFAULT_EXCHANGE = "NASDAQ"

STOCK_NAMES: dict[str, str] = {
    "AAPL": "Apple Inc.",
    "TSLA": "Tesla Inc.",
    "NVDA": "NVIDIA Corporation",
    "MSFT": "Microsoft Corporation",
    "AMZN": "Amazon.com Inc.",
    "META": "Meta Platforms Inc.",
    "AMD": "Advanced Micro Devices",
    "NFLX": "Netflix Inc.",
    "F": "Ford Motor",
    "GM": "General Motors",
    "T": "AT&T Inc.",
    "VZ": "Verizon",
    "XOM": "Exxon Mobil",
}

CATEGORY_SYMBOLS: dict[StockCategory, tuple[str, ...]] = {
    StockCategory.MOST_ACTIVE: ("AAPL", "TSLA", "NVDA", "MSFT", "AMZN"),
    StockCategory.GAINERS: ("NVDA", "AMD", "TSLA", "META", "NFLX"),
    StockCategory.LOSERS: ("F", "GM", "T", "VZ", "XOM"),
}


class QuoteFetcher(Protocol):
    def get_quote(self, symbol: str) -> ChartQuote: ...

    def search_symbols(self, query: str, limit: int = 10) -> list[SymbolMatch]: ...


class StockRepository:
    def __init__(
        self,
        fetcher: QuoteFetcher,
        *,
        stagger_seconds: float = 0.3,
    ) -> None:
        self.fetcher = fetcher
        self.stagger_seconds = stagger_seconds

    def quote(self, symbol: str) -> Outcome[StockWithPrice]:
        code = symbol.upper()
        try:
            chart = self.fetcher.get_quote(code)
        except (MarketDataError, ValueError) as exc:
            logger.warning("Error fetching quote for %s: %s", code, exc)
            return Failure.from_error(exc)

        change, percent_change = price_change(chart.price, chart.previous_close)
        return Success(
            StockWithPrice(
                symbol=code,
                name=chart.name or STOCK_NAMES.get(code, code),
                price=chart.price,
                change=change,
                percent_change=percent_change,
                exchange=chart.exchange or DEFAULT_EXCHANGE,
                currency=chart.currency,
            )
        )

    def search(self, query: str, limit: int = 10) -> Outcome[list[StockSearchResult]]:
        try:
            matches = self.fetcher.search_symbols(query, limit)
        except (MarketDataError, ValueError) as exc:
            logger.warning("Error searching stocks for %r: %s", query, exc)
            return Failure.from_error(exc)

        return Success(
            [StockSearchResult(symbol=match.symbol, name=match.name, exchange=match.exchange) for match in matches]
        )

    def fetch_many(
        self,
        symbols: tuple[str, ...] | list[str],
        *,
        wait: Callable[[float], bool] | None = None,
    ) -> list[StockWithPrice]:
        result = fetch_batch(
            list(symbols),
            self.quote,
            stagger_seconds=self.stagger_seconds,
            wait=wait,
            label="stock",
        )
        return list(result.values.values())

    def fetch_category(
        self,
        category: StockCategory,
        *,
        wait: Callable[[float], bool] | None = None,
    ) -> Outcome[list[StockWithPrice]]:
        stocks = self.fetch_many(CATEGORY_SYMBOLS[category], wait=wait)
        if not stocks:
            return Failure.from_error(
                EmptyResult("Could not fetch stock data. Please check your internet connection.")
            )

        if category is StockCategory.GAINERS:
            stocks.sort(key=lambda stock: stock.percent_change or 0.0, reverse=True)
        elif category is StockCategory.LOSERS:
            stocks.sort(key=lambda stock: stock.percent_change or 0.0)
        return Success(stocks)


__all__ = ["CATEGORY_SYMBOLS", "STOCK_NAMES", "QuoteFetcher", "StockRepository"]
