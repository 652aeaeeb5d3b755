from __future__ import annotations

from typing import cast
from unittest.mock import Mock

import pytest
import requests

from domain.models import StockCategory
from domain.outcome import Failure, Success
from services.errors import EmptyResult, NetworkError, NotFound
from services.stock_quote_client import StockQuoteClient, SymbolMatch
from services.stock_repository import CATEGORY_SYMBOLS, StockRepository
from tests.helpers.stubs import StubQuoteFetcher, chart_quote


def test_quote_computes_change_and_defaults() -> None:
    repository = StockRepository(StubQuoteFetcher({"AAPL": chart_quote("AAPL", 110.0, 100.0)}), stagger_seconds=0)

    outcome = repository.quote("aapl")

    assert isinstance(outcome, Success)
    stock = outcome.value
    assert stock.symbol == "AAPL"
    assert stock.name == "Apple Inc."
    assert stock.change == pytest.approx(10.0)
    assert stock.percent_change == pytest.approx(10.0)
    assert stock.exchange == "NASDAQ"


def test_quote_prefers_upstream_name_and_exchange() -> None:
    fetcher = StubQuoteFetcher({"SAP": chart_quote("SAP", 50.0, 0.0, name="SAP SE", exchange="XETRA", currency="EUR")})
    repository = StockRepository(fetcher, stagger_seconds=0)

    outcome = repository.quote("SAP")

    assert isinstance(outcome, Success)
    assert outcome.value.name == "SAP SE"
    assert outcome.value.exchange == "XETRA"
    assert outcome.value.currency == "EUR"
    assert outcome.value.percent_change == 0.0


def test_quote_failure() -> None:
    repository = StockRepository(StubQuoteFetcher({"ZZZ": NotFound("unknown")}), stagger_seconds=0)

    outcome = repository.quote("ZZZ")

    assert isinstance(outcome, Failure)
    assert isinstance(outcome.error, NotFound)


def test_search_maps_matches() -> None:
    fetcher = StubQuoteFetcher({}, matches=[SymbolMatch(symbol="TSLA", name="Tesla, Inc.", exchange="NMS")])
    repository = StockRepository(fetcher, stagger_seconds=0)

    outcome = repository.search("tes")

    assert isinstance(outcome, Success)
    assert [result.symbol for result in outcome.value] == ["TSLA"]
    assert fetcher.searches == ["tes"]


def test_fetch_many_skips_failed_symbols() -> None:
    fetcher = StubQuoteFetcher(
        {
            "AAPL": chart_quote("AAPL", 10.0, 10.0),
            "TSLA": NetworkError("timeout"),
            "MSFT": chart_quote("MSFT", 20.0, 10.0),
        }
    )
    repository = StockRepository(fetcher, stagger_seconds=0)

    stocks = repository.fetch_many(["AAPL", "TSLA", "MSFT"])

    assert [stock.symbol for stock in stocks] == ["AAPL", "MSFT"]


def test_gainers_sorted_descending() -> None:
    prices = {"NVDA": (105.0, 100.0), "AMD": (130.0, 100.0), "TSLA": (90.0, 100.0), "META": (101.0, 100.0)}
    quotes: dict[str, object] = {symbol: chart_quote(symbol, *pair) for symbol, pair in prices.items()}
    quotes["NFLX"] = NetworkError("offline")
    repository = StockRepository(StubQuoteFetcher(quotes), stagger_seconds=0)

    outcome = repository.fetch_category(StockCategory.GAINERS)

    assert isinstance(outcome, Success)
    assert [stock.symbol for stock in outcome.value] == ["AMD", "NVDA", "META", "TSLA"]


def test_losers_sorted_ascending() -> None:
    changes = {"F": -1.0, "GM": -5.0, "T": 2.0, "VZ": -3.0, "XOM": 0.0}
    quotes = {symbol: chart_quote(symbol, 100.0 + change, 100.0) for symbol, change in changes.items()}
    repository = StockRepository(StubQuoteFetcher(quotes), stagger_seconds=0)

    outcome = repository.fetch_category(StockCategory.LOSERS)

    assert isinstance(outcome, Success)
    assert [stock.symbol for stock in outcome.value] == ["GM", "VZ", "F", "XOM", "T"]


def test_most_active_keeps_request_order() -> None:
    symbols = CATEGORY_SYMBOLS[StockCategory.MOST_ACTIVE]
    quotes = {symbol: chart_quote(symbol, 100.0 + index, 100.0) for index, symbol in enumerate(symbols)}
    repository = StockRepository(StubQuoteFetcher(quotes), stagger_seconds=0)

    outcome = repository.fetch_category(StockCategory.MOST_ACTIVE)

    assert isinstance(outcome, Success)
    assert tuple(stock.symbol for stock in outcome.value) == symbols


def test_category_with_no_quotes_is_empty_result() -> None:
    quotes = {symbol: NetworkError("offline") for symbol in CATEGORY_SYMBOLS[StockCategory.LOSERS]}
    repository = StockRepository(StubQuoteFetcher(quotes), stagger_seconds=0)

    outcome = repository.fetch_category(StockCategory.LOSERS)

    assert isinstance(outcome, Failure)
    assert isinstance(outcome.error, EmptyResult)
    assert "internet connection" in outcome.message


def test_empty_symbol_is_a_failure_not_an_exception() -> None:
    session = Mock()
    repository = StockRepository(StockQuoteClient(session=cast(requests.Session, session)), stagger_seconds=0)

    outcome = repository.quote("")

    assert isinstance(outcome, Failure)
    assert isinstance(outcome.error, ValueError)
    assert isinstance(repository.search("tsla", limit=0), Failure)
    session.request.assert_not_called()
