from __future__ import annotations

from typing import Any, cast
from unittest.mock import Mock

import pytest
import requests

from services.errors import DecodeError, NotFound
from services.stock_quote_client import StockQuoteClient


def _session_returning(payload: Any) -> Mock:
    response = Mock()
    response.json.return_value = payload
    session = Mock()
    session.request.return_value = response
    return session


def test_get_quote_reads_chart_meta() -> None:
    session = _session_returning(
        {
            "chart": {
                "result": [
                    {
                        "meta": {
                            "symbol": "AAPL",
                            "regularMarketPrice": 189.5,
                            "previousClose": 187.0,
                            "longName": "Apple Inc.",
                            "exchangeName": "NMS",
                            "currency": "USD",
                        }
                    }
                ],
                "error": None,
            }
        }
    )
    client = StockQuoteClient(base_url="https://quotes.example.com", session=cast(requests.Session, session))

    quote = client.get_quote("AAPL")

    assert quote.symbol == "AAPL"
    assert quote.price == 189.5
    assert quote.previous_close == 187.0
    assert quote.name == "Apple Inc."
    assert quote.exchange == "NMS"
    session.request.assert_called_once_with(
        "GET",
        "https://quotes.example.com/v8/finance/chart/AAPL",
        params={"interval": "1d", "range": "1d"},
        timeout=10.0,
    )


def test_get_quote_defaults_missing_fields() -> None:
    session = _session_returning({"chart": {"result": [{"meta": {"regularMarketPrice": 10}}]}})
    client = StockQuoteClient(session=cast(requests.Session, session))

    quote = client.get_quote("f")

    assert quote.symbol == "F"
    assert quote.previous_close == 0.0
    assert quote.name is None
    assert quote.currency == "USD"


def test_chart_error_maps_to_not_found() -> None:
    session = _session_returning(
        {
            "chart": {
                "result": None,
                "error": {"code": "Not Found", "description": "No data found, symbol may be delisted"},
            }
        }
    )
    client = StockQuoteClient(session=cast(requests.Session, session))

    with pytest.raises(NotFound, match="delisted"):
        client.get_quote("ZZZZ")


def test_empty_result_maps_to_not_found() -> None:
    client = StockQuoteClient(session=cast(requests.Session, _session_returning({"chart": {"result": []}})))

    with pytest.raises(NotFound):
        client.get_quote("ZZZZ")


@pytest.mark.parametrize(
    "payload",
    [
        {"quoteResponse": {}},
        {"chart": {"result": [{"indicators": {}}]}},
        {"chart": {"result": [{"meta": {"regularMarketPrice": "n/a"}}]}},
    ],
)
def test_malformed_chart_raises_decode_error(payload: dict[str, Any]) -> None:
    client = StockQuoteClient(session=cast(requests.Session, _session_returning(payload)))

    with pytest.raises(DecodeError):
        client.get_quote("AAPL")


def test_search_keeps_equities_only() -> None:
    session = _session_returning(
        {
            "quotes": [
                {"symbol": "TSLA", "longname": "Tesla, Inc.", "exchange": "NMS", "quoteType": "EQUITY"},
                {"symbol": "TSLA240119C", "exchange": "OPR", "quoteType": "OPTION"},
                {"symbol": "TL0.DE", "shortname": "TESLA INC", "exchange": "GER", "quoteType": "EQUITY"},
                {"symbol": "TSLQ", "exchange": "NGM", "quoteType": "EQUITY"},
            ]
        }
    )
    client = StockQuoteClient(session=cast(requests.Session, session))

    matches = client.search_symbols("tesla", limit=5)

    assert [(match.symbol, match.name) for match in matches] == [
        ("TSLA", "Tesla, Inc."),
        ("TL0.DE", "TESLA INC"),
        ("TSLQ", "TSLQ"),
    ]
    _, kwargs = session.request.call_args
    assert kwargs["params"] == {"q": "tesla", "quotesCount": 5}


def test_search_without_quotes_is_empty() -> None:
    client = StockQuoteClient(session=cast(requests.Session, _session_returning({"count": 0})))

    assert client.search_symbols("nothing") == []
