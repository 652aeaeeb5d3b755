from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import requests

from .errors import DecodeError, NotFound
from .http_client import JsonApiClient


@dataclass(frozen=True)
class ChartQuote:
    symbol: str
    price: float
    previous_close: float
    name: str | None
    exchange: str | None
    currency: str


@dataclass(frozen=True)
class SymbolMatch:
    symbol: str
    name: str
    exchange: str


class StockQuoteClient(JsonApiClient):
    """Chart and search endpoints of the Yahoo Finance style quote API."""

    service_name = "Stock quote API"

    def __init__(
        self,
        *,
        base_url: str = "https://query1.finance.yahoo.com",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(base_url=base_url, timeout=timeout, session=session)

    def get_quote(self, symbol: str, *, interval: str = "1d", range_: str = "1d") -> ChartQuote:
        if not symbol:
            msg = "symbol must be provided"
            raise ValueError(msg)

        payload = self._request(
            "GET",
            f"/v8/finance/chart/{symbol}",
            params={"interval": interval, "range": range_},
        )

        chart = payload.get("chart")
        if not isinstance(chart, dict):
            raise DecodeError("Chart payload missing 'chart' section", payload=payload)

        error = chart.get("error")
        if isinstance(error, dict) and error:
            message = error.get("description") or error.get("code") or f"No chart data for {symbol}"
            raise NotFound(str(message), payload=payload)

        results = chart.get("result")
        if not results:
            raise NotFound(f"No chart data returned for {symbol}", payload=payload)

        meta = results[0].get("meta") if isinstance(results[0], dict) else None
        if not isinstance(meta, dict):
            raise DecodeError("Chart result missing 'meta' section", payload=payload)

        return self._parse_meta(symbol, meta)

    def search_symbols(self, query: str, limit: int = 10) -> list[SymbolMatch]:
        if limit <= 0:
            msg = "limit must be > 0"
            raise ValueError(msg)

        payload = self._request("GET", "/v1/finance/search", params={"q": query, "quotesCount": limit})
        quotes = payload.get("quotes") or []
        if not isinstance(quotes, list):
            raise DecodeError("Search payload 'quotes' is not a list", payload=payload)

        matches: list[SymbolMatch] = []
        for entry in quotes:
            if not isinstance(entry, dict) or entry.get("quoteType") != "EQUITY":
                continue
            symbol = str(entry.get("symbol", ""))
            matches.append(
                SymbolMatch(
                    symbol=symbol,
                    name=entry.get("longname") or entry.get("shortname") or symbol,
                    exchange=str(entry.get("exchange", "")),
                )
            )
        return matches

    def _parse_meta(self, symbol: str, meta: dict[str, Any]) -> ChartQuote:
        try:
            price = self._to_float(meta.get("regularMarketPrice", 0.0))
            previous_close = self._to_float(meta.get("previousClose", 0.0))
        except (TypeError, ValueError) as exc:
            raise DecodeError(f"Chart meta for {symbol} contains non-numeric prices", payload=meta) from exc

        return ChartQuote(
            symbol=str(meta.get("symbol") or symbol).upper(),
            price=price,
            previous_close=previous_close,
            name=meta.get("longName") or meta.get("shortName"),
            exchange=meta.get("exchangeName"),
            currency=str(meta.get("currency") or "USD").upper(),
        )


__all__ = ["ChartQuote", "StockQuoteClient", "SymbolMatch"]
