from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import requests

from .errors import DecodeError
from .http_client import JsonApiClient


@dataclass(frozen=True)
class LatestRates:
    base: str
    date: str
    rates: dict[str, float]


class ExchangeRateClient(JsonApiClient):
    """Latest-rates endpoint: ``GET /latest/{base}`` -> ``{base, date, rates}``.

    The upstream mapping covers every other currency for the requested base but
    never contains a self-entry for the base. No retries happen here.
    """

    service_name = "Exchange rate API"

    def __init__(
        self,
        *,
        base_url: str = "https://api.exchangerate-api.com/v4",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(base_url=base_url, timeout=timeout, session=session)

    def get_latest_rates(self, base: str) -> LatestRates:
        if not base:
            msg = "base currency must be provided"
            raise ValueError(msg)

        payload = self._request("GET", f"/latest/{base.upper()}")

        base_currency = payload.get("base")
        rates_raw = payload.get("rates")
        if base_currency is None or not isinstance(rates_raw, dict):
            raise DecodeError("Exchange rate payload missing required fields", payload=payload)

        parsed_rates: dict[str, float] = {}
        for code_raw, rate in rates_raw.items():
            parsed_rates[str(code_raw).upper()] = self._parse_rate(rate, payload=payload)

        return LatestRates(
            base=str(base_currency).upper(),
            date=str(payload.get("date", "")),
            rates=parsed_rates,
        )

    def fetch_rates(self, base: str) -> dict[str, float]:
        return self.get_latest_rates(base).rates

    def _parse_rate(self, value: Any, *, payload: dict[str, Any]) -> float:
        try:
            return self._to_float(value)
        except (TypeError, ValueError) as exc:
            raise DecodeError("Exchange rate payload contains non-numeric rate", payload=payload) from exc


__all__ = ["ExchangeRateClient", "LatestRates"]
