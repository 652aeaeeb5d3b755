from __future__ import annotations

from typing import Any


class MarketDataError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None, payload: Any | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class NetworkError(MarketDataError):
    """Transport or connectivity failure, including timeouts and non-404 HTTP errors."""


class DecodeError(MarketDataError):
    """Response body was not JSON or did not have the expected shape."""


class NotFound(MarketDataError):
    """Unknown symbol or currency pair."""


class EmptyResult(MarketDataError):
    """A batch fetch returned zero usable entries."""


__all__ = ["DecodeError", "EmptyResult", "MarketDataError", "NetworkError", "NotFound"]
