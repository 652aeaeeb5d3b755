from __future__ import annotations

from typing import Any

import requests
from requests import Response

from .errors import DecodeError, NetworkError, NotFound


class JsonApiClient:
    """Shared request/decode path for the market-data and assistant clients.

    The session is injected by the caller so that clients can share one
    connection pool without any process-wide state. Every call carries a
    timeout; a hung transport surfaces as :class:`NetworkError`.
    """

    service_name = "API"

    def __init__(
        self,
        *,
        base_url: str,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        if not base_url:
            msg = "base_url must be provided"
            raise ValueError(msg)

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        response = self._send(method, path, params=params, json=json)

        try:
            payload_raw = response.json()
        except ValueError as exc:
            raise DecodeError(f"{self.service_name} returned invalid JSON", payload=response.text) from exc

        if not isinstance(payload_raw, dict):
            raise DecodeError(f"{self.service_name} returned unexpected payload type", payload=payload_raw)

        return payload_raw

    def _send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        stream: bool = False,
    ) -> Response:
        url = f"{self.base_url}{path}"
        kwargs: dict[str, Any] = {"params": params, "timeout": self.timeout}
        if json is not None:
            kwargs["json"] = json
        if stream:
            kwargs["stream"] = True

        try:
            response = self._session.request(method, url, **kwargs)
            response.raise_for_status()
        except requests.HTTPError as exc:
            resp = exc.response
            status_code = getattr(resp, "status_code", None)
            message, payload = self._extract_error(resp)
            if status_code == 404:
                raise NotFound(message, status_code=status_code, payload=payload) from exc
            raise NetworkError(message, status_code=status_code, payload=payload) from exc
        except requests.Timeout as exc:
            raise NetworkError(f"{self.service_name} request timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            status_code = getattr(getattr(exc, "response", None), "status_code", None)
            raise NetworkError(f"{self.service_name} request failed", status_code=status_code) from exc

        return response

    def _extract_error(self, response: Response | None) -> tuple[str, Any | None]:
        message = f"{self.service_name} request failed"
        payload: Any | None = None
        if response is None:
            return message, payload

        try:
            payload = response.json()
            if isinstance(payload, dict):
                error = payload.get("error")
                if isinstance(error, dict):
                    message = error.get("message") or error.get("description") or message
                elif isinstance(error, str) and error:
                    message = error
        except ValueError:
            payload = response.text
        return message, payload

    @staticmethod
    def _to_float(value: Any) -> float:
        if isinstance(value, bool):
            raise TypeError("boolean is not a numeric value")
        return float(value)


__all__ = ["JsonApiClient"]
