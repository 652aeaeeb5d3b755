from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Iterator

import requests

from .errors import DecodeError, MarketDataError
from .http_client import JsonApiClient

logger = logging.getLogger(__name__)

NO_RESPONSE_TEXT = "No response received"

FOREX_TIPS_PROMPT = (
    "Provide 5 important tips for someone interested in forex trading or currency exchange.\n"
    "Keep each tip concise and practical."
)


def forex_question_prompt(question: str) -> str:
    return (
        "You are a helpful forex and financial market assistant.\n"
        "Answer the following question about forex, currency exchange, or financial markets.\n"
        "Keep your answer concise, informative, and easy to understand.\n"
        "\n"
        f"Question: {question}"
    )


def currency_pair_prompt(from_currency: str, to_currency: str, current_rate: float) -> str:
    return (
        f"Provide a brief analysis of the {from_currency}/{to_currency} currency pair.\n"
        f"Current exchange rate: 1 {from_currency} = {current_rate} {to_currency}\n"
        "\n"
        "Include:\n"
        "1. Brief overview of factors affecting this pair\n"
        "2. Recent trends (general market knowledge)\n"
        "3. Key economic indicators to watch\n"
        "\n"
        "Keep it concise (2-3 short paragraphs)."
    )


@dataclass(frozen=True)
class GenerationConfig:
    temperature: float = 0.7
    top_k: int = 40
    top_p: float = 0.95
    max_output_tokens: int = 1024

    def as_payload(self) -> dict[str, Any]:
        return {
            "temperature": self.temperature,
            "topK": self.top_k,
            "topP": self.top_p,
            "maxOutputTokens": self.max_output_tokens,
        }


class AssistantClient(JsonApiClient):
    """Stateless wrapper around a generative-language ``generateContent`` endpoint.

    Each call is an independent request; no conversation memory is kept here.
    """

    service_name = "Assistant API"

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "gemini-1.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        generation_config: GenerationConfig | None = None,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        if not api_key:
            msg = "api_key must be provided"
            raise ValueError(msg)

        super().__init__(base_url=base_url, timeout=timeout, session=session)
        self.api_key = api_key
        self.model = model
        self.generation_config = generation_config or GenerationConfig()

    def ask(self, prompt: str) -> str:
        payload = self._request(
            "POST",
            f"/models/{self.model}:generateContent",
            params={"key": self.api_key},
            json=self._body(prompt),
        )
        text = self._extract_text(payload)
        return text if text else NO_RESPONSE_TEXT

    def stream(self, prompt: str) -> Iterator[str]:
        """Yield text chunks as they arrive.

        A failure at any point ends the sequence with one ``"Error: ..."`` chunk
        rather than raising, so callers can render the stream unconditionally.
        """
        try:
            response = self._send(
                "POST",
                f"/models/{self.model}:streamGenerateContent",
                params={"key": self.api_key, "alt": "sse"},
                json=self._body(prompt),
                stream=True,
            )
            try:
                for line in response.iter_lines(decode_unicode=True):
                    if not line or not line.startswith("data:"):
                        continue
                    chunk = self._extract_text(self._decode_event(line[len("data:") :].strip()))
                    if chunk:
                        yield chunk
            finally:
                response.close()
        except (MarketDataError, requests.RequestException) as exc:
            logger.warning("Assistant stream failed: %s", exc)
            yield f"Error: {exc}"

    def _body(self, prompt: str) -> dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": self.generation_config.as_payload(),
        }

    @staticmethod
    def _decode_event(data: str) -> dict[str, Any]:
        try:
            event = json.loads(data)
        except ValueError as exc:
            raise DecodeError("Assistant stream returned invalid JSON", payload=data) from exc
        if not isinstance(event, dict):
            raise DecodeError("Assistant stream returned unexpected payload type", payload=event)
        return event

    @staticmethod
    def _extract_text(payload: dict[str, Any]) -> str:
        candidates = payload.get("candidates") or []
        if not isinstance(candidates, list) or not candidates:
            return ""
        content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            return ""
        return "".join(str(part.get("text", "")) for part in parts if isinstance(part, dict))


__all__ = [
    "FOREX_TIPS_PROMPT",
    "NO_RESPONSE_TEXT",
    "AssistantClient",
    "GenerationConfig",
    "currency_pair_prompt",
    "forex_question_prompt",
]
