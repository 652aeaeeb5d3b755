from __future__ import annotations

import logging
import threading
from typing import Callable, Iterator, Protocol

from domain.models import ChatMessage
from domain.outcome import Failure, Outcome, Success
from domain.snapshots import ChatSnapshot
from services.assistant_client import FOREX_TIPS_PROMPT, currency_pair_prompt, forex_question_prompt
from services.errors import MarketDataError

from .scheduling import Scheduler

logger = logging.getLogger(__name__)


class TextAssistant(Protocol):
    def ask(self, prompt: str) -> str: ...

    def stream(self, prompt: str) -> Iterator[str]: ...


class AssistantController:
    """Chat log around a stateless assistant; every question is an independent request."""

    def __init__(self, assistant: TextAssistant, scheduler: Scheduler) -> None:
        self._assistant = assistant
        self._scheduler = scheduler
        self._lock = threading.RLock()
        self._snapshot = ChatSnapshot()
        self._listeners: list[Callable[[ChatSnapshot], None]] = []

    @property
    def snapshot(self) -> ChatSnapshot:
        return self._snapshot

    def subscribe(self, listener: Callable[[ChatSnapshot], None]) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def send_message(self, text: str) -> bool:
        if not text.strip():
            return False
        self._append(ChatMessage(text=text, is_user=True, timestamp=self._scheduler.now()), is_loading=True)
        return self._answer(forex_question_prompt(text), prefix="", fallback_error="Unknown error occurred")

    def send_message_streaming(self, text: str) -> bool:
        if not text.strip():
            return False
        self._append(ChatMessage(text=text, is_user=True, timestamp=self._scheduler.now()), is_loading=True)

        reply = ""
        started = False
        for chunk in self._assistant.stream(forex_question_prompt(text)):
            reply += chunk
            message = ChatMessage(text=reply, is_user=False, timestamp=self._scheduler.now())
            with self._lock:
                messages = self._snapshot.messages[:-1] if started else self._snapshot.messages
                self._publish(self._snapshot.model_copy(update={"messages": (*messages, message)}))
            started = True

        with self._lock:
            self._publish(self._snapshot.model_copy(update={"is_loading": False}))
        return started

    def analyze_currency_pair(self, from_currency: str, to_currency: str, rate: float) -> bool:
        self._set(is_loading=True, error=None)
        return self._answer(
            currency_pair_prompt(from_currency, to_currency, rate),
            prefix=f"Analysis for {from_currency}/{to_currency}:\n\n",
            fallback_error="Failed to get analysis",
        )

    def forex_tips(self) -> bool:
        self._set(is_loading=True, error=None)
        return self._answer(FOREX_TIPS_PROMPT, prefix="Forex Tips:\n\n", fallback_error="Failed to get tips")

    def clear_error(self) -> None:
        self._set(error=None)

    def clear_messages(self) -> None:
        with self._lock:
            self._publish(ChatSnapshot())

    def _ask(self, prompt: str) -> Outcome[str]:
        try:
            return Success(self._assistant.ask(prompt))
        except MarketDataError as exc:
            logger.warning("Assistant request failed: %s", exc)
            return Failure.from_error(exc)

    def _answer(self, prompt: str, *, prefix: str, fallback_error: str) -> bool:
        outcome = self._ask(prompt)
        if isinstance(outcome, Failure):
            self._set(is_loading=False, error=str(outcome.error) or fallback_error)
            return False

        reply = ChatMessage(text=f"{prefix}{outcome.value}", is_user=False, timestamp=self._scheduler.now())
        self._append(reply, is_loading=False)
        return True

    def _append(self, message: ChatMessage, *, is_loading: bool) -> None:
        with self._lock:
            update: dict[str, object] = {"messages": (*self._snapshot.messages, message), "is_loading": is_loading}
            if message.is_user:
                update["error"] = None
            self._publish(self._snapshot.model_copy(update=update))

    def _set(self, **changes: object) -> None:
        with self._lock:
            self._publish(self._snapshot.model_copy(update=changes))

    def _publish(self, snapshot: ChatSnapshot) -> None:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Chat snapshot listener failed")


__all__ = ["AssistantController", "TextAssistant"]
