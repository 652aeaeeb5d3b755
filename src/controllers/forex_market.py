from __future__ import annotations

import logging
from typing import Iterable

from domain.history import DEFAULT_RATE_CAPACITY, TrackedSeries, delta, fold
from domain.models import ConversionResult, CurrencyPair, ForexPair, RateSample
from domain.outcome import Failure, Outcome, Success
from domain.snapshots import ForexMarketSnapshot
from services.batch import fetch_batch
from services.currency_repository import CurrencyRepository
from services.errors import EmptyResult

from .refresh import RefreshController, RefreshSession
from .scheduling import Scheduler

logger = logging.getLogger(__name__)

NO_PAIRS_ERROR = "Unable to load any forex pairs. Check your internet connection."

POPULAR_PAIRS: tuple[CurrencyPair, ...] = tuple(
    CurrencyPair(from_currency=from_code, to_currency=to_code)
    for from_code, to_code in (
        ("USD", "EUR"),
        ("USD", "GBP"),
        ("USD", "JPY"),
        ("USD", "CHF"),
        ("EUR", "GBP"),
        ("EUR", "JPY"),
        ("GBP", "USD"),
        ("AUD", "USD"),
        ("USD", "CAD"),
        ("NZD", "USD"),
    )
)

PairRates = dict[CurrencyPair, ConversionResult]


class ForexMarketController(RefreshController[ForexMarketSnapshot, tuple[CurrencyPair, ...], PairRates]):
    """Dashboard of tracked currency pairs refreshed as one partial-failure batch."""

    stream_name = "forex-market"

    def __init__(
        self,
        currencies: CurrencyRepository,
        scheduler: Scheduler,
        *,
        pairs: Iterable[CurrencyPair] = POPULAR_PAIRS,
        refresh_interval: float = 3.0,
        stagger_seconds: float = 0.3,
        history_capacity: int = DEFAULT_RATE_CAPACITY,
        auto_refresh_enabled: bool = True,
    ) -> None:
        super().__init__(
            initial_snapshot=ForexMarketSnapshot(auto_refresh_enabled=auto_refresh_enabled),
            scheduler=scheduler,
            refresh_interval=refresh_interval,
        )
        self._currencies = currencies
        self.pairs = tuple(pairs)
        if not self.pairs:
            msg = "at least one currency pair must be tracked"
            raise ValueError(msg)
        self.stagger_seconds = stagger_seconds
        self.history_capacity = history_capacity
        self._rate_book: dict[str, TrackedSeries[RateSample]] = {}

    def _prepare(self, snapshot: ForexMarketSnapshot) -> tuple[CurrencyPair, ...]:
        return self.pairs

    def _fetch(self, request: tuple[CurrencyPair, ...], session: RefreshSession) -> Outcome[PairRates]:
        result = fetch_batch(
            request,
            lambda pair: self._currencies.convert(1.0, pair.from_currency, pair.to_currency),
            stagger_seconds=self.stagger_seconds,
            wait=session.token.wait,
            label="forex pair",
        )
        if not result.succeeded:
            return Failure.from_error(EmptyResult(NO_PAIRS_ERROR))
        return Success(result.values)

    def _apply_success(
        self,
        snapshot: ForexMarketSnapshot,
        request: tuple[CurrencyPair, ...],
        value: PairRates,
        session: RefreshSession,
    ) -> ForexMarketSnapshot:
        now = self._now()
        rows: list[ForexPair] = []
        for pair in request:
            conversion = value.get(pair)
            if conversion is None:
                continue
            self._rate_book = fold(
                self._rate_book, pair.key, RateSample(timestamp=now, rate=conversion.rate), self.history_capacity
            )
            series = self._rate_book[pair.key]
            rows.append(
                ForexPair(
                    from_currency=pair.from_currency,
                    to_currency=pair.to_currency,
                    current_rate=conversion.rate,
                    rate_change=delta(series),
                    rate_history=series.samples,
                )
            )

        return snapshot.model_copy(update={"forex_pairs": tuple(rows), "error_message": None, "last_update": now})

    def _apply_failure(
        self,
        snapshot: ForexMarketSnapshot,
        request: tuple[CurrencyPair, ...],
        failure: Failure,
        session: RefreshSession,
    ) -> ForexMarketSnapshot:
        if isinstance(failure.error, EmptyResult):
            message = failure.message
        else:
            message = f"Failed to load forex data: {failure.message}"
        return snapshot.model_copy(update={"error_message": message})


__all__ = ["NO_PAIRS_ERROR", "POPULAR_PAIRS", "ForexMarketController"]
