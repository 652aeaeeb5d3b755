from __future__ import annotations

import logging

from domain.history import DEFAULT_STOCK_CAPACITY, TrackedSeries, delta, fold
from domain.models import QuoteSample, StockCategory, StockWithPrice
from domain.outcome import Failure, Outcome
from domain.snapshots import StockListSnapshot
from services.stock_repository import StockRepository

from .refresh import RefreshController, RefreshSession
from .scheduling import Scheduler

logger = logging.getLogger(__name__)


class StockListController(RefreshController[StockListSnapshot, StockCategory, list[StockWithPrice]]):
    stream_name = "stock-list"

    def __init__(
        self,
        stocks: StockRepository,
        scheduler: Scheduler,
        *,
        refresh_interval: float = 60.0,
        history_capacity: int = DEFAULT_STOCK_CAPACITY,
        auto_refresh_enabled: bool = True,
    ) -> None:
        super().__init__(
            initial_snapshot=StockListSnapshot(auto_refresh_enabled=auto_refresh_enabled),
            scheduler=scheduler,
            refresh_interval=refresh_interval,
        )
        self._stocks = stocks
        self.history_capacity = history_capacity
        self._price_book: dict[str, TrackedSeries[QuoteSample]] = {}

    def select_category(self, category: StockCategory) -> None:
        if self.snapshot.category is category:
            return
        logger.debug("Stock category changed to %s", category)
        if self._update(category=category):
            self.request_refresh()

    def price_history(self, symbol: str) -> tuple[QuoteSample, ...]:
        return self.snapshot.price_history.get(symbol.upper(), ())

    def _prepare(self, snapshot: StockListSnapshot) -> StockCategory:
        return snapshot.category

    def _fetch(self, request: StockCategory, session: RefreshSession) -> Outcome[list[StockWithPrice]]:
        return self._stocks.fetch_category(request, wait=session.token.wait)

    def _apply_success(
        self,
        snapshot: StockListSnapshot,
        request: StockCategory,
        value: list[StockWithPrice],
        session: RefreshSession,
    ) -> StockListSnapshot:
        now = self._now()
        for stock in value:
            sample = QuoteSample(symbol=stock.symbol, timestamp=now, price=stock.price)
            self._price_book = fold(self._price_book, stock.symbol, sample, self.history_capacity)

        logger.info("Loaded %d stocks for %s", len(value), request)
        return snapshot.model_copy(
            update={
                "stocks": tuple(value),
                "price_history": {symbol: series.samples for symbol, series in self._price_book.items()},
                "price_changes": {symbol: delta(series) for symbol, series in self._price_book.items()},
                "error_message": None,
                "last_update": now,
            }
        )

    def _apply_failure(
        self,
        snapshot: StockListSnapshot,
        request: StockCategory,
        failure: Failure,
        session: RefreshSession,
    ) -> StockListSnapshot:
        # Previously loaded stocks stay on screen next to the error.
        return snapshot.model_copy(
            update={
                "error_message": f"Failed to load stocks: {failure.message or 'Unknown error'}",
                "last_update": self._now(),
            }
        )


__all__ = ["StockListController"]
