from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass

from domain.conversion import is_amount_text, parse_amount
from domain.history import DEFAULT_RATE_CAPACITY, TrackedSeries, delta, fold
from domain.models import ConversionResult, CurrencyItem, RateSample, StockSearchResult, StockWithPrice, pair_key
from domain.outcome import Failure, Outcome, Success
from domain.snapshots import UNAVAILABLE, ConversionSnapshot
from services.currency_repository import CurrencyRepository
from services.stock_repository import StockRepository
from utils.formatting import amount_input_text, format_amount, rate_text

from .refresh import RefreshController, RefreshSession, RefreshTrigger
from .scheduling import Scheduler

logger = logging.getLogger(__name__)

CONVERSION_ERROR = "Couldn't update rates"
CURRENCIES_ERROR = "Failed to load currencies"
STOCK_QUOTE_ERROR = "Failed to fetch stock data"


@dataclass(frozen=True)
class ConversionRequest:
    amount: float
    shares: float | None
    from_currency: str
    to_currency: str

    @property
    def key(self) -> str:
        return pair_key(self.from_currency, self.to_currency)


class ConversionController(RefreshController[ConversionSnapshot, ConversionRequest, ConversionResult]):
    """Main conversion stream: amount/share inputs, currency selection and stock lookup.

    Input handlers (``on_*``, ``select_*_currency``, ``swap_currencies``) never
    block; they debounce or schedule work on the scheduler. ``load_currencies``,
    ``search_stocks`` and ``select_stock`` perform their request in the calling
    thread.
    """

    stream_name = "conversion"

    def __init__(
        self,
        currencies: CurrencyRepository,
        stocks: StockRepository,
        scheduler: Scheduler,
        *,
        refresh_interval: float = 3.0,
        amount_debounce: float = 0.3,
        symbol_debounce: float = 0.5,
        history_capacity: int = DEFAULT_RATE_CAPACITY,
        auto_refresh_enabled: bool = True,
    ) -> None:
        super().__init__(
            initial_snapshot=ConversionSnapshot(auto_refresh_enabled=auto_refresh_enabled),
            scheduler=scheduler,
            refresh_interval=refresh_interval,
        )
        self._currencies = currencies
        self._stocks = stocks
        self.history_capacity = history_capacity
        self._rate_book: dict[str, TrackedSeries[RateSample]] = {}
        self._amount_debouncer = self._new_debouncer(amount_debounce)
        self._symbol_debouncer = self._new_debouncer(symbol_debounce)
        self._search_ids = itertools.count(1)
        self._latest_search_id = 0

    # ------------------------------------------------------------------
    # Currency list
    # ------------------------------------------------------------------
    def load_currencies(self) -> bool:
        outcome = self._currencies.list_currencies()
        if isinstance(outcome, Failure):
            self._update(error_message=CURRENCIES_ERROR)
            return False

        items = tuple(CurrencyItem(code=code, name=name) for code, name in sorted(outcome.value.items()))
        return self._update(available_currencies=items)

    # ------------------------------------------------------------------
    # Amount and share inputs
    # ------------------------------------------------------------------
    def on_amount_changed(self, text: str) -> bool:
        """Accept a typed amount; returns ``False`` when the text is rejected."""
        if not is_amount_text(text):
            return False
        if not self._update(amount=text):
            return False

        if parse_amount(text) is not None:
            self._amount_debouncer.submit(self.refresh)
        else:
            # Nothing to convert; results still in flight belong to the previous amount.
            self._amount_debouncer.cancel()
            self._invalidate_in_flight()
            self._update(**self._cleared_result_fields(), is_loading=False, error_message=None)
        return True

    def on_shares_changed(self, text: str) -> bool:
        if not is_amount_text(text):
            return False
        if not self._update(number_of_shares=text):
            return False

        if self.snapshot.amount and text and text != ".":
            self._amount_debouncer.submit(self.refresh)
        elif not text:
            self._update(total_cost_in_from="", total_cost_in_to="")
        return True

    # ------------------------------------------------------------------
    # Currency selection
    # ------------------------------------------------------------------
    def select_from_currency(self, currency: CurrencyItem) -> None:
        self._select_pair(currency, self.snapshot.to_currency)

    def select_to_currency(self, currency: CurrencyItem) -> None:
        self._select_pair(self.snapshot.from_currency, currency)

    def swap_currencies(self) -> None:
        snapshot = self.snapshot
        self._select_pair(snapshot.to_currency, snapshot.from_currency)

    def rate_history(self, from_currency: str, to_currency: str) -> tuple[RateSample, ...]:
        series = self._rate_book.get(pair_key(from_currency, to_currency))
        return series.samples if series is not None else ()

    def _select_pair(self, from_currency: CurrencyItem, to_currency: CurrencyItem) -> None:
        series = self._rate_book.get(pair_key(from_currency.code, to_currency.code))
        latest = series.latest if series is not None else None
        updated = self._update(
            from_currency=from_currency,
            to_currency=to_currency,
            rate_history=series.samples if series is not None else (),
            current_rate=latest.rate if latest is not None else 0.0,
            rate_change=delta(series) if series is not None else None,
        )
        if updated and self.snapshot.amount:
            self.request_refresh()

    # ------------------------------------------------------------------
    # Stock lookup
    # ------------------------------------------------------------------
    def on_stock_symbol_changed(self, text: str) -> None:
        symbol = text.upper()
        if not self._update(stock_symbol=symbol):
            return

        if symbol:
            self._symbol_debouncer.submit(lambda: self.search_stocks(symbol))
        else:
            self._symbol_debouncer.cancel()
            self._update(stock_search_results=(), show_stock_search=False)

    def search_stocks(self, query: str) -> bool:
        with self._lock:
            search_id = next(self._search_ids)
            self._latest_search_id = search_id

        outcome = self._stocks.search(query)

        with self._lock:
            if search_id != self._latest_search_id:
                logger.debug("Discarding stale stock search %r", query)
                return False
            if isinstance(outcome, Success):
                results = tuple(outcome.value)
                return self._update(stock_search_results=results, show_stock_search=bool(results))
            return self._update(stock_search_results=(), show_stock_search=False)

    def hide_stock_search(self) -> None:
        self._update(show_stock_search=False)

    def select_stock(self, stock: StockSearchResult) -> bool:
        if not self._update(
            stock_symbol=stock.symbol,
            show_stock_search=False,
            is_loading_stock=True,
            stock_error_message=None,
        ):
            return False

        outcome = self._stocks.quote(stock.symbol)
        if isinstance(outcome, Failure):
            self._update(is_loading_stock=False, stock_error_message=STOCK_QUOTE_ERROR)
            return False

        quote = outcome.value
        self._update(
            stock_name=quote.name,
            amount=amount_input_text(quote.price),
            from_currency=self._currency_or_current(quote.currency),
            is_loading_stock=False,
            stock_error_message=None,
        )
        if self.snapshot.number_of_shares:
            self.refresh()
        return True

    def apply_stock(self, stock: StockWithPrice) -> None:
        updated = self._update(
            stock_symbol=stock.symbol,
            stock_name=stock.name,
            amount=amount_input_text(stock.price),
            from_currency=self._currency_or_current(stock.currency),
        )
        if updated and self.snapshot.number_of_shares:
            self.request_refresh()

    def _currency_or_current(self, code: str) -> CurrencyItem:
        snapshot = self.snapshot
        for item in snapshot.available_currencies:
            if item.code == code:
                return item
        return snapshot.from_currency

    # ------------------------------------------------------------------
    # Refresh hooks
    # ------------------------------------------------------------------
    def _prepare(self, snapshot: ConversionSnapshot) -> ConversionRequest | None:
        amount = parse_amount(snapshot.amount)
        if amount is None:
            return None
        return ConversionRequest(
            amount=amount,
            shares=parse_amount(snapshot.number_of_shares),
            from_currency=snapshot.from_currency.code,
            to_currency=snapshot.to_currency.code,
        )

    def _fetch(self, request: ConversionRequest, session: RefreshSession) -> Outcome[ConversionResult]:
        return self._currencies.convert(request.amount, request.from_currency, request.to_currency)

    def _on_start(self, snapshot: ConversionSnapshot, session: RefreshSession) -> ConversionSnapshot:
        return snapshot.model_copy(update={"is_loading": session.trigger is RefreshTrigger.USER, "error_message": None})

    def _apply_success(
        self,
        snapshot: ConversionSnapshot,
        request: ConversionRequest,
        value: ConversionResult,
        session: RefreshSession,
    ) -> ConversionSnapshot:
        now = self._now()
        sample = RateSample(timestamp=now, rate=value.rate)
        self._rate_book = fold(self._rate_book, request.key, sample, self.history_capacity)
        series = self._rate_book[request.key]

        if self._prepare(snapshot) != request:
            # Pair, amount or share count changed while this request was in flight;
            # keep the sample, not the display.
            return snapshot

        total_in_from = format_amount(request.amount * request.shares) if request.shares else ""
        total_in_to = format_amount(value.converted_amount * request.shares) if request.shares else ""
        return snapshot.model_copy(
            update={
                "conversion": value,
                "converted_amount_text": format_amount(value.converted_amount),
                "rate_text": rate_text(value.from_currency, value.rate, value.to_currency),
                "inverse_rate_text": rate_text(value.to_currency, value.inverse_rate, value.from_currency),
                "total_cost_in_from": total_in_from,
                "total_cost_in_to": total_in_to,
                "current_rate": value.rate,
                "rate_change": delta(series),
                "rate_history": series.samples,
                "error_message": None,
                "last_update": now,
            }
        )

    def _apply_failure(
        self,
        snapshot: ConversionSnapshot,
        request: ConversionRequest,
        failure: Failure,
        session: RefreshSession,
    ) -> ConversionSnapshot:
        fields = self._cleared_result_fields()
        fields["converted_amount_text"] = UNAVAILABLE
        return snapshot.model_copy(update={**fields, "error_message": CONVERSION_ERROR})

    @staticmethod
    def _cleared_result_fields() -> dict[str, object]:
        return {
            "conversion": None,
            "converted_amount_text": "",
            "rate_text": "",
            "inverse_rate_text": "",
            "total_cost_in_from": "",
            "total_cost_in_to": "",
        }


__all__ = ["CONVERSION_ERROR", "ConversionController", "ConversionRequest"]
