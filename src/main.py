from __future__ import annotations

import argparse
import logging
import threading
from typing import Sequence

import requests

from config import AppSettings, config
from controllers.assistant import AssistantController
from controllers.conversion import ConversionController
from controllers.forex_market import ForexMarketController
from controllers.scheduling import Scheduler, ThreadingScheduler
from controllers.stock_list import StockListController
from domain.models import CurrencyItem, StockCategory
from domain.snapshots import ConversionSnapshot, ForexMarketSnapshot, StockListSnapshot
from services.assistant_client import AssistantClient
from services.currency_repository import CurrencyRepository, currency_name
from services.exchange_rate_client import ExchangeRateClient
from services.stock_quote_client import StockQuoteClient
from services.stock_repository import StockRepository
from utils.formatting import format_change, format_percent, format_rate

logger = logging.getLogger(__name__)


def build_currency_repository(settings: AppSettings, session: requests.Session) -> CurrencyRepository:
    client = ExchangeRateClient(
        base_url=settings.exchange_rate_base_url,
        timeout=settings.http_timeout_seconds,
        session=session,
    )
    return CurrencyRepository(client)


def build_stock_repository(settings: AppSettings, session: requests.Session) -> StockRepository:
    client = StockQuoteClient(
        base_url=settings.stock_quote_base_url,
        timeout=settings.http_timeout_seconds,
        session=session,
    )
    return StockRepository(client, stagger_seconds=settings.stagger_seconds)


def build_conversion_controller(
    settings: AppSettings, session: requests.Session, scheduler: Scheduler
) -> ConversionController:
    return ConversionController(
        build_currency_repository(settings, session),
        build_stock_repository(settings, session),
        scheduler,
        refresh_interval=settings.conversion_refresh_seconds,
        amount_debounce=settings.amount_debounce_seconds,
        symbol_debounce=settings.symbol_debounce_seconds,
        history_capacity=settings.rate_history_capacity,
    )


def build_forex_controller(
    settings: AppSettings, session: requests.Session, scheduler: Scheduler
) -> ForexMarketController:
    return ForexMarketController(
        build_currency_repository(settings, session),
        scheduler,
        refresh_interval=settings.forex_refresh_seconds,
        stagger_seconds=settings.stagger_seconds,
        history_capacity=settings.rate_history_capacity,
    )


def build_stock_list_controller(
    settings: AppSettings, session: requests.Session, scheduler: Scheduler
) -> StockListController:
    return StockListController(
        build_stock_repository(settings, session),
        scheduler,
        refresh_interval=settings.stock_refresh_seconds,
        history_capacity=settings.stock_history_capacity,
    )


def build_assistant_controller(
    settings: AppSettings, session: requests.Session, scheduler: Scheduler
) -> AssistantController:
    if not settings.assistant_api_key:
        msg = "ASSISTANT_API_KEY must be set to use the assistant"
        raise SystemExit(msg)
    client = AssistantClient(
        api_key=settings.assistant_api_key,
        model=settings.assistant_model,
        base_url=settings.assistant_base_url,
        timeout=settings.http_timeout_seconds,
        session=session,
    )
    return AssistantController(client, scheduler)


def print_conversion(snapshot: ConversionSnapshot) -> None:
    if snapshot.is_loading:
        return
    if snapshot.error_message:
        print(f"[{snapshot.from_currency.code}->{snapshot.to_currency.code}] {snapshot.error_message}")
        return
    if snapshot.conversion is None:
        return
    print(
        f"{snapshot.amount} {snapshot.from_currency.code} = {snapshot.converted_amount_text} "
        f"{snapshot.to_currency.code}  ({snapshot.rate_text}; {snapshot.inverse_rate_text}; "
        f"change {format_change(snapshot.rate_change)})"
    )


def print_forex(snapshot: ForexMarketSnapshot) -> None:
    if snapshot.is_loading:
        return
    if snapshot.error_message:
        print(snapshot.error_message)
    for pair in snapshot.forex_pairs:
        print(
            f"  {pair.from_currency}/{pair.to_currency}  {format_rate(pair.current_rate)}  "
            f"{format_change(pair.rate_change)}  ({len(pair.rate_history)} samples)"
        )
    print()


def print_stocks(snapshot: StockListSnapshot) -> None:
    if snapshot.is_loading:
        return
    if snapshot.error_message:
        print(snapshot.error_message)
    for stock in snapshot.stocks:
        print(
            f"  {stock.symbol:<6} {stock.name:<28} {stock.price:>10.2f} "
            f"{format_percent(stock.percent_change):>8}  {stock.exchange}"
        )
    print()


def watch(stop_after: float) -> None:
    finished = threading.Event()
    try:
        finished.wait(stop_after)
    except KeyboardInterrupt:
        logger.info("Interrupted")


def run_convert(args: argparse.Namespace, settings: AppSettings, session: requests.Session) -> None:
    scheduler = ThreadingScheduler()
    controller = build_conversion_controller(settings, session, scheduler)
    controller.subscribe(print_conversion)
    controller.load_currencies()
    from_code = args.from_currency.upper()
    to_code = args.to_currency.upper()
    controller.select_from_currency(CurrencyItem(code=from_code, name=currency_name(from_code)))
    controller.select_to_currency(CurrencyItem(code=to_code, name=currency_name(to_code)))
    if not controller.on_amount_changed(args.amount):
        raise SystemExit(f"Invalid amount: {args.amount!r}")
    if args.shares:
        controller.on_shares_changed(args.shares)
    try:
        watch(args.duration)
    finally:
        controller.stop()


def run_forex(args: argparse.Namespace, settings: AppSettings, session: requests.Session) -> None:
    controller = build_forex_controller(settings, session, ThreadingScheduler())
    controller.subscribe(print_forex)
    controller.request_refresh()
    try:
        watch(args.duration)
    finally:
        controller.stop()


def run_stocks(args: argparse.Namespace, settings: AppSettings, session: requests.Session) -> None:
    controller = build_stock_list_controller(settings, session, ThreadingScheduler())
    controller.subscribe(print_stocks)
    category = StockCategory(args.category)
    if category is StockCategory.MOST_ACTIVE:
        controller.request_refresh()
    else:
        controller.select_category(category)
    try:
        watch(args.duration)
    finally:
        controller.stop()


def run_ask(args: argparse.Namespace, settings: AppSettings, session: requests.Session) -> None:
    controller = build_assistant_controller(settings, session, ThreadingScheduler())
    if args.stream:
        controller.send_message_streaming(args.question)
    else:
        controller.send_message(args.question)

    snapshot = controller.snapshot
    if snapshot.error:
        raise SystemExit(f"Assistant error: {snapshot.error}")
    replies = [message for message in snapshot.messages if not message.is_user]
    if replies:
        print(replies[-1].text)


def main(argv: Sequence[str] | None = None) -> None:
    settings = config()
    parser = argparse.ArgumentParser(description="Live currency conversion, stock quotes and forex dashboard.")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level (default from settings).")
    parser.add_argument("--duration", type=float, default=10.0, help="Seconds to keep polling before exiting.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    convert = subparsers.add_parser("convert", help="Convert an amount and keep it refreshed.")
    convert.add_argument("amount")
    convert.add_argument("from_currency")
    convert.add_argument("to_currency")
    convert.add_argument("--shares", default="", help="Number of shares to total the amount for.")
    convert.set_defaults(handler=run_convert)

    forex = subparsers.add_parser("forex", help="Track popular forex pairs.")
    forex.set_defaults(handler=run_forex)

    stocks = subparsers.add_parser("stocks", help="Track a stock category.")
    stocks.add_argument("--category", choices=[category.value for category in StockCategory], default="MOST_ACTIVE")
    stocks.set_defaults(handler=run_stocks)

    ask = subparsers.add_parser("ask", help="Ask the forex assistant a question.")
    ask.add_argument("question")
    ask.add_argument("--stream", action="store_true", help="Stream the answer as it is generated.")
    ask.set_defaults(handler=run_ask)

    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s %(message)s")

    with requests.Session() as session:
        args.handler(args, settings, session)


if __name__ == "__main__":
    main()
