# flake8: noqa E402
# Run via uv to load project deps, e.g.:
# uv run scripts/stock_quote_probe.py AAPL MSFT
# uv run scripts/stock_quote_probe.py --search tesla
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Ensure the src directory is importable when the script is invoked via uv/python directly.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from config import config
from domain.outcome import Failure
from services.stock_quote_client import StockQuoteClient
from services.stock_repository import StockRepository


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch stock quotes or search symbols.")
    parser.add_argument("symbols", nargs="*", default=["AAPL"], help="Ticker symbols (default: AAPL).")
    parser.add_argument("--search", default=None, help="Search for symbols instead of quoting.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.INFO)

    settings = config()
    client = StockQuoteClient(base_url=settings.stock_quote_base_url, timeout=settings.http_timeout_seconds)
    repository = StockRepository(client, stagger_seconds=settings.stagger_seconds)

    if args.search:
        outcome = repository.search(args.search)
        if isinstance(outcome, Failure):
            raise SystemExit(f"Search failed: {outcome.message}")
        print(json.dumps([match.model_dump() for match in outcome.value], indent=2))
        return

    stocks = repository.fetch_many(args.symbols)
    payload: list[dict[str, Any]] = [stock.model_dump() for stock in stocks]
    print(json.dumps(payload, indent=2))


if __name__ == "__main__":
    main()
