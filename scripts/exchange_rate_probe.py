# flake8: noqa E402
# Run via uv to load project deps, e.g.:
# uv run scripts/exchange_rate_probe.py --base USD --quote EUR --amount 100
from __future__ import annotations

import argparse
import json
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
from services.currency_repository import CurrencyRepository
from services.exchange_rate_client import ExchangeRateClient


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch the latest FX rates and convert one amount.")
    parser.add_argument("--base", default="USD", help="Source currency code (default: USD).")
    parser.add_argument("--quote", default="EUR", help="Target currency code (default: EUR).")
    parser.add_argument("--amount", type=float, default=1.0, help="Amount to convert (default: 1).")
    return parser.parse_args()


def main() -> None:
    args = parse_args()

    settings = config()
    client = ExchangeRateClient(base_url=settings.exchange_rate_base_url, timeout=settings.http_timeout_seconds)
    latest = client.get_latest_rates(args.base)
    outcome = CurrencyRepository(client).convert(args.amount, args.base, args.quote)
    if isinstance(outcome, Failure):
        raise SystemExit(f"Conversion failed: {outcome.message}")

    result = outcome.value
    payload: dict[str, Any] = {
        "requested_pair": f"{args.base.upper()}-{args.quote.upper()}",
        "rates_date": latest.date,
        "rates_listed": len(latest.rates),
        "rate": result.rate,
        "inverse_rate": result.inverse_rate,
        "amount": args.amount,
        "converted_amount": result.converted_amount,
    }
    print(json.dumps(payload, indent=2))


if __name__ == "__main__":
    main()
