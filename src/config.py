from __future__ import annotations

from functools import cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    exchange_rate_base_url: str = "https://api.exchangerate-api.com/v4"
    stock_quote_base_url: str = "https://query1.finance.yahoo.com"
    assistant_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    assistant_api_key: str | None = None
    assistant_model: str = "gemini-1.5-flash"

    http_timeout_seconds: float = 10.0

    amount_debounce_seconds: float = 0.3
    symbol_debounce_seconds: float = 0.5
    stagger_seconds: float = 0.3

    conversion_refresh_seconds: float = 3.0
    forex_refresh_seconds: float = 3.0
    stock_refresh_seconds: float = 60.0

    rate_history_capacity: int = 30
    stock_history_capacity: int = 20

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@cache
def config() -> AppSettings:
    return AppSettings()
