from __future__ import annotations

from typing import cast
from unittest.mock import Mock

import pytest
import requests

from domain.outcome import Failure, Success
from services.currency_repository import CurrencyRepository, currency_name
from services.errors import NetworkError
from services.exchange_rate_client import ExchangeRateClient
from tests.helpers.stubs import StubRateFetcher


def test_convert_usd_to_eur() -> None:
    repository = CurrencyRepository(StubRateFetcher({"USD": {"EUR": 0.9, "GBP": 0.8}}))

    outcome = repository.convert(100.0, "usd", "eur")

    assert isinstance(outcome, Success)
    result = outcome.value
    assert result.rate == 0.9
    assert result.converted_amount == pytest.approx(90.0)
    assert result.inverse_rate == pytest.approx(1.1111, abs=1e-4)
    assert (result.from_currency, result.to_currency) == ("USD", "EUR")


def test_same_currency_short_circuits_without_fetch() -> None:
    fetcher = StubRateFetcher({})
    repository = CurrencyRepository(fetcher)

    outcome = repository.convert(42.0, "EUR", "EUR")

    assert isinstance(outcome, Success)
    assert outcome.value.rate == 1.0
    assert outcome.value.converted_amount == 42.0
    assert fetcher.calls == []


def test_missing_target_passes_through_zero_rate() -> None:
    repository = CurrencyRepository(StubRateFetcher({"USD": {"EUR": 0.9}}))

    outcome = repository.convert(10.0, "USD", "XYZ")

    assert isinstance(outcome, Success)
    assert outcome.value.rate == 0.0
    assert outcome.value.inverse_rate == 0.0
    assert outcome.value.converted_amount == 0.0


def test_convert_failure_is_returned_not_raised() -> None:
    repository = CurrencyRepository(StubRateFetcher({"USD": NetworkError("offline")}))

    outcome = repository.convert(10.0, "USD", "EUR")

    assert isinstance(outcome, Failure)
    assert isinstance(outcome.error, NetworkError)
    assert outcome.message == "offline"


def test_list_currencies_includes_base() -> None:
    repository = CurrencyRepository(StubRateFetcher({"USD": {"EUR": 0.9, "ABC": 2.0}}))

    outcome = repository.list_currencies()

    assert isinstance(outcome, Success)
    assert outcome.value == {"USD": "United States Dollar", "EUR": "Euro", "ABC": "ABC"}


def test_list_currencies_failure() -> None:
    repository = CurrencyRepository(StubRateFetcher({"USD": NetworkError("offline")}))

    assert isinstance(repository.list_currencies(), Failure)


def test_currency_name_falls_back_to_code() -> None:
    assert currency_name("JPY") == "Japanese Yen"
    assert currency_name("QQQ") == "QQQ"


def test_empty_base_is_a_failure_not_an_exception() -> None:
    session = Mock()
    repository = CurrencyRepository(ExchangeRateClient(session=cast(requests.Session, session)))

    outcome = repository.list_currencies("")

    assert isinstance(outcome, Failure)
    assert isinstance(outcome.error, ValueError)
    assert isinstance(repository.convert(1.0, "", "EUR"), Failure)
    session.request.assert_not_called()
