from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Generic, Hashable, Sequence, TypeVar

from domain.outcome import Failure, Outcome, Success

from .errors import MarketDataError, NetworkError

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass(frozen=True)
class BatchResult(Generic[K, V]):
    values: dict[K, V] = field(default_factory=dict)
    failures: dict[K, Failure] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return bool(self.values)


def _never_cancelled(seconds: float) -> bool:
    if seconds > 0:
        threading.Event().wait(seconds)
    return False


def fetch_batch(
    keys: Sequence[K],
    fetch: Callable[[K], Outcome[V]],
    *,
    stagger_seconds: float = 0.3,
    wait: Callable[[float], bool] | None = None,
    max_workers: int | None = None,
    label: str = "batch",
) -> BatchResult[K, V]:
    """Fetch every key independently; one key failing never aborts the others.

    Key ``i`` is delayed by ``stagger_seconds * i`` to spread load on the
    upstream API. ``wait(seconds)`` performs that delay and returns ``True`` when
    the surrounding refresh was cancelled, in which case the key is skipped.
    Values keep the order of ``keys``.
    """
    if not keys:
        return BatchResult()

    waiter = wait or _never_cancelled

    def run(index: int, key: K) -> Outcome[V]:
        delay = stagger_seconds * index
        if delay > 0 and waiter(delay):
            return Failure(error=NetworkError("Request cancelled"), message="cancelled")
        try:
            return fetch(key)
        except MarketDataError as exc:
            return Failure.from_error(exc)
        except Exception as exc:
            logger.exception("Unexpected error fetching %s key=%s", label, key)
            return Failure.from_error(exc)

    workers = max_workers or len(keys)
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"{label}-fetch") as executor:
        futures = [executor.submit(run, index, key) for index, key in enumerate(keys)]
        outcomes = [future.result() for future in futures]

    values: dict[K, V] = {}
    failures: dict[K, Failure] = {}
    for key, outcome in zip(keys, outcomes):
        if isinstance(outcome, Success):
            values[key] = outcome.value
        else:
            logger.warning("Failed to load %s key=%s: %s", label, key, outcome.message)
            failures[key] = outcome

    logger.debug("%s fetched %d/%d keys", label, len(values), len(keys))
    return BatchResult(values=values, failures=failures)


__all__ = ["BatchResult", "fetch_batch"]
