from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Mapping, Protocol, TypeVar

DEFAULT_RATE_CAPACITY = 30
DEFAULT_STOCK_CAPACITY = 20


class Sample(Protocol):
    @property
    def value(self) -> float: ...


SampleT = TypeVar("SampleT", bound=Sample)


@dataclass(frozen=True)
class TrackedSeries(Generic[SampleT]):
    """Bounded, oldest-first history of samples for one tracked key.

    Series are never mutated; :func:`append` returns a new one so snapshots
    holding an older series stay valid.
    """

    key: str
    capacity: int
    samples: tuple[SampleT, ...] = ()

    def __post_init__(self) -> None:
        if self.capacity <= 0:
            raise ValueError("capacity must be > 0")
        if len(self.samples) > self.capacity:
            raise ValueError("samples exceed capacity")

    @classmethod
    def empty(cls, key: str, capacity: int) -> TrackedSeries[SampleT]:
        return cls(key=key, capacity=capacity)

    @property
    def latest(self) -> SampleT | None:
        return self.samples[-1] if self.samples else None

    def __len__(self) -> int:
        return len(self.samples)


def append(series: TrackedSeries[SampleT], sample: SampleT) -> TrackedSeries[SampleT]:
    samples = (*series.samples, sample)[-series.capacity :]
    return TrackedSeries(key=series.key, capacity=series.capacity, samples=samples)


def delta(series: TrackedSeries[SampleT]) -> float | None:
    if len(series.samples) < 2:
        return None
    return series.samples[-1].value - series.samples[-2].value


def fold(
    book: Mapping[str, TrackedSeries[SampleT]],
    key: str,
    sample: SampleT,
    capacity: int,
) -> dict[str, TrackedSeries[SampleT]]:
    """Return a copy of ``book`` with ``sample`` appended to ``key``'s series."""
    series = book.get(key) or TrackedSeries.empty(key, capacity)
    updated = dict(book)
    updated[key] = append(series, sample)
    return updated


__all__ = [
    "DEFAULT_RATE_CAPACITY",
    "DEFAULT_STOCK_CAPACITY",
    "TrackedSeries",
    "append",
    "delta",
    "fold",
]
