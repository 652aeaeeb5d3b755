from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T


@dataclass(frozen=True)
class Failure:
    """Expected failure of a fetch path; keeps the underlying error for logging."""

    error: Exception
    message: str

    @classmethod
    def from_error(cls, error: Exception) -> Failure:
        return cls(error=error, message=str(error) or type(error).__name__)


Outcome = Union[Success[T], Failure]


__all__ = ["Failure", "Outcome", "Success"]
