"""Outcome wrapper for expected business results."""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from edh_stats.core.errors import AppError, StorageUnavailable

T = TypeVar("T")


@dataclass(slots=True)
class Result(Generic[T]):
    value: Optional[T] = None
    error: Optional[AppError] = None

    @classmethod
    def success(cls, value: T = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: AppError) -> "Result[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[str]:
        return self.error.kind if self.error is not None else None

    def unwrap(self) -> T:
        """Return the value, raising the carried error on failure."""
        if self.error is not None:
            raise self.error
        return self.value


def returns_result(fn: Callable[..., T]) -> Callable[..., "Result[T]"]:
    """Wrap a function raising AppError into one returning Result.

    StorageUnavailable is not a business outcome and keeps propagating.
    """
    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return Result.success(fn(*args, **kwargs))
        except StorageUnavailable:
            raise
        except AppError as e:
            return Result.failure(e)
    return wrapper
