"""Tagged success/failure values for non-fatal steps.

Trophy group lookups, translation batches and service-variant attempts can
fail without failing the request. They return an ``Outcome`` instead of
raising, so the degraded path shows up in the signature.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of an operation that is allowed to fail."""

    value: Optional[T] = None
    error: Optional[Exception] = None
    label: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T, label: str = "") -> "Outcome[T]":
        return cls(value=value, label=label)

    @classmethod
    def failure(cls, error: Exception, label: str = "") -> "Outcome[T]":
        return cls(error=error, label=label)

    def unwrap_or(self, default: T) -> T:
        """Return the value on success, ``default`` otherwise."""
        if self.ok and self.value is not None:
            return self.value
        return default

