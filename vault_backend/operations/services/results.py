# operations/services/results.py

"""
OPERATION PLUMBING

- OperationResult: typed success/failure returned by every orchestrator operation
- RetryPolicy: bounded attempts + capped exponential backoff with full jitter
- CancellationToken: cooperative cancellation checked at unit boundaries
"""

from __future__ import annotations

import random
import threading
from dataclasses import dataclass
from typing import Any

from django.conf import settings

from accounting.services.exceptions import (
    AccountingServiceError,
    ErrorKind,
    OperationCancelledError,
)


@dataclass(frozen=True)
class OperationResult:
    ok: bool
    value: Any = None
    error: AccountingServiceError | None = None
    attempts: int = 1
    replayed: bool = False

    @classmethod
    def success(cls, value, *, attempts: int = 1, replayed: bool = False) -> "OperationResult":
        return cls(ok=True, value=value, attempts=attempts, replayed=replayed)

    @classmethod
    def failure(cls, error: AccountingServiceError, *, attempts: int = 1) -> "OperationResult":
        return cls(ok=False, error=error, attempts=attempts)

    @property
    def kind(self) -> ErrorKind | None:
        return self.error.kind if self.error is not None else None

    def unwrap(self):
        if not self.ok:
            raise self.error
        return self.value


@dataclass(frozen=True)
class Replayed:
    """Marks a unit result that was found rather than created."""

    value: Any


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 0.05
    max_delay: float = 0.5

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=int(getattr(settings, "OPERATIONS_MAX_ATTEMPTS", 3)),
            base_delay=float(getattr(settings, "OPERATIONS_BACKOFF_BASE", 0.05)),
            max_delay=float(getattr(settings, "OPERATIONS_BACKOFF_MAX", 0.5)),
        )

    def delay(self, attempt: int, *, rng: random.Random | None = None) -> float:
        """Full jitter: uniform(0, min(max_delay, base * 2**(attempt-1)))."""
        ceiling = min(self.max_delay, self.base_delay * (2 ** max(attempt - 1, 0)))
        return (rng or random).uniform(0, ceiling)


class CancellationToken:
    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, operation: str) -> None:
        if self._event.is_set():
            raise OperationCancelledError(operation=operation)
