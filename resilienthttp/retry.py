"""Retry predicates and exponential backoff with jitter."""

from __future__ import annotations

import asyncio
import logging
import random
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Protocol

from resilienthttp.errors import CancellationError

logger = logging.getLogger(__name__)

_CANCEL_POLL_INTERVAL = 0.05  # seconds


class CancelSignal(Protocol):
    """Anything shaped like ``threading.Event``."""

    def is_set(self) -> bool: ...

    def wait(self, timeout: Optional[float] = None) -> bool: ...


# ---------------------------------------------------------------------------
# Retry predicates
# ---------------------------------------------------------------------------


class RetryPredicate(ABC):
    """Decides whether a completed response is worth another attempt."""

    @abstractmethod
    def should_retry(self, status_code: int) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class ServerErrorPredicate(RetryPredicate):
    """Retry server errors (5xx) only. Client errors are the caller's mistake."""

    def should_retry(self, status_code: int) -> bool:
        return status_code >= 500


@dataclass(frozen=True)
class StatusCodePredicate(RetryPredicate):
    """Retry an explicit set of status codes, e.g. to include 429."""

    retryable_status_codes: frozenset[int] = field(
        default_factory=lambda: frozenset({429, 500, 502, 503, 504})
    )

    def should_retry(self, status_code: int) -> bool:
        return status_code in self.retryable_status_codes


# ---------------------------------------------------------------------------
# Backoff policies
# ---------------------------------------------------------------------------


class BackoffPolicy(ABC):
    """Computes and applies the pause before the next attempt.

    ``attempt`` is the 1-based number of the attempt that just failed.
    """

    @abstractmethod
    def get_delay(self, attempt: int) -> float:
        """Delay in seconds to wait after ``attempt``."""
        raise NotImplementedError

    def pause(self, attempt: int, cancel: Optional[CancelSignal] = None) -> None:
        """Block the calling thread for the delay after ``attempt``.

        Raises:
            CancellationError: if ``cancel`` fires while sleeping.
        """
        delay = self.get_delay(attempt)
        logger.info("backing off for %.3fs after attempt %d", delay, attempt)
        if cancel is None:
            time.sleep(delay)
        elif cancel.wait(delay):
            raise CancellationError("request cancelled during backoff", attempt=attempt)

    async def apause(self, attempt: int, cancel: Optional[CancelSignal] = None) -> None:
        """Async counterpart of :meth:`pause`.

        With a ``cancel`` signal the sleep runs in slices of at most
        ``_CANCEL_POLL_INTERVAL`` seconds so a fired signal is seen promptly.
        """
        delay = self.get_delay(attempt)
        logger.info("backing off for %.3fs after attempt %d", delay, attempt)
        if cancel is None:
            await asyncio.sleep(delay)
            return
        remaining = delay
        while not cancel.is_set():
            if remaining <= 0:
                return
            step = min(_CANCEL_POLL_INTERVAL, remaining)
            await asyncio.sleep(step)
            remaining -= step
        raise CancellationError("request cancelled during backoff", attempt=attempt)


@dataclass
class ExponentialBackoff(BackoffPolicy):
    """Exponential growth capped at ``max_delay``, plus random jitter.

    The delay after attempt ``n`` is ``min(base_delay * 2**n, max_delay)``
    plus a uniform jitter in ``[0, jitter * that value]``. Pass a seeded
    ``rng`` to make the sequence of delays reproducible.
    """

    base_delay: float = 1.0  # seconds
    max_delay: float = 16.0  # seconds
    jitter: float = 0.5
    rng: random.Random = field(default_factory=random.Random, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("backoff delays must be non-negative")
        if self.jitter < 0:
            raise ValueError("jitter must be non-negative")

    def get_raw_delay(self, attempt: int) -> float:
        """Delay without jitter."""
        # Exponent is clamped so huge attempt numbers cannot overflow a float.
        return min(self.base_delay * (2 ** min(attempt, 64)), self.max_delay)

    def get_delay(self, attempt: int) -> float:
        raw = self.get_raw_delay(attempt)
        return raw + self.rng.uniform(0, self.jitter * raw)


@dataclass(frozen=True)
class ConstantBackoff(BackoffPolicy):
    delay: float = 1.0

    def __post_init__(self) -> None:
        if self.delay < 0:
            raise ValueError("backoff delay must be non-negative")

    def get_delay(self, attempt: int) -> float:
        return self.delay


@dataclass(frozen=True)
class NoBackoff(BackoffPolicy):
    """Retry immediately."""

    def get_delay(self, attempt: int) -> float:
        return 0.0
