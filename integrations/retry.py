"""Retry-with-backoff for the I/O layer around the engine."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryExhaustedError(RuntimeError):
    """Raised when every attempt allowed by a :class:`RetryPolicy` failed."""

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


@dataclass(frozen=True)
class RetryPolicy:
    """``max_retries`` extra attempts after the first, waiting ``backoff_seconds[i]`` before retry ``i``.

    When the schedule is shorter than ``max_retries`` its last delay is reused.
    """

    max_retries: int = 2
    backoff_seconds: Tuple[float, ...] = (1.0, 2.0)
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)

    def delay_for(self, retry_index: int) -> float:
        if not self.backoff_seconds:
            return 0.0
        if retry_index < len(self.backoff_seconds):
            return self.backoff_seconds[retry_index]
        return self.backoff_seconds[-1]

    def call(
        self,
        fn: Callable[[], T],
        *,
        sleep: Callable[[float], None] = time.sleep,
        on_retry: Optional[Callable[[int, BaseException], None]] = None,
    ) -> T:
        attempt = 0
        while True:
            try:
                return fn()
            except self.retry_on as exc:
                if attempt >= self.max_retries:
                    raise RetryExhaustedError(attempt + 1, exc) from exc
                delay = self.delay_for(attempt)
                logger.warning("Attempt %d failed (%s); retrying in %.1fs", attempt + 1, exc, delay)
                if on_retry is not None:
                    on_retry(attempt + 1, exc)
                sleep(delay)
            attempt += 1


CONTRACT_FETCH_RETRY = RetryPolicy(max_retries=2, backoff_seconds=(1.0, 2.0))

__all__ = ["CONTRACT_FETCH_RETRY", "RetryExhaustedError", "RetryPolicy"]
