"""Retry handler with exponential backoff and jitter."""

import random
import time
from typing import Any, Callable, Optional, Set

from tk_exporter.models.errors import RemoteLookupError


def calculate_backoff_delay(
    attempt: int,
    base_delay: float = 0.5,
    max_delay: float = 4.0,
    jitter_max: float = 0.5
) -> float:
    """
    Calculate exponential backoff delay with jitter.

    Formula: min(max_delay, (base_delay * (2 ** attempt)) + random_jitter)

    Args:
        attempt: Retry attempt number (0-indexed)
        base_delay: Base delay in seconds
        max_delay: Maximum delay cap in seconds
        jitter_max: Maximum jitter to add in seconds

    Returns:
        Delay in seconds
    """
    exponential_delay = base_delay * (2 ** attempt)
    jitter = random.uniform(0, jitter_max)
    return min(max_delay, exponential_delay + jitter)


class RetryHandler:
    """
    Retries Tankerkoenig API calls that failed transiently.

    Retries on: 429, 502, 503, 504 status codes, timeouts and transport errors
    Max retries: 2 (configurable)
    Backoff: Exponential with jitter, capped at 4 seconds
    """

    RETRYABLE_STATUS_CODES: Set[int] = {429, 502, 503, 504}

    def __init__(
        self,
        max_retries: int = 2,
        base_delay: float = 0.5,
        max_delay: float = 4.0,
        jitter_max: float = 0.5,
        sleeper: Callable[[float], Any] = time.sleep,
        on_retry: Optional[Callable[[int, RemoteLookupError, float], None]] = None
    ):
        """
        Initialize retry handler.

        Args:
            max_retries: Maximum number of retry attempts
            base_delay: Base delay for exponential backoff
            max_delay: Maximum delay cap
            jitter_max: Maximum jitter to add
            sleeper: Sleep function (default: time.sleep)
            on_retry: Called with (attempt, error, delay) before each retry
        """
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter_max = jitter_max
        self._sleep = sleeper
        self._on_retry = on_retry

    def is_retryable(self, status_code: Optional[int]) -> bool:
        """
        Check if an HTTP status is worth retrying.

        Timeouts and transport errors are flagged retryable where they are
        raised.
        """
        return status_code in self.RETRYABLE_STATUS_CODES

    def execute(self, func: Callable[..., Any], *args, **kwargs) -> Any:
        """
        Execute function with retry logic.

        Only RemoteLookupError flagged as retryable is retried, anything else
        propagates immediately.

        Returns:
            Result from successful function execution

        Raises:
            RemoteLookupError: If the error is permanent or retries are exhausted
        """
        attempt = 0
        while True:
            try:
                return func(*args, **kwargs)
            except RemoteLookupError as e:
                if not e.retryable or attempt >= self.max_retries:
                    raise

                delay = calculate_backoff_delay(
                    attempt,
                    self.base_delay,
                    self.max_delay,
                    self.jitter_max
                )
                if self._on_retry:
                    self._on_retry(attempt, e, delay)

                self._sleep(delay)
                attempt += 1
