"""
Retry policy for the request pipeline.
"""

import random
from typing import FrozenSet, Optional

RETRYABLE_STATUS_CODES: FrozenSet[int] = frozenset({429, 500, 502, 503, 504})


class RetryPolicy:
    """
    Exponential backoff with jitter.

    The delay before the next attempt depends only on how many retries are
    still available::

        round(base_delay_ms * 2 ** (3 - retries_remaining) + uniform(-jitter_ms, jitter_ms))

    floored at zero. With the defaults and three retries this gives roughly
    1s, 2s and 4s.

    Attributes:
        max_retries: Attempts allowed after the first one
        base_delay_ms: Base delay in milliseconds
        jitter_ms: Half-width of the uniform jitter window in milliseconds
        retryable_status_codes: HTTP statuses that trigger a retry
    """

    EXPONENT_OFFSET = 3

    def __init__(
        self,
        max_retries: int = 3,
        base_delay_ms: int = 1000,
        jitter_ms: int = 250,
        retryable_status_codes: FrozenSet[int] = RETRYABLE_STATUS_CODES,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.jitter_ms = jitter_ms
        self.retryable_status_codes = frozenset(retryable_status_codes)
        self._rng = rng or random.Random()

    def should_retry_status(self, status: int) -> bool:
        return status in self.retryable_status_codes

    def delay_ms(self, retries_remaining: int) -> int:
        """Milliseconds to wait before the next attempt."""
        exponential = self.base_delay_ms * 2.0 ** (self.EXPONENT_OFFSET - retries_remaining)
        jitter = self._rng.uniform(-self.jitter_ms, self.jitter_ms)
        return max(0, round(exponential + jitter))

    def __repr__(self) -> str:
        return (
            f"RetryPolicy(max_retries={self.max_retries}, "
            f"base_delay_ms={self.base_delay_ms}, jitter_ms={self.jitter_ms})"
        )
