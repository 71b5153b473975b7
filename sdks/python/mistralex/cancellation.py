"""
Cancellation tokens for in-flight requests and streams.
"""

import threading
import time
from typing import Callable, Optional

from .exceptions import MistralCancelledError


class CancellationToken:
    """
    Cooperative cancellation for one call.

    The request pipeline checks the token before every attempt and between
    retry backoff slices, and a deadline caps each attempt's transport
    timeout. The stream decoder checks it before handling each line. A
    callback that is already running is never interrupted.

    Example:
        >>> token = CancellationToken(deadline=10.0)
        >>> client.execute_streaming("POST", "/chat/completions", body,
        ...                          callback=on_chunk, cancel=token)

    Args:
        deadline: Seconds from now after which the token counts as cancelled
        clock: Monotonic time source in seconds
    """

    def __init__(self, deadline: Optional[float] = None, clock: Callable[[], float] = time.monotonic) -> None:
        self._event = threading.Event()
        self._clock = clock
        self._expires_at = clock() + deadline if deadline is not None else None

    def cancel(self) -> None:
        """Cancel the call. Can be called from any thread."""
        self._event.set()

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and self._clock() >= self._expires_at

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self.expired

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without a deadline."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True as soon as the token is cancelled."""
        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            self._event.wait(remaining)
            return True
        return self._event.wait(seconds) or self.expired

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            reason = "deadline exceeded" if self.expired else "cancelled"
            raise MistralCancelledError(f"Request {reason}")
