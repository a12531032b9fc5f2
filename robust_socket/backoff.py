"""Exponential reconnect backoff."""

from __future__ import annotations


class BackoffScheduler:
    """Bounded exponential retry delays with an attempt cap.

    The first delay handed out is always 0 so the first reconnection after
    a failure is immediate. Every later delay is the previous one multiplied
    by ``factor`` and clamped to ``[min_delay, max_delay]``.
    """

    def __init__(
        self,
        *,
        min_delay: float,
        max_delay: float,
        factor: float,
        max_attempts: int | None = None,
    ) -> None:
        self._min_delay = min_delay
        self._max_delay = max_delay
        self._factor = factor
        self._max_attempts = max_attempts

        self.next_retry_time: float = 0
        self.reconnect_count = 0

    @property
    def exhausted(self) -> bool:
        """True once the attempt cap has been reached."""
        if self._max_attempts is None:
            return False
        return self.reconnect_count >= self._max_attempts

    def next_delay(self) -> float:
        """Return the delay for the attempt being scheduled and advance."""
        delay = self.next_retry_time
        self.next_retry_time = min(
            max(self.next_retry_time * self._factor, self._min_delay),
            self._max_delay,
        )
        self.reconnect_count += 1
        return delay

    def reset(self) -> None:
        """Forget past instability after a sustained healthy connection."""
        self.next_retry_time = 0
        self.reconnect_count = 0
