"""Overall time budget shared by both phases."""

from __future__ import annotations

import time
from typing import Callable

from stsfetch.exceptions import DeadlineExceeded


class Deadline:
    """A fixed point in time after which no further request may start.

    Args:
        seconds: Budget measured from construction.
        clock: Monotonic clock, replaceable in tests.

    Example::

        deadline = Deadline(10.0)
        timeout = deadline.cap(30.0, "token exchange")  # at most 10.0
    """

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._seconds = seconds
        self._expires_at = clock() + seconds

    @property
    def seconds(self) -> float:
        return self._seconds

    def remaining(self) -> float:
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def cap(self, timeout: float, phase: str) -> float:
        """Return *timeout* shortened to the remaining budget.

        Raises:
            DeadlineExceeded: If nothing is left of the budget.
        """
        remaining = self.remaining()
        if remaining <= 0.0:
            raise self.exceeded(phase)
        return min(timeout, remaining)

    def exceeded(self, phase: str) -> DeadlineExceeded:
        return DeadlineExceeded(
            f"{phase} aborted: deadline of {self._seconds:g}s exceeded"
        )
