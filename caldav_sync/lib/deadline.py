"""
Cancellation and deadlines for client operations.

A single operation may consist of many requests (one per window of a
range query, the sync REPORT followed by a backfill multiget, ...).  A
Deadline is handed to the operation and consulted before every request,
and the time it has left caps the timeout of the request in flight.

Example:
    deadline = Deadline.after(20)
    objects = client.calendar_query_range("/cal/", start, end, deadline=deadline)

    ## from another thread
    deadline.cancel()
"""
import threading
import time
from typing import Callable
from typing import Optional

from caldav_sync.lib import error


class Deadline:
    """
    Thread-safe cancellation token with an optional point of expiry.
    """

    def __init__(
        self,
        expires_at: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Args:
            expires_at: value of ``clock()`` at which the deadline expires,
                None for a token that only expires when cancelled
            clock: monotonic clock, replaceable for tests
        """
        self.expires_at = expires_at
        self._clock = clock
        self._cancelled = threading.Event()

    @classmethod
    def after(
        cls, seconds: float, clock: Callable[[], float] = time.monotonic
    ) -> "Deadline":
        return cls(expires_at=clock() + seconds, clock=clock)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left, None if there is no expiry.  Never negative."""
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - self._clock())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self, phase: Optional[str] = None) -> None:
        if self.cancelled:
            raise error.CancelledError(phase=phase)
        if self.expired:
            raise error.DeadlineExceededError(phase=phase)

    def timeout(self, default: Optional[float]) -> Optional[float]:
        """The per-request timeout to use: the default capped by what is left."""
        remaining = self.remaining()
        if remaining is None:
            return default
        if default is None:
            return remaining
        return min(default, remaining)


def check(deadline: Optional[Deadline], phase: Optional[str] = None) -> None:
    if deadline is not None:
        deadline.check(phase)


def request_timeout(
    deadline: Optional[Deadline], default: Optional[float]
) -> Optional[float]:
    if deadline is None:
        return default
    return deadline.timeout(default)


def limits_request(deadline: Optional[Deadline], default: Optional[float]) -> bool:
    """
    True if the deadline, not the default timeout, bounds the next
    request.  A timeout of such a request means the deadline was hit.
    """
    if deadline is None:
        return False
    remaining = deadline.remaining()
    if remaining is None:
        return False
    return default is None or remaining <= default
