"""
Request-scoped cancellation and deadline signal.
"""

import threading
import time
from typing import Optional

from .errors import QueryCancelledError


class RequestContext:
    """
    Cancellation/deadline handle passed by the caller into every read operation.

    Operations call ``check()`` before issuing storage work. In-flight storage
    calls are not interrupted; their results are discarded once the context
    is done.

    Example:
        ctx = RequestContext.with_timeout(5.0)
        traces = reader.find_traces(criteria, ctx=ctx)
    """

    def __init__(self, deadline: Optional[float] = None):
        """
        Args:
            deadline: Absolute time.monotonic() value after which the request
                      is considered expired. None means no deadline.
        """
        self.deadline = deadline
        self._cancelled = threading.Event()

    @classmethod
    def with_timeout(cls, seconds: Optional[float]) -> 'RequestContext':
        if seconds is None:
            return cls()
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set() or self.expired

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without a deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def check(self, operation: str, partial=None) -> None:
        """
        Raise if the request must stop issuing storage work.

        Raises:
            QueryCancelledError: If cancelled or past the deadline
        """
        if self._cancelled.is_set():
            raise QueryCancelledError(
                f"{operation} cancelled by caller", operation=operation, partial=partial
            )
        if self.expired:
            raise QueryCancelledError(
                f"{operation} exceeded its deadline", operation=operation, partial=partial
            )
