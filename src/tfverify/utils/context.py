"""Cancellable, deadline-bound run context."""

import threading
import time
from typing import Optional

from tfverify.utils.errors import ContextCancelledError, ContextError, DeadlineExceededError


class RunContext:
    """Carries a deadline and a cancellation signal for one verification run.

    A context is done once it is cancelled or its deadline passes. Child
    contexts inherit the parent's deadline and cancellation; cancelling a
    child never cancels the parent.
    """

    def __init__(
        self,
        deadline: Optional[float] = None,
        parent: Optional["RunContext"] = None
    ):
        """Initialize run context.

        Args:
            deadline: Absolute deadline on the time.monotonic() clock
            parent: Optional parent context
        """
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self.deadline = deadline
        self.parent = parent
        self._cancelled = threading.Event()

    @classmethod
    def background(cls) -> "RunContext":
        """Context with no deadline that is never done unless cancelled."""
        return cls()

    @classmethod
    def with_timeout(cls, timeout: float) -> "RunContext":
        """Context that expires ``timeout`` seconds from now."""
        return cls(deadline=time.monotonic() + timeout)

    def child_with_timeout(self, timeout: float) -> "RunContext":
        """Derive a context bounded by both this context and ``timeout``."""
        return RunContext(deadline=time.monotonic() + timeout, parent=self)

    def cancel(self) -> None:
        """Cancel this context."""
        self._cancelled.set()

    def cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self.parent is not None and self.parent.cancelled()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without a deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def err(self) -> Optional[ContextError]:
        """Return the reason this context is done, or None.

        Cancellation is reported in preference to deadline expiry.
        """
        if self.cancelled():
            return ContextCancelledError()
        if self.deadline is not None and time.monotonic() >= self.deadline:
            return DeadlineExceededError()
        return None

    def done(self) -> bool:
        return self.err() is not None

    def raise_if_done(self) -> None:
        error = self.err()
        if error is not None:
            raise error

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until done or ``timeout`` elapses; return whether done."""
        limit = self.remaining()
        if timeout is not None:
            limit = timeout if limit is None else min(limit, timeout)
        self._cancelled.wait(limit)
        return self.done()

    def __enter__(self) -> "RunContext":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cancel()
