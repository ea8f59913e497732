"""Root run context: cancellation and deadlines for one invocation.

A single ``RunContext`` is created by the dispatcher. SIGINT sets its cancel
event and raises ``Canceled`` in the main thread, which unwinds whatever
request, probe or wait is in flight. Child contexts share the cancel event
and may carry a tighter deadline.
"""

import signal
import threading
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from agentlab.cli.errors import Canceled, CLIError
from agentlab.logging import get_logger

logger = get_logger(__name__)


class DeadlineExceeded(CLIError):
    """The context deadline passed before the operation finished."""


class RunContext:
    """Cancellation flag plus an optional monotonic deadline."""

    def __init__(
        self,
        deadline: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.deadline = deadline
        self._cancel_event = cancel_event or threading.Event()

    @property
    def canceled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        self._cancel_event.set()

    def check(self) -> None:
        """Raise if the context has been canceled or its deadline passed."""
        if self.canceled:
            raise Canceled()
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise DeadlineExceeded("context deadline exceeded")

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    def with_timeout(self, seconds: float) -> "RunContext":
        """Child context sharing cancellation, bounded by ``seconds``."""
        deadline = time.monotonic() + seconds
        if self.deadline is not None:
            deadline = min(deadline, self.deadline)
        return RunContext(deadline=deadline, cancel_event=self._cancel_event)

    def request_timeout(self, default: float) -> float:
        """Timeout for one request: ``default`` capped by the deadline."""
        self.check()
        remaining = self.remaining()
        if remaining is None:
            return default
        return max(0.001, min(default, remaining))

    def sleep(self, seconds: float) -> None:
        """Wait ``seconds`` unless canceled first."""
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, max(0.0, remaining))
        if self._cancel_event.wait(seconds):
            raise Canceled()


@contextmanager
def interrupt_scope(context: RunContext) -> Iterator[RunContext]:
    """Cancel ``context`` on SIGINT for the duration of the block.

    Only the main thread may install signal handlers; elsewhere the block
    runs without one.
    """
    if threading.current_thread() is not threading.main_thread():
        yield context
        return

    def _on_interrupt(signum, frame):
        logger.debug("received signal %s, canceling run context", signum)
        context.cancel()
        raise Canceled()

    previous = signal.signal(signal.SIGINT, _on_interrupt)
    try:
        yield context
    finally:
        signal.signal(
            signal.SIGINT, previous if previous is not None else signal.SIG_DFL
        )
