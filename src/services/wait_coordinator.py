"""
Wait Coordinator - turns the recorder's synchronous lookup into an async wait.

wait_for_event() checks the buffer immediately, then polls it on a fixed
50ms cadence until a matching occurrence shows up or the timeout elapses.

Key behaviors:
- Exactly one occurrence is resolved per successful wait
- Check-and-resolve never awaits in between, so concurrent waits on the same
  signal resolve distinct occurrences (first unresolved match, arrival order)
- The poll loop ends on resolution, timeout and cancellation; nothing is left
  scheduled after the call returns
- A timed-out wait leaves the buffer untouched
"""

import asyncio
import logging

from models.signals import SignalFilters, SignalOccurrence
from services.event_recorder import EventRecorder

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 30000
DEFAULT_POLL_INTERVAL = 0.05


class SignalTimeoutError(TimeoutError):
    """
    Raised when no matching occurrence appears within the timeout.

    Attributes:
        signal_name: Signal that was awaited
        filters: Correlation filters of the wait
        timeout_ms: Configured timeout in milliseconds
    """

    def __init__(self, signal_name: str, filters: SignalFilters, timeout_ms: int):
        self.signal_name = signal_name
        self.filters = filters
        self.timeout_ms = timeout_ms
        qualifier = filters.describe()
        qualifier = f" {qualifier}" if qualifier else ""
        super().__init__(f"{signal_name}{qualifier} not fired within {timeout_ms}ms")


class WaitCoordinator:
    """
    Polling waits over an EventRecorder.

    Args:
        recorder: Recorder whose buffer is polled
        poll_interval: Seconds between checks (default: 0.05)
        default_timeout: Milliseconds used when a wait passes no timeout
    """

    def __init__(
        self,
        recorder: EventRecorder,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        default_timeout: int = DEFAULT_TIMEOUT_MS,
    ):
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")
        if default_timeout <= 0:
            raise ValueError(f"default_timeout must be positive, got {default_timeout}")
        self.recorder = recorder
        self.poll_interval = poll_interval
        self.default_timeout = default_timeout

    def check_for_event(
        self, name: str, test_id: str | None = None, after: int | None = None
    ) -> SignalOccurrence | None:
        """Non-blocking lookup; never resolves anything."""
        return self.recorder.check_for_event(name, SignalFilters(test_id=test_id, after=after))

    def _try_resolve(self, name: str, filters: SignalFilters) -> SignalOccurrence | None:
        found = self.recorder.check_for_event(name, filters)
        if found is not None:
            found.resolve(self.recorder.clock())
        return found

    async def wait_for_event(
        self,
        name: str,
        test_id: str | None = None,
        after: int | None = None,
        timeout: int | None = None,
    ) -> SignalOccurrence:
        """
        Wait for an unresolved occurrence of a signal and resolve it.

        Args:
            name: Raw signal name (SignalName members work too)
            test_id: Only match occurrences with this data-testid
            after: Only match occurrences at or after this epoch ms
            timeout: Milliseconds to wait (falsy -> default_timeout)

        Returns:
            The resolved occurrence

        Raises:
            SignalTimeoutError: If nothing matched within the timeout
        """
        name = getattr(name, "value", name)
        timeout_ms = timeout or self.default_timeout
        filters = SignalFilters(test_id=test_id, after=after)

        found = self._try_resolve(name, filters)
        if found is not None:
            return found

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_ms / 1000
        polls = 0

        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                logger.debug(f"Wait for {name} timed out after {polls} polls")
                raise SignalTimeoutError(name, filters, timeout_ms)

            await asyncio.sleep(min(self.poll_interval, remaining))
            polls += 1

            found = self._try_resolve(name, filters)
            if found is not None:
                logger.debug(f"{name} resolved after {polls} polls")
                return found
