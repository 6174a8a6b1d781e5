"""
Event Recorder

Buffers signal occurrences for the page currently being observed.

Key behaviors:
- Subscribes to the fixed SignalName catalog exactly once (initialize() is idempotent)
- Occurrences whose origin URL doesn't match the tracked page are dropped at capture
- Occurrences are kept per signal name in arrival order
- check_for_event() is a pure read; only waits flip the resolved flag
- Navigation to a different normalized URL clears the whole buffer
- After destroy() the instance is dead; create a new one for the next page

One recorder is owned by each TrackedPage. There is no module-level instance.
"""

import logging
from collections.abc import Callable
from typing import Any

from models.bridge import NavigationNotice, SignalDispatch
from models.signals import SignalFilters, SignalName, SignalOccurrence, is_epoch_ms, now_ms
from services.navigation_correlator import (
    NavigationCorrelator,
    NavigationState,
    normalize_url,
)

logger = logging.getLogger(__name__)


class RecorderDestroyedError(RuntimeError):
    """Raised when a destroyed recorder is used again"""

    pass


class EventRecorder:
    """
    Signal occurrence buffer for a single page.

    Args:
        location: Returns the current document URL
        clock: Returns epoch milliseconds (default: wall clock)
    """

    def __init__(
        self,
        location: Callable[[], str],
        clock: Callable[[], int] | None = None,
    ):
        self._location = location
        self.clock = clock or now_ms

        self._buffer: dict[str, list[SignalOccurrence]] = {}
        self._subscribed: frozenset[str] = frozenset()
        self._listening_navigation = False
        self._destroyed = False

        self._correlator = NavigationCorrelator(self._location())

        self._stats = {
            "captured": 0,
            "dropped_foreign_url": 0,
            "ignored_unknown": 0,
            "resets": 0,
        }

    # ========== Lifecycle ==========

    def initialize(self) -> None:
        """Subscribe to every catalog signal and to navigation notices."""
        self._ensure_alive()
        if self._subscribed:
            return
        self._subscribed = frozenset(SignalName.values())
        self._listening_navigation = True
        logger.debug(f"EventRecorder subscribed to {len(self._subscribed)} signals")

    def reset(self) -> None:
        """Drop every buffered occurrence and re-track the current URL."""
        self._buffer = {}
        self._correlator.retrack(self._location())
        self._stats["resets"] += 1

    def destroy(self) -> None:
        """Reset and unsubscribe. The instance must not be reused afterwards."""
        if self._destroyed:
            return
        self.reset()
        self._subscribed = frozenset()
        self._listening_navigation = False
        self._destroyed = True
        logger.debug("EventRecorder destroyed")

    @property
    def is_initialized(self) -> bool:
        return bool(self._subscribed)

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    @property
    def subscribed(self) -> frozenset[str]:
        return self._subscribed

    @property
    def tracked_url(self) -> str:
        return self._correlator.tracked_url

    # ========== Capture ==========

    def capture(
        self,
        name: str,
        detail: dict[str, Any] | None = None,
        href: str | None = None,
    ) -> SignalOccurrence | None:
        """
        Record one firing of a signal.

        Args:
            name: Raw signal name
            detail: CustomEvent detail payload (mutated: 'time' is filled in)
            href: Document URL at dispatch time, used when detail has no 'url'

        Returns:
            The buffered occurrence, or None if it was dropped
        """
        self._ensure_alive()
        if name not in self._subscribed:
            self._stats["ignored_unknown"] += 1
            return None

        detail = detail if detail is not None else {}
        url = detail.get("url")
        origin = normalize_url(url if isinstance(url, str) and url else href or self._location())
        if origin != self._correlator.tracked_url:
            self._stats["dropped_foreign_url"] += 1
            logger.debug(
                f"Dropped {name} from {origin} (tracking {self._correlator.tracked_url})"
            )
            return None

        if not is_epoch_ms(detail.get("time")):
            detail["time"] = self.clock()

        occurrence = SignalOccurrence(name=name, detail=detail, time=detail["time"])
        self._buffer.setdefault(name, []).append(occurrence)
        self._stats["captured"] += 1
        return occurrence

    def capture_dispatch(self, dispatch: SignalDispatch) -> SignalOccurrence | None:
        """Bridge entry point for signals forwarded by the page."""
        return self.capture(dispatch.type, dict(dispatch.detail), dispatch.href)

    def handle_navigation(self, notice: NavigationNotice) -> NavigationState:
        """Reset the buffer if the notice moves us to a different page."""
        if not self._listening_navigation:
            return NavigationState.STABLE
        state = self._correlator.observe(notice.href)
        if state is NavigationState.CHANGED:
            logger.info(f"Page changed ({notice.kind}), clearing captured signals")
            self._buffer = {}
            self._stats["resets"] += 1
        return state

    # ========== Lookup ==========

    def check_for_event(
        self, name: str, filters: SignalFilters | None = None
    ) -> SignalOccurrence | None:
        """
        Find the earliest unresolved occurrence of a signal.

        Args:
            name: Raw signal name
            filters: Optional correlation filters

        Returns:
            First matching unresolved occurrence in arrival order, or None
        """
        self._ensure_alive()
        filters = filters or SignalFilters()
        for occurrence in self._buffer.get(name, ()):
            if occurrence.resolved:
                continue
            if filters.matches(occurrence):
                return occurrence
        return None

    def occurrences(self, name: str) -> list[SignalOccurrence]:
        """Copy of every buffered occurrence of a signal (resolved or not)."""
        return list(self._buffer.get(name, ()))

    def counts(self) -> dict[str, int]:
        """Buffered occurrence count per signal name."""
        return {name: len(items) for name, items in self._buffer.items()}

    def get_stats(self) -> dict[str, int]:
        return dict(self._stats)

    def _ensure_alive(self) -> None:
        if self._destroyed:
            raise RecorderDestroyedError("EventRecorder was destroyed; create a new one")
