"""
Navigation Correlator

Tracks which logical page the recorder is observing. A page is identified by
its normalized URL (query string and fragment stripped), so
``https://a.com/x?q=1#h`` and ``https://a.com/x`` are the same page.

State Machine (per tracked URL):
    STABLE --(notice with different normalized URL)--> CHANGED --> STABLE

CHANGED is transient: the tracked URL moves to the new value and the caller
is expected to reset anything tied to the previous page.
"""

import logging
from enum import Enum

logger = logging.getLogger(__name__)


def normalize_url(url: str) -> str:
    """
    Strip query string and fragment from a URL.

    Idempotent: normalize_url(normalize_url(u)) == normalize_url(u).
    """
    return url.split("?", 1)[0].split("#", 1)[0]


class NavigationState(Enum):
    """Outcome of observing a navigation notice"""

    STABLE = "stable"
    CHANGED = "changed"


class NavigationCorrelator:
    """
    Holds the tracked URL and detects page changes.

    Usage:
        correlator = NavigationCorrelator(page.url)
        if correlator.observe(new_url) is NavigationState.CHANGED:
            recorder.reset()
    """

    def __init__(self, initial_url: str):
        self._tracked_url = normalize_url(initial_url)
        self._transitions = 0

    @property
    def tracked_url(self) -> str:
        """Normalized URL of the page currently observed."""
        return self._tracked_url

    @property
    def transitions(self) -> int:
        """Number of CHANGED transitions seen so far."""
        return self._transitions

    def retrack(self, url: str) -> None:
        """Track url unconditionally (used on reset)."""
        self._tracked_url = normalize_url(url)

    def is_current(self, url: str) -> bool:
        """Whether url normalizes to the tracked URL."""
        return normalize_url(url) == self._tracked_url

    def observe(self, url: str) -> NavigationState:
        """
        Handle a navigation notice.

        Never raises: a URL that can't be normalized is logged and treated as
        a no-op, leaving the tracked URL untouched.

        Args:
            url: Document URL reported after the navigation

        Returns:
            CHANGED if the normalized URL differs from the tracked one,
            STABLE otherwise
        """
        try:
            normalized = normalize_url(url)
            if normalized == self._tracked_url:
                return NavigationState.STABLE
        except Exception as e:
            logger.warning(f"Navigation listener error ignored: {e}")
            return NavigationState.STABLE

        logger.debug(f"Navigation: {self._tracked_url} -> {normalized}")
        self._tracked_url = normalized
        self._transitions += 1
        return NavigationState.CHANGED
