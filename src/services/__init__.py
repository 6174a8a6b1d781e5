"""Services package.

Signal recording core (recorder, wait coordinator, navigation correlator) and
logging setup. None of these import Playwright.
"""

from .event_recorder import EventRecorder, RecorderDestroyedError
from .logger import get_logger, setup_logging
from .navigation_correlator import NavigationCorrelator, NavigationState, normalize_url
from .wait_coordinator import SignalTimeoutError, WaitCoordinator

__all__ = [
    "EventRecorder",
    "RecorderDestroyedError",
    "WaitCoordinator",
    "SignalTimeoutError",
    "NavigationCorrelator",
    "NavigationState",
    "normalize_url",
    "get_logger",
    "setup_logging",
]
