"""
Data models for the signal harness
"""

from .bridge import (
    BridgePayloadError,
    NavigationNotice,
    SignalDispatch,
    parse_bridge_payload,
)
from .signals import (
    TEST_ID_KEY,
    UNRESOLVED,
    SignalFilters,
    SignalName,
    SignalOccurrence,
    now_ms,
)

__all__ = [
    # Signal catalog and recorded occurrences
    "SignalName",
    "SignalOccurrence",
    "SignalFilters",
    "TEST_ID_KEY",
    "UNRESOLVED",
    "now_ms",
    # Page -> host bridge contract
    "SignalDispatch",
    "NavigationNotice",
    "BridgePayloadError",
    "parse_bridge_payload",
]
