"""
Signal models - catalog, recorded occurrences and correlation filters

Signals are CustomEvents dispatched on ``window`` by the chat/merchant
applications under test. The catalog is fixed; the recorder subscribes to
exactly these names.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Detail field used to correlate a signal with a specific DOM element
TEST_ID_KEY = "data-testid"

# resolved_time sentinel for occurrences that no wait has consumed yet
UNRESOLVED = -1


def now_ms() -> int:
    """Wall-clock time in epoch milliseconds (same unit as JS Date.now())."""
    return int(time.time() * 1000)


def is_epoch_ms(value: Any) -> bool:
    """True for a usable detail.time value (a positive number, not a bool)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


class SignalName(str, Enum):
    """Lifecycle signals emitted by the application under test"""

    APP_INITIALIZED = "EVENT_APP_INITIALIZED"
    CALL_MERCHANT_APP = "EVENT_CALL_MERCHANT_APP"
    MOUNTING_MERCHANT_APP = "EVENT_MOUNTING_MERCHANT_APP"
    CHAT_FACTORY_INITIALIZED = "EVENT_CHAT_FACTORY_INITIALIZED"
    FLOATING_CHAT_RENDERING = "EVENT_FLOATING_CHAT_RENDERING"
    FLOATING_CHAT_NOT_RENDERING = "EVENT_FLOATING_CHAT_NOT_RENDERING"
    FLOATING_CHAT_BUTTON_RENDERING = "EVENT_FLOATING_CHAT_BUTTON_RENDERING"
    SHADOW_DOM_CONTAINER_READY = "EVENT_SHADOW_DOM_CONTAINER_READY"

    @classmethod
    def values(cls) -> list[str]:
        """Raw event names in declaration order."""
        return [member.value for member in cls]

    @classmethod
    def is_known(cls, name: str) -> bool:
        return name in cls._value2member_map_


@dataclass
class SignalOccurrence:
    """
    One recorded firing of a signal.

    Attributes:
        name: Raw signal name (e.g. 'EVENT_APP_INITIALIZED')
        detail: CustomEvent detail payload (url, time, correlation fields)
        time: Epoch ms of the firing (detail.time, or assigned on capture)
        resolved: Whether a wait has consumed this occurrence
        resolved_time: Epoch ms of resolution, UNRESOLVED (-1) until then
    """

    name: str
    detail: dict[str, Any] = field(default_factory=dict)
    time: int = 0
    resolved: bool = False
    resolved_time: int = UNRESOLVED

    @property
    def test_id(self) -> str | None:
        return self.detail.get(TEST_ID_KEY)

    def resolve(self, at_ms: int | None = None) -> None:
        """Mark occurrence as consumed by a wait."""
        self.resolved = True
        self.resolved_time = at_ms if at_ms is not None else now_ms()


@dataclass(frozen=True)
class SignalFilters:
    """
    Correlation filters applied when looking up a buffered occurrence.

    Attributes:
        test_id: Exact match on detail['data-testid'] when set
        after: Minimum occurrence time (epoch ms, inclusive) when set
    """

    test_id: str | None = None
    after: int | None = None

    def matches(self, occurrence: SignalOccurrence) -> bool:
        if self.test_id is not None and occurrence.test_id != self.test_id:
            return False
        if self.after is not None and occurrence.time < self.after:
            return False
        return True

    @property
    def is_empty(self) -> bool:
        return self.test_id is None and self.after is None

    def describe(self) -> str:
        """Human-readable form for error messages ('' when empty)."""
        parts = []
        if self.test_id is not None:
            parts.append(f"with {TEST_ID_KEY}={self.test_id}")
        if self.after is not None:
            parts.append(f"after {self.after}")
        return " ".join(parts)
