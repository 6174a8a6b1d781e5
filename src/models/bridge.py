"""
Bridge Payload Schemas

Page -> host contract for the injected signal forwarder. The forwarder calls
the exposed binding with a plain JSON object; these models give that object
an explicit, validated shape.

Channels:
- "signal": a catalog CustomEvent fired on window
- "navigation": history change inside the document (popstate/hashchange), or
  a main-frame navigation reported by Playwright itself
"""

from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

from models.signals import is_epoch_ms


class BridgePayloadError(ValueError):
    """Raised when the page sends a payload that doesn't fit the contract"""

    pass


class SignalDispatch(BaseModel):
    """A signal forwarded from the page."""

    type: str = Field(..., min_length=1, description="CustomEvent type")
    detail: dict[str, Any] = Field(default_factory=dict, description="CustomEvent detail")
    href: str | None = Field(None, description="document URL at dispatch time")

    @field_validator("detail")
    @classmethod
    def _drop_malformed_fields(cls, detail: dict[str, Any]) -> dict[str, Any]:
        """Discard a non-string url or non-numeric time so the recorder falls back."""
        detail = dict(detail)
        if "url" in detail and not isinstance(detail["url"], str):
            del detail["url"]
        if "time" in detail and not is_epoch_ms(detail["time"]):
            del detail["time"]
        return detail

    class Config:
        extra = "ignore"


class NavigationNotice(BaseModel):
    """A navigation observed in (or for) the tracked document."""

    kind: Literal["popstate", "hashchange", "framenavigated"] = Field(
        ..., description="What triggered the notice"
    )
    href: str = Field(..., description="document URL after navigation")

    class Config:
        extra = "ignore"


def parse_bridge_payload(payload: Any) -> SignalDispatch | NavigationNotice:
    """
    Validate a raw binding payload.

    Args:
        payload: Object passed by the page to the exposed binding

    Returns:
        SignalDispatch or NavigationNotice, chosen by payload['channel']

    Raises:
        BridgePayloadError: If the payload is not a dict, has an unknown
            channel, or fails validation
    """
    if not isinstance(payload, dict):
        raise BridgePayloadError(f"Bridge payload must be an object, got {type(payload).__name__}")

    channel = payload.get("channel")
    try:
        if channel == "signal":
            return SignalDispatch.model_validate(payload)
        if channel == "navigation":
            return NavigationNotice.model_validate(payload)
    except ValidationError as e:
        raise BridgePayloadError(f"Invalid {channel} payload: {e}") from e

    raise BridgePayloadError(f"Unknown bridge channel: {channel!r}")
