"""
Tests for the page -> host bridge contract
"""

import pytest

from models.bridge import (
    BridgePayloadError,
    NavigationNotice,
    SignalDispatch,
    parse_bridge_payload,
)


class TestParseBridgePayload:
    """Tests for parse_bridge_payload()"""

    def test_signal_payload(self):
        message = parse_bridge_payload(
            {
                "channel": "signal",
                "type": "EVENT_APP_INITIALIZED",
                "detail": {"data-testid": "root"},
                "href": "https://a.com/x?q=1",
            }
        )

        assert isinstance(message, SignalDispatch)
        assert message.type == "EVENT_APP_INITIALIZED"
        assert message.detail == {"data-testid": "root"}
        assert message.href == "https://a.com/x?q=1"

    def test_signal_payload_defaults(self):
        message = parse_bridge_payload({"channel": "signal", "type": "EVENT_APP_INITIALIZED"})

        assert message.detail == {}
        assert message.href is None

    def test_navigation_payload(self):
        message = parse_bridge_payload(
            {"channel": "navigation", "kind": "popstate", "href": "https://a.com/y"}
        )

        assert isinstance(message, NavigationNotice)
        assert message.kind == "popstate"

    def test_unknown_channel_rejected(self):
        with pytest.raises(BridgePayloadError, match="Unknown bridge channel"):
            parse_bridge_payload({"channel": "metrics"})

    def test_non_dict_rejected(self):
        with pytest.raises(BridgePayloadError, match="must be an object"):
            parse_bridge_payload(["signal"])

    def test_invalid_signal_rejected(self):
        with pytest.raises(BridgePayloadError):
            parse_bridge_payload({"channel": "signal", "type": "", "detail": {}})

    def test_non_object_detail_rejected(self):
        with pytest.raises(BridgePayloadError):
            parse_bridge_payload({"channel": "signal", "type": "EVENT_X", "detail": "text"})

    def test_unknown_navigation_kind_rejected(self):
        with pytest.raises(BridgePayloadError):
            parse_bridge_payload({"channel": "navigation", "kind": "reload", "href": "https://a.com"})

    def test_malformed_url_and_time_are_discarded(self):
        dispatch = parse_bridge_payload({
            "channel": "signal",
            "type": "EVENT_APP_INITIALIZED",
            "detail": {"url": 123, "time": "soon", "data-testid": "root"},
            "href": "https://a.com/x",
        })

        assert dispatch.detail == {"data-testid": "root"}

    def test_well_formed_url_and_time_are_kept(self):
        detail = {"url": "https://a.com/x", "time": 1_700_000_000_000}

        dispatch = parse_bridge_payload({"channel": "signal", "type": "EVENT_X", "detail": detail})

        assert dispatch.detail == detail

    def test_error_is_value_error(self):
        assert issubclass(BridgePayloadError, ValueError)
