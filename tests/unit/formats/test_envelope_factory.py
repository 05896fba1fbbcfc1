"""Unit tests for envelope strategy factory."""

import pytest

from ws_relay.api.ws.formats.event import EventEnvelopeStrategy
from ws_relay.api.ws.formats.factory import select_envelope_strategy
from ws_relay.api.ws.formats.raw import RawEnvelopeStrategy


class TestSelectEnvelopeStrategy:
    """Test suite for select_envelope_strategy factory."""

    def test_select_raw_strategy(self) -> None:
        strategy = select_envelope_strategy("raw")

        assert isinstance(strategy, RawEnvelopeStrategy)
        assert strategy.format_name == "raw"

    def test_select_event_strategy(self) -> None:
        strategy = select_envelope_strategy("event", message_event="chat")

        assert isinstance(strategy, EventEnvelopeStrategy)
        assert strategy.format_name == "event"
        assert strategy.message_event == "chat"

    @pytest.mark.parametrize("envelope_name", ["", "json", "EVENT", "socketio"])
    def test_unknown_names_default_to_raw(self, envelope_name: str) -> None:
        """Test that unsupported envelopes default to raw."""
        strategy = select_envelope_strategy(envelope_name)

        assert isinstance(strategy, RawEnvelopeStrategy)
