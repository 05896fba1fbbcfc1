"""Relay envelope strategies."""

from ws_relay.api.ws.formats.event import EventEnvelopeStrategy
from ws_relay.api.ws.formats.factory import select_envelope_strategy
from ws_relay.api.ws.formats.protocol import EnvelopeStrategy
from ws_relay.api.ws.formats.raw import RawEnvelopeStrategy

__all__ = [
    "EnvelopeStrategy",
    "EventEnvelopeStrategy",
    "RawEnvelopeStrategy",
    "select_envelope_strategy",
]
