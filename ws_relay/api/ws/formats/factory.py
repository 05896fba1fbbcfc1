"""Factory for selecting envelope strategies."""

from ws_relay.api.ws.formats.event import EventEnvelopeStrategy
from ws_relay.api.ws.formats.protocol import EnvelopeStrategy
from ws_relay.api.ws.formats.raw import RawEnvelopeStrategy


def select_envelope_strategy(
    envelope_name: str, message_event: str = "message"
) -> EnvelopeStrategy:
    """
    Select envelope strategy based on envelope name.

    Args:
        envelope_name: Envelope identifier ('raw' or 'event')
        message_event: Event name relayed by the event envelope

    Returns:
        Appropriate EnvelopeStrategy implementation

    Note:
        Defaults to RawEnvelopeStrategy for unknown names
    """
    if envelope_name == "event":
        return EventEnvelopeStrategy(message_event=message_event)
    return RawEnvelopeStrategy()  # Default envelope
