"""
Protocol for relay envelope strategies.

Defines how a text frame is unwrapped into a relay payload and how a payload
is wrapped back into a frame, using structural subtyping (Protocol). Any
class implementing these methods is compatible without explicit inheritance.
"""

from typing import Protocol


class EnvelopeStrategy(Protocol):
    """
    Protocol for text-frame envelope handling.

    Example:
        ```python
        from ws_relay.api.ws.formats import select_envelope_strategy


        strategy = select_envelope_strategy("event")
        payload = strategy.decode('{"event": "message", "data": "hi"}')
        frame = strategy.encode(payload)
        ```
    """

    def decode(self, frame: str) -> str | None:
        """
        Extract the relay payload from an inbound text frame.

        Args:
            frame: Raw text frame as received from the client.

        Returns:
            The payload to relay, or None if the frame is well-formed but not
            a relay message (e.g. a different event name).

        Raises:
            MalformedFrameError: If the frame does not follow the envelope.
        """
        ...

    def encode(self, payload: str, event: str | None = None) -> str:
        """
        Wrap a payload into an outbound text frame.

        Args:
            payload: Text to deliver.
            event: Event name for envelopes that carry one; strategies
                without events ignore it.

        Returns:
            Text frame ready for websocket.send_text().
        """
        ...

    @property
    def format_name(self) -> str:
        """Human-readable envelope name for logging (e.g. 'raw', 'event')."""
        ...
