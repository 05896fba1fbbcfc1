"""Socket.IO-style ``{event, data}`` JSON envelope."""

import json

from pydantic import ValidationError

from ws_relay.exceptions import MalformedFrameError
from ws_relay.schemas.envelope import EventEnvelope


class EventEnvelopeStrategy:
    """
    Event envelope strategy.

    Inbound frames must be JSON objects matching EventEnvelope. Only frames
    whose event equals ``message_event`` are relayed; other events are
    accepted and ignored, like unhandled events on a Socket.IO server.
    """

    def __init__(self, message_event: str = "message"):
        self.message_event = message_event

    @property
    def format_name(self) -> str:
        return "event"

    def decode(self, frame: str) -> str | None:
        """
        Parse an event frame.

        Args:
            frame: JSON text frame.

        Returns:
            The ``data`` field of a message event, None for other events.

        Raises:
            MalformedFrameError: If the frame is not a valid envelope.
        """
        try:
            envelope = EventEnvelope.model_validate_json(frame)
        except ValidationError as e:
            raise MalformedFrameError(
                f"Frame is not a valid event envelope: {e.error_count()} error(s)"
            ) from e

        if envelope.event != self.message_event:
            return None
        return envelope.data

    def encode(self, payload: str, event: str | None = None) -> str:
        """
        Wrap payload as ``{"event": ..., "data": payload}``.

        Args:
            payload: Text to deliver.
            event: Event name, defaults to ``message_event``.
        """
        return json.dumps(
            EventEnvelope(
                event=event or self.message_event, data=payload
            ).model_dump()
        )
