"""Raw text envelope: the frame is the payload."""


class RawEnvelopeStrategy:
    """
    Raw envelope strategy (default).

    Frames are relayed verbatim, as the plain WebSocket server does.
    """

    @property
    def format_name(self) -> str:
        return "raw"

    def decode(self, frame: str) -> str:
        return frame

    def encode(self, payload: str, event: str | None = None) -> str:
        return payload
