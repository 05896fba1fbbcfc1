from pydantic import BaseModel, ConfigDict


class EventEnvelope(BaseModel):  # type: ignore[misc]
    """
    Socket.IO-style frame: ``{"event": "message", "data": "<text>"}``.

    Extra keys are rejected so that arbitrary JSON objects are not silently
    accepted as relay messages.
    """

    model_config = ConfigDict(extra="forbid")

    event: str
    data: str
