import asyncio
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from starlette.websockets import WebSocket

from ws_relay.constants import SessionState


class Session(BaseModel):  # type: ignore[misc]
    """
    One connected client tracked by the relay.

    The transport is owned by the registry entry; nothing outside the
    connection manager writes to it directly.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str = Field(frozen=True)
    transport: WebSocket = Field(frozen=True, repr=False)
    connected_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), frozen=True
    )
    remote_address: str | None = None
    state: SessionState = SessionState.CONNECTING

    # Whole frames only; concurrent broadcasts must not interleave writes
    _send_lock: asyncio.Lock = PrivateAttr(default_factory=asyncio.Lock)

    @property
    def is_open(self) -> bool:
        return self.state == SessionState.OPEN

    async def send(self, text: str) -> None:
        async with self._send_lock:
            await self.transport.send_text(text)


class DeliveryResult(BaseModel):  # type: ignore[misc]
    """Outcome of a single send attempt to one recipient."""

    session_id: str
    ok: bool
    error: str | None = None

    @classmethod
    def success(cls, session_id: str) -> "DeliveryResult":
        return cls(session_id=session_id, ok=True)

    @classmethod
    def failure(cls, session_id: str, error: BaseException) -> "DeliveryResult":
        return cls(session_id=session_id, ok=False, error=repr(error))
