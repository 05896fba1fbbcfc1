import asyncio
from typing import Any

from starlette.endpoints import WebSocketEndpoint
from starlette.websockets import WebSocket

from ws_relay.api.ws.formats import EnvelopeStrategy
from ws_relay.constants import (
    WS_CLOSE_GOING_AWAY,
    WS_CLOSE_INTERNAL_ERROR,
    WS_CLOSE_NORMAL,
    WS_CLOSE_UNSUPPORTED_DATA,
)
from ws_relay.exceptions import MalformedFrameError
from ws_relay.logging import clear_log_context, logger, set_log_context
from ws_relay.managers.connection_manager import ConnectionManager
from ws_relay.schemas.session import Session
from ws_relay.settings import Settings


class RelayWebSocketEndpoint(WebSocketEndpoint):  # type: ignore[misc]
    """
    WebSocket endpoint driving one relay session.

    Each connection walks through CONNECTING -> OPEN -> CLOSED: the socket is
    accepted, registered with the connection manager, fed frames until the
    client leaves (or misbehaves, or idles out), and finally unregistered.
    The connection manager and settings come from ``app.state``.
    """

    encoding = None  # Frames are decoded by the envelope strategy
    session: Session | None = None

    @property
    def manager(self) -> ConnectionManager:
        return self.scope["app"].state.connection_manager

    @property
    def settings(self) -> Settings:
        return self.scope["app"].state.settings

    @property
    def envelope(self) -> EnvelopeStrategy:
        return self.manager.envelope

    async def dispatch(self) -> None:
        """
        Manages the WebSocket session lifecycle.

        The function performs the following steps:
        1. Accepts and registers the session (on_connect).
        2. Receives frames, decoding each through the envelope strategy and
           passing relay payloads to on_receive.
        3. On a client disconnect, leaves the loop with the client's code.
        4. On a malformed frame or idle timeout, leaves the loop and closes
           the socket with 1003 or 1001 respectively.
        5. On any other error, closes with 1011 and re-raises.
        6. In every case unregisters the session (on_disconnect) before the
           socket is closed, so no broadcast writes to it afterwards.
        """
        websocket = WebSocket(self.scope, receive=self.receive, send=self.send)
        await self.on_connect(websocket)  # type: ignore[no-untyped-call]

        close_code = WS_CLOSE_NORMAL
        server_close = False
        status = "closed"

        try:
            while True:
                message = await self.receive_message(websocket)
                if message["type"] == "websocket.receive":
                    payload = await self.decode(websocket, message)
                    if payload is not None:
                        await self.on_receive(websocket, payload)
                elif message["type"] == "websocket.disconnect":
                    close_code = int(message.get("code") or WS_CLOSE_NORMAL)
                    break
        except MalformedFrameError as exc:
            logger.warning(f"Malformed frame, closing session: {exc}")
            close_code, server_close, status = (
                WS_CLOSE_UNSUPPORTED_DATA,
                True,
                "malformed",
            )
        except TimeoutError:
            logger.info(
                f"No frame for {self.settings.IDLE_TIMEOUT_SECONDS}s, "
                "closing idle session"
            )
            close_code, server_close, status = WS_CLOSE_GOING_AWAY, True, "idle"
        except Exception as exc:
            close_code, server_close = WS_CLOSE_INTERNAL_ERROR, True
            raise exc
        finally:
            await self.on_disconnect(websocket, close_code, status)  # type: ignore[no-untyped-call]
            if server_close:
                await self.close_quietly(websocket, close_code)

    async def receive_message(self, websocket: WebSocket) -> dict[str, Any]:
        """
        Waits for the next ASGI message, bounded by the idle timeout.

        Raises:
            TimeoutError: If IDLE_TIMEOUT_SECONDS is set and elapses.
        """
        timeout = self.settings.IDLE_TIMEOUT_SECONDS
        if timeout is None:
            return await websocket.receive()
        return await asyncio.wait_for(websocket.receive(), timeout=timeout)

    async def decode(  # type: ignore[override]
        self, websocket: WebSocket, message: dict[str, Any]
    ) -> str | None:
        """
        Decode an inbound frame into a relay payload.

        Only text frames are accepted; the text is unwrapped by the active
        envelope strategy.

        Args:
            websocket: WebSocket connection instance
            message: Raw message dict from WebSocket

        Returns:
            Payload to relay, or None if the frame carries nothing to relay.

        Raises:
            MalformedFrameError: For binary frames or invalid envelopes.
        """
        text = message.get("text")
        if text is None:
            raise MalformedFrameError("Binary frames are not supported")
        return self.envelope.decode(text)

    async def close_quietly(self, websocket: WebSocket, code: int) -> None:
        try:
            await websocket.close(code=code)
        except RuntimeError as e:
            # Client already gone
            logger.debug(f"Close with code {code} skipped: {e}")

    async def on_connect(self, websocket):  # type: ignore[no-untyped-def]
        """
        Accepts the connection and registers it as an open session.

        Sends WELCOME_MESSAGE to the new session when configured.
        """
        await super().on_connect(websocket)

        client = websocket.client
        remote_address = f"{client.host}:{client.port}" if client else None

        self.session = await self.manager.on_connect(
            websocket, remote_address=remote_address
        )
        set_log_context(
            session_id=self.session.id, remote_address=remote_address
        )

        if self.settings.WELCOME_MESSAGE:
            await self.manager.send_to(
                self.session.id, self.settings.WELCOME_MESSAGE
            )

    async def on_disconnect(self, websocket, close_code, status="closed"):  # type: ignore[no-untyped-def]
        """
        Unregisters the session; safe to call for an already removed one.
        """
        await super().on_disconnect(websocket, close_code)

        if self.session is not None:
            await self.manager.on_disconnect(self.session, status=status)
            logger.debug(
                f"Session {self.session.id} disconnected with code {close_code}"
            )

        clear_log_context()
