"""
Relay client.

Python counterpart of the browser hooks that talk to the relay: open a
connection, send text, get called back for every relayed message and when
the connection closes.

Usage:
    client = await connect("ws://localhost:8080/")
    client.on_message(print)
    await client.send("hello")
    ...
    await client.disconnect()
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any

import websockets

from ws_relay.api.ws.formats import select_envelope_strategy
from ws_relay.exceptions import MalformedFrameError, RelayError
from ws_relay.logging import logger

MessageCallback = Callable[[str], Awaitable[Any] | Any]
CloseCallback = Callable[[int | None], Awaitable[Any] | Any]


class NotConnectedError(RelayError):
    """Raised when sending on a client that is not connected."""

    pass


async def _invoke(callback: Callable[..., Any], *args: Any) -> None:
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class RelayClient:
    """
    Connection handle to a relay server.

    Frames are wrapped and unwrapped with the same envelope strategies the
    server uses, so ``envelope`` must match the server's ENVELOPE setting.
    """

    def __init__(
        self, url: str, envelope: str = "raw", message_event: str = "message"
    ) -> None:
        self.url = url
        self.envelope = select_envelope_strategy(
            envelope, message_event=message_event
        )
        self._connection = None
        self._reader: asyncio.Task | None = None
        self._message_callbacks: list[MessageCallback] = []
        self._close_callbacks: list[CloseCallback] = []

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    def on_message(self, callback: MessageCallback) -> MessageCallback:
        """Register a callback for relayed payloads; usable as decorator."""
        self._message_callbacks.append(callback)
        return callback

    def on_close(self, callback: CloseCallback) -> CloseCallback:
        """Register a callback receiving the close code; usable as decorator."""
        self._close_callbacks.append(callback)
        return callback

    async def connect(self) -> "RelayClient":
        if self._connection is not None:
            return self

        self._connection = await websockets.connect(self.url)
        self._reader = asyncio.create_task(self._read_loop(self._connection))
        logger.debug(f"Connected to {self.url}")
        return self

    async def send(self, text: str) -> None:
        """
        Send one message to the relay.

        Raises:
            NotConnectedError: If the client is not connected.
        """
        if self._connection is None:
            raise NotConnectedError(f"Not connected to {self.url}")
        await self._connection.send(self.envelope.encode(text))

    async def disconnect(self) -> None:
        """Close the connection and wait for close callbacks to run."""
        if self._connection is None:
            return

        await self._connection.close()
        if self._reader is not None:
            await self._reader

    async def _dispatch_frame(self, frame: str | bytes) -> None:
        if isinstance(frame, bytes):
            logger.warning("Ignoring binary frame from relay")
            return

        try:
            payload = self.envelope.decode(frame)
        except MalformedFrameError as e:
            logger.warning(f"Ignoring malformed frame from relay: {e}")
            return

        if payload is None:
            return

        for callback in self._message_callbacks:
            try:
                await _invoke(callback, payload)
            except Exception as e:
                logger.error(f"Message callback {callback!r} failed: {e!r}")

    async def _read_loop(self, connection) -> None:
        try:
            async for frame in connection:
                await self._dispatch_frame(frame)
        except websockets.ConnectionClosed as e:
            logger.debug(f"Connection to {self.url} closed: {e}")
        except Exception as e:
            logger.error(f"Reading from {self.url} failed: {e!r}")
            await connection.close()
        finally:
            self._connection = None
            for callback in self._close_callbacks:
                try:
                    await _invoke(callback, connection.close_code)
                except Exception as e:
                    logger.error(f"Close callback {callback!r} failed: {e!r}")

    async def __aenter__(self) -> "RelayClient":
        return await self.connect()

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.disconnect()


async def connect(url: str, **kwargs: Any) -> RelayClient:
    """
    Open a relay connection.

    Args:
        url: Relay URL, e.g. ``ws://localhost:8080/``.
        **kwargs: Passed to RelayClient (envelope, message_event).

    Returns:
        A connected RelayClient.
    """
    return await RelayClient(url, **kwargs).connect()
