import asyncio
import time
import uuid

from starlette.websockets import WebSocket, WebSocketDisconnect

from ws_relay.api.ws.formats import (
    EnvelopeStrategy,
    RawEnvelopeStrategy,
    select_envelope_strategy,
)
from ws_relay.constants import (
    WS_CLOSE_GOING_AWAY,
    WS_CLOSE_INTERNAL_ERROR,
    BroadcastPolicy,
    SessionState,
)
from ws_relay.logging import logger
from ws_relay.schemas.session import DeliveryResult, Session
from ws_relay.settings import Settings
from ws_relay.utils.metrics import MetricsCollector


class ConnectionManager:
    """
    Registry of open relay sessions and fan-out of their messages.

    Tracks connected clients by session id for O(1) lookups. Every registry
    mutation (connect, disconnect, removal after a failed write) runs under
    a single asyncio lock; sends happen outside the lock on a snapshot so a
    slow recipient never blocks connects or disconnects.
    """

    def __init__(
        self,
        policy: BroadcastPolicy = BroadcastPolicy.ALL,
        envelope: EnvelopeStrategy | None = None,
        ack_template: str = "Server received: {payload}",
        ack_event: str = "ack",
    ) -> None:
        """
        Initializes a new instance of the `ConnectionManager` class.

        Args:
            policy: Target set used by on_message.
            envelope: Strategy wrapping outbound payloads, raw by default.
            ack_template: Acknowledgment text for the ACK policy; ``{payload}``
                is replaced by the received payload.
            ack_event: Event name of acknowledgments (event envelope only).
        """
        self.sessions: dict[str, Session] = {}
        self.policy = BroadcastPolicy(policy)
        self.envelope: EnvelopeStrategy = envelope or RawEnvelopeStrategy()
        self.ack_template = ack_template
        self.ack_event = ack_event
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "ConnectionManager":
        return cls(
            policy=settings.BROADCAST_POLICY,
            envelope=select_envelope_strategy(
                settings.ENVELOPE.value, message_event=settings.MESSAGE_EVENT
            ),
            ack_template=settings.ACK_TEMPLATE,
            ack_event=settings.ACK_EVENT,
        )

    def __len__(self) -> int:
        return len(self.sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self.sessions

    @property
    def count(self) -> int:
        """Number of open sessions."""
        return len(self.sessions)

    def session_ids(self) -> list[str]:
        return list(self.sessions)

    def get_session(self, session_id: str) -> Session | None:
        """
        Get session by id.

        Args:
            session_id: The session id to look up.

        Returns:
            Session if registered, None otherwise.
        """
        return self.sessions.get(session_id)

    def is_registered(self, session: Session) -> bool:
        return self.sessions.get(session.id) is session

    def _allocate_id(self) -> str:
        # Caller holds the lock
        while True:
            session_id = str(uuid.uuid4())
            if session_id not in self.sessions:
                return session_id
            logger.warning(f"Session id collision on {session_id}, retrying")

    def _remove(self, session_id: str) -> Session | None:
        # Caller holds the lock
        session = self.sessions.pop(session_id, None)
        if session is not None:
            session.state = SessionState.CLOSED
        return session

    async def on_connect(
        self, transport: WebSocket, remote_address: str | None = None
    ) -> Session:
        """
        Registers an accepted transport as a new open session.

        Args:
            transport: Accepted WebSocket, owned by the session from now on.
            remote_address: Optional "host:port" string for logging.

        Returns:
            The new session in OPEN state.
        """
        async with self._lock:
            session = Session(
                id=self._allocate_id(),
                transport=transport,
                remote_address=remote_address,
            )
            self.sessions[session.id] = session
            session.state = SessionState.OPEN
            total = len(self.sessions)

        MetricsCollector.record_session_opened()
        logger.info(
            f"[+] session {session.id} from {remote_address or '?'} "
            f"({total} connected)"
        )
        return session

    async def on_disconnect(
        self, session: Session, status: str = "closed"
    ) -> bool:
        """
        Removes a session from the registry.

        Idempotent: disconnecting an already removed session does nothing.

        Args:
            session: The session to remove.
            status: Reason label for metrics ('closed', 'malformed', 'idle').

        Returns:
            True if the session was removed by this call.
        """
        async with self._lock:
            removed = self._remove(session.id)
            total = len(self.sessions)

        if removed is None:
            return False

        MetricsCollector.record_session_closed(status)
        logger.info(f"[-] session {session.id} ({total} connected)")
        return True

    async def on_message(
        self, session: Session, payload: str
    ) -> list[DeliveryResult]:
        """
        Fans out a payload received from ``session`` per the active policy.

        Messages from sessions that are no longer registered are ignored.

        Args:
            session: Sender.
            payload: Opaque text, forwarded verbatim.

        Returns:
            Delivery results, the sender acknowledgment first for ACK.
        """
        if not self.is_registered(session):
            logger.debug(f"Ignoring message from unregistered session {session.id}")
            return []

        MetricsCollector.record_message_received()

        if self.policy == BroadcastPolicy.ALL:
            return await self.broadcast(payload)

        if self.policy == BroadcastPolicy.OTHERS:
            return await self.broadcast(payload, exclude_session_id=session.id)

        ack = await self.send_to(
            session.id,
            self.ack_template.format(payload=payload),
            event=self.ack_event,
        )
        results = await self.broadcast(payload, exclude_session_id=session.id)
        return [ack, *results] if ack is not None else results

    async def _deliver(
        self, session: Session, frame: str
    ) -> DeliveryResult | None:
        """
        Sends one frame to one session and captures the outcome.

        Returns:
            DeliveryResult, or None if the session closed before the write.
        """
        if not session.is_open:
            return None

        try:
            await session.send(frame)
        except (WebSocketDisconnect, ConnectionError, RuntimeError) as e:
            # WebSocketDisconnect: Client disconnected
            # ConnectionError: Network errors
            # RuntimeError: WebSocket in invalid state
            logger.warning(f"Failed to send to session {session.id}: {e!r}")
            result = DeliveryResult.failure(session.id, e)
        except Exception as e:
            logger.warning(
                f"Unexpected error sending to session {session.id}: {e!r}"
            )
            result = DeliveryResult.failure(session.id, e)
        else:
            result = DeliveryResult.success(session.id)

        MetricsCollector.record_delivery(result.ok)
        return result

    async def _close_transport(self, session: Session, code: int) -> None:
        try:
            await session.transport.close(code=code)
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            logger.debug(f"Session {session.id} already closed: {e!r}")

    async def _drop_failed(self, results: list[DeliveryResult]) -> None:
        """
        Treats every failed write as an implicit disconnect.

        The session leaves the registry and its transport is closed with
        1011, which ends the session's receive loop.
        """
        failed = [r.session_id for r in results if not r.ok]
        if not failed:
            return

        async with self._lock:
            dropped = [self._remove(sid) for sid in failed]

        for session in dropped:
            if session is not None:
                MetricsCollector.record_session_closed("dropped")
                logger.info(f"[-] session {session.id} dropped after write failure")
                await self._close_transport(session, WS_CLOSE_INTERNAL_ERROR)

    async def send_to(
        self, session_id: str, payload: str, event: str | None = None
    ) -> DeliveryResult | None:
        """
        Delivers a payload to a single session.

        Args:
            session_id: Recipient.
            payload: Text to deliver, wrapped in the active envelope.
            event: Optional event name for the event envelope.

        Returns:
            DeliveryResult, or None if the session is not registered.
        """
        session = self.get_session(session_id)
        if session is None:
            return None

        result = await self._deliver(session, self.envelope.encode(payload, event))
        if result is not None:
            await self._drop_failed([result])
        return result

    async def broadcast(
        self, payload: str, exclude_session_id: str | None = None
    ) -> list[DeliveryResult]:
        """
        Broadcasts a payload to all open sessions concurrently.

        A failed write to one recipient is logged, reported in the results and
        removes that recipient; it never stops delivery to the others.

        Args:
            payload: Text to deliver, wrapped in the active envelope.
            exclude_session_id: Optional session that must not receive it.

        Returns:
            One DeliveryResult per recipient that was still open.
        """
        async with self._lock:
            recipients = [
                session
                for session_id, session in self.sessions.items()
                if session_id != exclude_session_id
            ]

        if not recipients:
            return []

        frame = self.envelope.encode(payload)
        start_time = time.perf_counter()
        outcomes = await asyncio.gather(
            *[self._deliver(session, frame) for session in recipients]
        )
        results = [r for r in outcomes if r is not None]
        await self._drop_failed(results)

        MetricsCollector.record_broadcast(
            len(results), time.perf_counter() - start_time
        )
        return results

    async def close_all(self, code: int = WS_CLOSE_GOING_AWAY) -> int:
        """
        Closes every open session, used on shutdown.

        Args:
            code: WebSocket close code sent to clients.

        Returns:
            Number of sessions that were closed.
        """
        async with self._lock:
            sessions = [self._remove(sid) for sid in list(self.sessions)]

        for session in sessions:
            MetricsCollector.record_session_closed("closed")
            await self._close_transport(session, code)

        return len(sessions)
