from fastapi import APIRouter

from ws_relay.api.ws.websocket import RelayWebSocketEndpoint
from ws_relay.logging import logger

router = APIRouter()


@router.websocket_route("/")
@router.websocket_route("/ws")
class Relay(RelayWebSocketEndpoint):
    """
    Relay endpoint: every payload a session sends is handed to the
    connection manager, which fans it out per the configured policy.
    """

    async def on_receive(self, websocket, data: str):
        """
        Relays one decoded payload.

        Args:
            websocket: The WebSocket connection instance
            data (str): Payload extracted from the frame by the envelope
        """
        logger.debug(f"Received message => {data}")
        results = await self.manager.on_message(self.session, data)

        failed = sum(1 for r in results if not r.ok)
        if failed:
            logger.debug(
                f"Relayed to {len(results) - failed}/{len(results)} sessions"
            )
