import logging

from fastapi import WebSocket
from fastapi.websockets import WebSocketState

from royale.core.exceptions import ProtocolError
from royale.core.metrics import PROTOCOL_ERRORS_TOTAL, record_message
from royale.game_engine.protocol import JoinMessage, parse_inbound
from royale.game_engine.session import Disconnect, Join, Submit
from royale.services.game_service import GameService

logger = logging.getLogger(__name__)


class WebSocketHandler:
    """Translates client frames into game session events."""

    def __init__(self, service: GameService):
        self.service = service

    def handle_message(self, connection_id: str, raw: str | bytes) -> None:
        """Handle an incoming WebSocket frame.

        Malformed frames are logged and dropped without a reply.
        """
        try:
            message = parse_inbound(raw)
        except ProtocolError as e:
            PROTOCOL_ERRORS_TOTAL.inc()
            logger.warning(f"Dropping frame from {connection_id}: {e.message}")
            return

        record_message("in", message.type)
        logger.debug(f"Received {message.type} from {connection_id}")

        if isinstance(message, JoinMessage):
            self.service.dispatch(Join(connection_id, message.player_name))
        else:
            self.service.dispatch(Submit(connection_id, message.q_num, message.code))


async def websocket_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint for real-time game communication."""
    service: GameService = websocket.app.state.game_service
    registry = service.broadcaster.registry
    handler = WebSocketHandler(service)

    connection_id = await registry.register(websocket)

    try:
        while websocket.application_state == WebSocketState.CONNECTED:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            handler.handle_message(connection_id, message.get("text") or message.get("bytes") or "")
    finally:
        service.dispatch(Disconnect(connection_id))
        await registry.unregister(connection_id)
