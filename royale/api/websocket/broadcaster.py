"""Renders status messages onto the connection registry."""

import logging

from royale.api.websocket.manager import ConnectionRegistry
from royale.game_engine.protocol import StatusMessage

logger = logging.getLogger(__name__)


class Broadcaster:
    """Serializes ``StatusMessage`` frames and fans them out."""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    def send(self, connection_id: str, message: StatusMessage) -> bool:
        return self.registry.send(connection_id, message.to_wire())

    def broadcast(
        self,
        message: StatusMessage,
        recipients: frozenset[str] | None = None,
    ) -> int:
        """Send to ``recipients`` only, or to every open connection when None."""
        predicate = None if recipients is None else recipients.__contains__
        sent = self.registry.broadcast(predicate, message.to_wire())
        logger.debug(f"Broadcast {message.state.value} to {sent} connections")
        return sent

    def close_all(self) -> None:
        self.registry.close_all()
