import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class Connection:
    """A live client connection and its pending outbound events."""

    connection_id: str
    websocket: Any = None
    client_host: Optional[str] = None
    connected_at: str = field(default_factory=lambda: datetime.now().isoformat())
    outbox: asyncio.Queue = field(default_factory=asyncio.Queue)


class ConnectionRegistry:
    """Tracks every live connection by its ConnectionId.

    Connection IDs are uuid4 hex strings and are never handed out twice, so an id that
    has been unregistered stays stale forever.

    Not thread-safe: register, unregister and send (asyncio.Queue.put_nowait) must all
    run on the event loop that owns the connections.
    """

    def __init__(self):
        self._connections: Dict[str, Connection] = {}

    def register(self, websocket: Any = None, client_host: Optional[str] = None) -> Connection:
        connection_id = uuid.uuid4().hex
        connection = Connection(connection_id=connection_id, websocket=websocket, client_host=client_host)
        self._connections[connection_id] = connection
        logger.debug(f"Registered connection {connection_id} (live connections: {len(self._connections)})")
        return connection

    def unregister(self, connection_id: str) -> Optional[Connection]:
        connection = self._connections.pop(connection_id, None)
        if connection:
            logger.debug(f"Unregistered connection {connection_id} (live connections: {len(self._connections)})")
        return connection

    def get(self, connection_id: Optional[str]) -> Optional[Connection]:
        if connection_id is None:
            return None
        return self._connections.get(connection_id)

    def send(self, connection_id: str, message: dict) -> bool:
        """Queue an event for delivery to a connection.

        Never blocks. Returns False and drops the event when the connection is gone.
        """
        connection = self.get(connection_id)
        if connection is None:
            logger.debug(f"Dropping '{message.get('type')}' for unknown connection {connection_id}")
            return False
        connection.outbox.put_nowait(message)
        return True

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)
