from typing import Any, Optional

from pydantic import ValidationError

from backend import RedisBackend
from logging_config import get_logger
from matchmaker import Matchmaker
from registry import Connection, ConnectionRegistry
from relay import SignalRelay
from schemas.signaling import Answer, IceCandidate, NextPartner, Offer, StartChat, StopChat, parse_event

logger = get_logger(__name__)


class EventDispatcher:
    """Turns connection events into matchmaker and relay operations, one event at a time."""

    def __init__(
        self,
        registry: Optional[ConnectionRegistry] = None,
        matchmaker: Optional[Matchmaker] = None,
        presence: Optional[RedisBackend] = None,
        check_invariants: bool = False,
    ):
        self.registry = registry if registry is not None else ConnectionRegistry()
        if matchmaker is None:
            matchmaker = Matchmaker(self.registry, check_invariants=check_invariants)
        self.matchmaker = matchmaker
        self.relay = SignalRelay(self.registry)
        self.presence = presence

    def connect(self, websocket: Any = None, client_host: Optional[str] = None) -> Connection:
        connection = self.registry.register(websocket, client_host=client_host)
        self.registry.send(connection.connection_id, {
            "type": "connected",
            "connectionId": connection.connection_id,
        })
        if self.presence:
            self.presence.add_connection(connection.connection_id, connection.connected_at, client_host)
        logger.info(f"User connected: {connection.connection_id}")
        return connection

    def disconnect(self, connection_id: str) -> None:
        # Unregister first so a pairing pass running for someone else never picks this id
        self.registry.unregister(connection_id)
        self.matchmaker.on_disconnect(connection_id)
        if self.presence:
            self.presence.remove_connection(connection_id)
        logger.info(f"User disconnected: {connection_id}")

    def handle_raw(self, connection_id: str, data: str) -> bool:
        """Parse and dispatch one client frame. Malformed frames are logged and dropped."""
        try:
            event = parse_event(data)
        except ValidationError as e:
            logger.warning(f"Dropping malformed message from {connection_id}: {e.error_count()} error(s)")
            logger.debug(f"Malformed message from {connection_id}: {e}")
            return False
        self.handle(connection_id, event)
        return True

    def handle(self, connection_id: str, event) -> None:
        if isinstance(event, StartChat):
            pairs = self.matchmaker.request_match(connection_id)
            self._record(pairs)
        elif isinstance(event, NextPartner):
            pairs = self.matchmaker.request_next(connection_id)
            self._record(pairs)
        elif isinstance(event, StopChat):
            self.matchmaker.request_stop(connection_id)
        elif isinstance(event, Offer):
            logger.debug(f"Offer from {connection_id} to {event.to}")
            self.relay.relay("offer", connection_id, event.to, event.offer)
        elif isinstance(event, Answer):
            logger.debug(f"Answer from {connection_id} to {event.to}")
            self.relay.relay("answer", connection_id, event.to, event.answer)
        elif isinstance(event, IceCandidate):
            self.relay.relay("candidate", connection_id, event.to, event.candidate)
        else:
            raise TypeError(f"Unsupported event: {type(event).__name__}")

    def _record(self, pairs) -> None:
        if pairs and self.presence:
            self.presence.record_pairings(len(pairs))
