"""
Random partner matching.

The Matchmaker owns the waiting pool and the partnership table. Every public operation
takes the same lock, completes synchronously against the current state and hands its
notifications to the connection registry, which only enqueues them.

The lock covers the waiting pool and the partnership table only. Liveness checks read
the registry, which is mutated outside the lock, and notifications go through
asyncio.Queue.put_nowait, which is not thread-safe. Every caller must therefore run on
the single event loop that owns the registry.
"""

import threading
from collections import deque
from typing import Deque, Dict, List, Optional, Tuple

from logging_config import get_logger
from registry import ConnectionRegistry

logger = get_logger(__name__)

Pair = Tuple[str, str]


class InvariantViolation(AssertionError):
    """The waiting pool and partnership table disagree. Always a programming error."""


def room_label(first: str, second: str) -> str:
    return f"room_{first}_{second}"


class Matchmaker:
    def __init__(self, registry: ConnectionRegistry, check_invariants: bool = False):
        self.registry = registry
        self.check_invariants_enabled = check_invariants
        self._lock = threading.Lock()
        self._waiting: Deque[str] = deque()
        self._partners: Dict[str, str] = {}
        self._rooms: Dict[str, str] = {}

    # Public operations

    def request_match(self, connection_id: str) -> List[Pair]:
        """Put a connection in the waiting pool and run a pairing pass.

        Any current partnership is torn down first; the former partner is told but
        not re-queued. Returns the pairs formed by the pass.
        """
        with self._lock:
            if connection_id not in self.registry:
                logger.debug(f"Ignoring match request from unknown connection {connection_id}")
                return []
            self._release_partner(connection_id)
            queued = self._enqueue(connection_id)
            pairs = self._pair_waiting()
            if queued:
                self._notify_if_waiting(connection_id)
            self._verify()
            return pairs

    def request_next(self, connection_id: str) -> List[Pair]:
        """Drop the current partner and search again; the former partner searches too."""
        with self._lock:
            if connection_id not in self.registry:
                logger.debug(f"Ignoring next request from unknown connection {connection_id}")
                return []
            logger.info(f"Connection {connection_id} requested next partner")
            partner_id = self._release_partner(connection_id)
            requeued = []
            if partner_id and partner_id in self.registry and self._enqueue(partner_id):
                requeued.append(partner_id)
            if self._enqueue(connection_id):
                requeued.append(connection_id)
            pairs = self._pair_waiting()
            for waiting_id in requeued:
                self._notify_if_waiting(waiting_id)
            self._verify()
            return pairs

    def request_stop(self, connection_id: str) -> None:
        """Leave the pool and any partnership without searching again."""
        with self._lock:
            if connection_id not in self.registry:
                logger.debug(f"Ignoring stop request from unknown connection {connection_id}")
                return
            logger.info(f"Connection {connection_id} stopped chatting")
            self._purge(connection_id)
            self._verify()

    def on_disconnect(self, connection_id: str) -> None:
        """Purge every trace of a connection. Valid after it has left the registry."""
        with self._lock:
            self._purge(connection_id)
            self._verify()
        logger.debug(f"Purged matchmaking state for connection {connection_id}")

    # Introspection

    def partner_of(self, connection_id: str) -> Optional[str]:
        with self._lock:
            return self._partners.get(connection_id)

    def room_of(self, connection_id: str) -> Optional[str]:
        with self._lock:
            return self._rooms.get(connection_id)

    def is_waiting(self, connection_id: str) -> bool:
        with self._lock:
            return connection_id in self._waiting

    def waiting(self) -> List[str]:
        with self._lock:
            return list(self._waiting)

    @property
    def waiting_count(self) -> int:
        with self._lock:
            return len(self._waiting)

    @property
    def paired_count(self) -> int:
        """Number of connections currently in a partnership (twice the number of pairs)."""
        with self._lock:
            return len(self._partners)

    def check_invariants(self) -> None:
        with self._lock:
            self._check_invariants()

    # Internals, all called with the lock held

    def _enqueue(self, connection_id: str) -> bool:
        if connection_id in self._waiting:
            return False
        self._waiting.append(connection_id)
        logger.debug(f"Connection {connection_id} added to waiting pool (waiting: {len(self._waiting)})")
        return True

    def _pair_waiting(self) -> List[Pair]:
        pairs = []
        while len(self._waiting) >= 2:
            first = self._waiting.popleft()
            second = self._waiting.popleft()

            first_alive = first in self.registry
            second_alive = second in self.registry
            if not (first_alive and second_alive):
                # A survivor keeps its seniority at the front of the pool
                survivor = first if first_alive else second if second_alive else None
                if survivor:
                    self._waiting.appendleft(survivor)
                logger.debug(f"Pairing {first} with {second} skipped, survivor: {survivor}")
                continue

            room = room_label(first, second)
            self._partners[first] = second
            self._partners[second] = first
            self._rooms[first] = room
            self._rooms[second] = room

            self.registry.send(first, {"type": "partnerFound", "partnerId": second})
            self.registry.send(second, {"type": "partnerFound", "partnerId": first})
            logger.info(f"Matched {first} with {second} in {room}")
            pairs.append((first, second))
        return pairs

    def _release_partner(self, connection_id: str) -> Optional[str]:
        """Break the partnership of connection_id on both sides and notify the partner."""
        partner_id = self._partners.pop(connection_id, None)
        self._rooms.pop(connection_id, None)
        if partner_id is None:
            return None
        self._partners.pop(partner_id, None)
        self._rooms.pop(partner_id, None)
        self.registry.send(partner_id, {"type": "partnerDisconnected"})
        logger.info(f"Partnership {connection_id} <-> {partner_id} released")
        return partner_id

    def _purge(self, connection_id: str) -> None:
        self._release_partner(connection_id)
        try:
            self._waiting.remove(connection_id)
        except ValueError:
            pass

    def _notify_if_waiting(self, connection_id: str) -> None:
        if connection_id in self._waiting:
            self.registry.send(connection_id, {"type": "waitingForPartner"})

    def _verify(self) -> None:
        if self.check_invariants_enabled:
            self._check_invariants()

    def _check_invariants(self) -> None:
        if len(set(self._waiting)) != len(self._waiting):
            raise InvariantViolation(f"Duplicate entries in waiting pool: {list(self._waiting)}")
        for connection_id, partner_id in self._partners.items():
            if connection_id == partner_id:
                raise InvariantViolation(f"Connection {connection_id} is partnered with itself")
            if self._partners.get(partner_id) != connection_id:
                raise InvariantViolation(f"Partnership {connection_id} -> {partner_id} is not symmetric")
            if connection_id in self._waiting:
                raise InvariantViolation(f"Connection {connection_id} is both partnered and waiting")
            if self._rooms.get(connection_id) != self._rooms.get(partner_id):
                raise InvariantViolation(f"Partners {connection_id} and {partner_id} have different rooms")
