from typing import Any

from logging_config import get_logger
from registry import ConnectionRegistry

logger = get_logger(__name__)

# kind -> (outbound event type, payload field)
SIGNAL_KINDS = {
    "offer": ("offer", "offer"),
    "answer": ("answer", "answer"),
    "candidate": ("ice-candidate", "candidate"),
}


class SignalRelay:
    """Forwards negotiation messages to a named recipient without looking inside them."""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    def relay(self, kind: str, sender_id: str, recipient_id: str, payload: Any) -> bool:
        """Deliver payload to recipient_id as a `kind` event from sender_id.

        Returns False when the recipient is no longer connected; the message is dropped.
        """
        if kind not in SIGNAL_KINDS:
            raise ValueError(f"Unknown signal kind: {kind}")
        event_type, field_name = SIGNAL_KINDS[kind]

        delivered = self.registry.send(recipient_id, {
            "type": event_type,
            field_name: payload,
            "from": sender_id,
        })
        if delivered:
            logger.debug(f"Relayed {kind} from {sender_id} to {recipient_id}")
        else:
            logger.debug(f"Dropped {kind} from {sender_id}: recipient {recipient_id} is gone")
        return delivered
