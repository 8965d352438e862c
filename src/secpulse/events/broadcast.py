"""Real-time broadcast of pipeline events to dashboard subscribers.

The WebSocket tier subscribes to these Redis pub/sub channels and fans the
envelopes out to connected SOC/CEO dashboards.
"""

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from pydantic import BaseModel
from redis.exceptions import RedisError

from secpulse.id_generator import generate_id

logger = logging.getLogger(__name__)

# Channel names
NEW_INCIDENT = "new_incident"
INCIDENT_UPDATE = "incident_update"
METRICS_UPDATE = "metrics_update"


class BroadcastEnvelope(BaseModel):
    event_id: str
    event_type: str
    occurred_at: datetime
    source_system: str = "secpulse-sync"
    payload: dict


def build_envelope(event_type: str, payload: dict) -> BroadcastEnvelope:
    return BroadcastEnvelope(
        event_id=generate_id("evt_"),
        event_type=event_type,
        occurred_at=datetime.now(timezone.utc),
        payload=payload,
    )


class Broadcaster(ABC):
    """Sink for committed-write events."""

    @abstractmethod
    async def publish(self, event_type: str, payload: dict) -> bool:
        """Publish an event. Returns True if it was handed to the transport."""
        ...


class RedisBroadcaster(Broadcaster):
    """Publishes JSON envelopes on a Redis channel named after the event type."""

    def __init__(self, redis):
        self.redis = redis

    async def publish(self, event_type: str, payload: dict) -> bool:
        envelope = build_envelope(event_type, payload)
        body = json.dumps(envelope.model_dump(mode="json"), separators=(",", ":"))
        try:
            receivers = await self.redis.publish(event_type, body)
        except RedisError as exc:
            logger.warning("Broadcast of %s failed: %s", event_type, exc)
            return False
        logger.debug("Broadcast %s to %s subscribers", event_type, receivers)
        return True


class NullBroadcaster(Broadcaster):
    """Used when no Redis is configured (local mode)."""

    async def publish(self, event_type: str, payload: dict) -> bool:
        logger.debug("No broadcaster configured, dropping %s", event_type)
        return False
