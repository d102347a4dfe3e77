"""Fire-and-forget user notifications over Redis pub/sub.

Events are published to ``ws:user:{user_id}``; the websocket gateway
pattern-subscribes to ``ws:user:*`` and fans them out to the user's open
connections. Delivery is best effort: publishing never raises.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any

from glit.redis_client import user_channel

logger = logging.getLogger(__name__)


class NotificationEvent(str, Enum):
    ACHIEVEMENT_UNLOCKED = "achievement_unlocked"
    RANK_UP = "rank_up"
    MISSION_COMPLETED = "mission_completed"
    COINS_EARNED = "coins_earned"
    XP_EARNED = "xp_earned"


class Notifier:
    """Publishes ``{"event": ..., "data": ...}`` messages per user."""

    def __init__(self, redis: object | None) -> None:
        self.redis = redis

    async def notify(self, user_id: str, event_type: NotificationEvent | str, payload: dict[str, Any]) -> bool:
        """Publish one event. Returns False when Redis is unavailable or the publish fails."""
        if self.redis is None:
            return False

        event = event_type.value if isinstance(event_type, NotificationEvent) else event_type
        message = {"event": event, "data": payload}
        try:
            await self.redis.publish(  # type: ignore[attr-defined]
                user_channel(user_id),
                json.dumps(message, default=str),
            )
        except Exception:
            logger.warning("Failed to publish %s to ws:user:%s", event, user_id, exc_info=True)
            return False
        return True
