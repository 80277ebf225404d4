"""
SSE Module - In-process event broker

Fans domain events (request/reschedule/order changes) out to the SSE
streams of the users they concern. Subscribers are keyed by user id and
also indexed by role, so "all managers" style broadcasts work.
"""
import asyncio
import uuid
from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from housing_desk.core.logging import get_logger

logger = get_logger(__name__)

QUEUE_SIZE = 100


class Subscription:
    """One open SSE stream."""

    def __init__(self, user_id: uuid.UUID, role: str):
        self.user_id = user_id
        self.role = role
        self.queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=QUEUE_SIZE)


class EventBroker:
    """Per-process pub/sub for realtime sync."""

    def __init__(self) -> None:
        self._subscriptions: dict[uuid.UUID, set[Subscription]] = defaultdict(set)

    def subscribe(self, user_id: uuid.UUID, role: str) -> Subscription:
        subscription = Subscription(user_id, role)
        self._subscriptions[user_id].add(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        streams = self._subscriptions.get(subscription.user_id)
        if not streams:
            return
        streams.discard(subscription)
        if not streams:
            del self._subscriptions[subscription.user_id]

    @property
    def connection_count(self) -> int:
        return sum(len(s) for s in self._subscriptions.values())

    def publish(
        self,
        event_type: str,
        payload: dict[str, Any],
        user_ids: Iterable[uuid.UUID | None] = (),
        roles: Iterable[str] = (),
    ) -> int:
        """
        Deliver an event to the given users and roles.

        Returns the number of streams the event was queued on.
        """
        event = {
            "type": event_type,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **payload,
        }
        targets = {uid for uid in user_ids if uid is not None}
        role_set = set(roles)

        delivered = 0
        for user_id, streams in list(self._subscriptions.items()):
            for subscription in list(streams):
                if user_id not in targets and subscription.role not in role_set:
                    continue
                try:
                    subscription.queue.put_nowait(event)
                    delivered += 1
                except asyncio.QueueFull:
                    logger.warning(
                        "SSE queue full, dropping event",
                        user_id=str(user_id),
                        event_type=event_type,
                    )
        return delivered


broker = EventBroker()
