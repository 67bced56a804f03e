"""In-process publish/subscribe bus for entity notifications.

Notifications are keyed by `(entity kind, event kind)`. Publishing never
waits for subscribers: each subscriber owns a bounded queue and an event
that does not fit is dropped with a warning.
"""

import asyncio
import logging
from collections import defaultdict
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import NamedTuple, Protocol

from threatgraph.core.schemas import AuthenticatedUser
from threatgraph.core.settings import get_settings
from threatgraph.features.graph.models import EntityKind, GraphEntity

logger = logging.getLogger(__name__)


class EventKind(StrEnum):
    ADDED = "ADDED"
    EDITED = "EDITED"


class BusTopic(NamedTuple):
    entity_kind: EntityKind
    event_kind: EventKind

    def __str__(self) -> str:
        return f"{self.entity_kind.value}_{self.event_kind.value}_TOPIC"


@dataclass(frozen=True)
class Notification:
    topic: BusTopic
    entity: GraphEntity
    actor: AuthenticatedUser | None
    published_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class Notifier(Protocol):
    """Anything that can publish a post-commit notification."""

    def notify(
        self, topic: BusTopic, entity: GraphEntity, actor: AuthenticatedUser | None
    ) -> GraphEntity:
        """Publish `entity` on `topic` and return it unchanged."""
        ...


class Subscription:
    """A queue of notifications for one topic."""

    def __init__(self, topic: BusTopic, max_size: int):
        self.topic = topic
        self.queue: asyncio.Queue[Notification] = asyncio.Queue(maxsize=max_size)

    async def get(self) -> Notification:
        return await self.queue.get()

    def get_nowait(self) -> Notification:
        return self.queue.get_nowait()

    def __aiter__(self) -> AsyncIterator[Notification]:
        return self._iterate()

    async def _iterate(self) -> AsyncGenerator[Notification, None]:
        while True:
            yield await self.queue.get()


class EventBus(Notifier):
    """Fan-out of notifications to the subscribers of each topic."""

    def __init__(self, queue_size: int = 1000):
        self.queue_size = queue_size
        self._subscriptions: defaultdict[BusTopic, list[Subscription]] = defaultdict(
            list
        )

    def notify(
        self, topic: BusTopic, entity: GraphEntity, actor: AuthenticatedUser | None
    ) -> GraphEntity:
        notification = Notification(topic=topic, entity=entity, actor=actor)
        for subscription in list(self._subscriptions.get(topic, ())):
            try:
                subscription.queue.put_nowait(notification)
            except asyncio.QueueFull:
                logger.warning(
                    "Dropping %s notification for entity %s: subscriber queue full",
                    topic,
                    entity.id,
                )
        logger.debug("Published %s for entity %s", topic, entity.id)
        return entity

    def subscriber_count(self, topic: BusTopic) -> int:
        return len(self._subscriptions.get(topic, ()))

    @asynccontextmanager
    async def subscribe(self, topic: BusTopic) -> AsyncGenerator[Subscription, None]:
        """Receive notifications for `topic` until the context exits."""
        subscription = Subscription(topic, self.queue_size)
        self._subscriptions[topic].append(subscription)
        try:
            yield subscription
        finally:
            self._subscriptions[topic].remove(subscription)
            if not self._subscriptions[topic]:
                del self._subscriptions[topic]


_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Get the process-wide event bus."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus(queue_size=get_settings().event_queue_size)
    return _event_bus
