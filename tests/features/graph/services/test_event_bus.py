"""Tests for the in-process event bus."""

import asyncio

import pytest

from threatgraph.core.schemas import AuthenticatedUser
from threatgraph.features.graph.models import EntityKind, GraphEntity
from threatgraph.features.graph.services.event_bus import (
    BusTopic,
    EventBus,
    EventKind,
)

CAMPAIGN_ADDED = BusTopic(EntityKind.CAMPAIGN, EventKind.ADDED)


def make_entity(entity_id: int = 1) -> GraphEntity:
    return GraphEntity(id=entity_id, label="Campaign", properties={"name": "Op X"})


class TestBusTopic:
    def test_topic_name(self):
        assert str(CAMPAIGN_ADDED) == "Campaign_ADDED_TOPIC"
        assert (
            str(BusTopic(EntityKind.EXTERNAL_REFERENCE, EventKind.EDITED))
            == "External-Reference_EDITED_TOPIC"
        )


class TestEventBus:
    @pytest.mark.asyncio
    async def test_subscriber_receives_notification(
        self, event_bus: EventBus, analyst: AuthenticatedUser
    ):
        entity = make_entity()
        async with event_bus.subscribe(CAMPAIGN_ADDED) as subscription:
            returned = event_bus.notify(CAMPAIGN_ADDED, entity, analyst)
            notification = await asyncio.wait_for(subscription.get(), timeout=1)

        assert returned is entity
        assert notification.entity == entity
        assert notification.actor == analyst
        assert notification.topic == CAMPAIGN_ADDED

    @pytest.mark.asyncio
    async def test_topics_are_isolated(self, event_bus: EventBus):
        edited = BusTopic(EntityKind.CAMPAIGN, EventKind.EDITED)
        async with event_bus.subscribe(edited) as subscription:
            _ = event_bus.notify(CAMPAIGN_ADDED, make_entity(), None)
            with pytest.raises(asyncio.QueueEmpty):
                _ = subscription.get_nowait()

    @pytest.mark.asyncio
    async def test_full_queue_drops_without_blocking(self):
        bus = EventBus(queue_size=1)
        async with bus.subscribe(CAMPAIGN_ADDED) as subscription:
            _ = bus.notify(CAMPAIGN_ADDED, make_entity(1), None)
            _ = bus.notify(CAMPAIGN_ADDED, make_entity(2), None)
            assert subscription.get_nowait().entity.id == 1
            with pytest.raises(asyncio.QueueEmpty):
                _ = subscription.get_nowait()

    @pytest.mark.asyncio
    async def test_unsubscribe_on_exit(self, event_bus: EventBus):
        async with event_bus.subscribe(CAMPAIGN_ADDED):
            assert event_bus.subscriber_count(CAMPAIGN_ADDED) == 1
        assert event_bus.subscriber_count(CAMPAIGN_ADDED) == 0
        # Publishing without subscribers is a no-op.
        _ = event_bus.notify(CAMPAIGN_ADDED, make_entity(), None)

    @pytest.mark.asyncio
    async def test_async_iteration(self, event_bus: EventBus):
        async with event_bus.subscribe(CAMPAIGN_ADDED) as subscription:
            for entity_id in (1, 2):
                _ = event_bus.notify(CAMPAIGN_ADDED, make_entity(entity_id), None)
            received = []
            async for notification in subscription:
                received.append(notification.entity.id)
                if len(received) == 2:
                    break
        assert received == [1, 2]
