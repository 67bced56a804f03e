"""Tests for the edit entity use case."""

import pytest

from threatgraph.core.schemas import AuthenticatedUser
from threatgraph.features.graph.models import EntityKind, GraphEntity, RelationType
from threatgraph.features.graph.services.edit_context import EditContextStore
from threatgraph.features.graph.services.event_bus import (
    BusTopic,
    EventBus,
    EventKind,
)
from threatgraph.features.graph.usecases import (
    CreateEntityUseCaseImpl,
    EditEntityUseCaseImpl,
    EntityNotFoundError,
    InvalidReferenceError,
    ValidationError,
)
from tests.utils.memory_graph import MemoryGraphStore

CAMPAIGN_EDITED = BusTopic(EntityKind.CAMPAIGN, EventKind.EDITED)


@pytest.fixture
def edit(
    memory_store: MemoryGraphStore,
    event_bus: EventBus,
    edit_contexts: EditContextStore,
) -> EditEntityUseCaseImpl:
    return EditEntityUseCaseImpl(
        store=memory_store,
        notifier=event_bus,
        edit_contexts=edit_contexts,
        entity_kind=EntityKind.CAMPAIGN,
    )


@pytest.fixture
async def campaign(
    memory_store: MemoryGraphStore, event_bus: EventBus, analyst: AuthenticatedUser
) -> GraphEntity:
    create = CreateEntityUseCaseImpl(store=memory_store, notifier=event_bus)
    return await create.execute(analyst, EntityKind.CAMPAIGN, {"name": "Op X"})


class TestEditField:
    @pytest.mark.asyncio
    async def test_replaces_value_and_bumps_modified(
        self,
        edit: EditEntityUseCaseImpl,
        event_bus: EventBus,
        analyst: AuthenticatedUser,
        campaign: GraphEntity,
    ):
        async with event_bus.subscribe(CAMPAIGN_EDITED) as subscription:
            updated = await edit.edit_field(
                analyst, campaign.id, "description", "Spearphishing wave"
            )
            notification = subscription.get_nowait()

        assert updated.get("description") == "Spearphishing wave"
        assert updated.get("created") == campaign.get("created")
        assert updated.get("modified") >= campaign.get("modified")
        assert updated.get("modified") == updated.get("updated_at")
        assert notification.entity == updated

    @pytest.mark.asyncio
    async def test_timestamp_edit_sets_derived_fields(
        self,
        edit: EditEntityUseCaseImpl,
        analyst: AuthenticatedUser,
        campaign: GraphEntity,
    ):
        updated = await edit.edit_field(
            analyst, campaign.id, "first_seen", "2022-12-24T10:00:00Z"
        )
        assert updated.get("first_seen_month") == "2022-12"

    @pytest.mark.asyncio
    async def test_invalid_edits(
        self,
        edit: EditEntityUseCaseImpl,
        analyst: AuthenticatedUser,
        campaign: GraphEntity,
    ):
        with pytest.raises(ValidationError):
            _ = await edit.edit_field(analyst, campaign.id, "stix_id", "campaign--x")
        with pytest.raises(ValidationError):
            _ = await edit.edit_field(analyst, campaign.id, "name", "")
        with pytest.raises(EntityNotFoundError):
            _ = await edit.edit_field(analyst, 404, "name", "Op Y")


class TestRelations:
    @pytest.mark.asyncio
    async def test_add_and_delete_relation(
        self,
        edit: EditEntityUseCaseImpl,
        memory_store: MemoryGraphStore,
        analyst: AuthenticatedUser,
        campaign: GraphEntity,
        marking_ids: list[int],
    ):
        added = await edit.add_relation(
            analyst, campaign.id, RelationType.OBJECT_MARKING, marking_ids[0]
        )
        assert added.relation.relation_type is RelationType.OBJECT_MARKING
        assert added.relation.to_id == marking_ids[0]
        assert added.node.id == campaign.id
        assert len(memory_store.edges_from(campaign.id)) == 1

        removed = await edit.delete_relation(analyst, campaign.id, added.relation.id)
        assert removed.relation.id == added.relation.id
        assert memory_store.edges_from(campaign.id) == []

    @pytest.mark.asyncio
    async def test_add_relation_to_missing_target(
        self,
        edit: EditEntityUseCaseImpl,
        memory_store: MemoryGraphStore,
        analyst: AuthenticatedUser,
        campaign: GraphEntity,
    ):
        with pytest.raises(InvalidReferenceError):
            _ = await edit.add_relation(
                analyst, campaign.id, RelationType.CREATED_BY, 9999
            )
        assert memory_store.edges == {}

    @pytest.mark.asyncio
    async def test_delete_unknown_relation(
        self,
        edit: EditEntityUseCaseImpl,
        analyst: AuthenticatedUser,
        campaign: GraphEntity,
    ):
        with pytest.raises(EntityNotFoundError):
            _ = await edit.delete_relation(analyst, campaign.id, 9999)


class TestEditContext:
    @pytest.mark.asyncio
    async def test_set_and_clean(
        self,
        edit: EditEntityUseCaseImpl,
        event_bus: EventBus,
        analyst: AuthenticatedUser,
        campaign: GraphEntity,
    ):
        async with event_bus.subscribe(CAMPAIGN_EDITED) as subscription:
            _ = await edit.set_edit_context(analyst, campaign.id, "description")
            assert edit.get_edit_contexts(campaign.id) == {"analyst": "description"}

            _ = await edit.clean_edit_context(analyst, campaign.id)
            assert edit.get_edit_contexts(campaign.id) == {}

            assert subscription.queue.qsize() == 2

    @pytest.mark.asyncio
    async def test_wrong_kind_is_not_found(
        self,
        edit: EditEntityUseCaseImpl,
        analyst: AuthenticatedUser,
        identity_id: int,
    ):
        with pytest.raises(EntityNotFoundError):
            _ = await edit.set_edit_context(analyst, identity_id, "name")
