"""Use case for editing an existing entity.

Field edits replace one attribute value, relation edits add or remove one
edge, and edit-context changes record who is working on the entity. Every
successful edit publishes the entity on the `(entity kind, EDITED)` topic.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from threatgraph.core.schemas import AuthenticatedUser
from threatgraph.features.graph.models import (
    EntityKind,
    EntitySchema,
    GraphEntity,
    Relation,
    RelationType,
    get_schema,
)
from threatgraph.features.graph.repositories.errors import ReferenceNotFoundError
from threatgraph.features.graph.repositories.protocols import GraphStore
from threatgraph.features.graph.repositories.query_utils import timestamp_properties
from threatgraph.features.graph.services.edit_context import EditContextStore
from threatgraph.features.graph.services.event_bus import BusTopic, EventKind, Notifier
from threatgraph.features.graph.usecases.create_entity_usecase import prepare_edit
from threatgraph.features.graph.usecases.errors import (
    EntityNotFoundError,
    InvalidReferenceError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelationEdit:
    """An added or removed edge and the entity it was edited on."""

    relation: Relation
    node: GraphEntity


class EditEntityUseCaseImpl:
    """Implementation of the edit entity use cases for one entity kind."""

    def __init__(
        self,
        store: GraphStore,
        notifier: Notifier,
        edit_contexts: EditContextStore,
        entity_kind: EntityKind,
    ):
        """Initialize the use case with dependencies.

        Args:
            store: Graph store holding the entities
            notifier: Receives EDITED notifications
            edit_contexts: Presence tracking of users editing entities
            entity_kind: Kind of the entities this use case edits
        """
        self.store: GraphStore = store
        self.notifier: Notifier = notifier
        self.edit_contexts: EditContextStore = edit_contexts
        self.schema: EntitySchema = get_schema(entity_kind)

    @property
    def topic(self) -> BusTopic:
        return BusTopic(self.schema.kind, EventKind.EDITED)

    async def _require(self, entity_id: int) -> GraphEntity:
        entity = await self.store.get_by_id(entity_id)
        if entity is None or entity.label != self.schema.label:
            raise EntityNotFoundError(
                f"{self.schema.kind.value} '{entity_id}' not found"
            )
        return entity

    def _publish(
        self, entity: GraphEntity, actor: AuthenticatedUser | None
    ) -> GraphEntity:
        return self.notifier.notify(self.topic, entity, actor)

    async def edit_field(
        self,
        actor: AuthenticatedUser | None,
        entity_id: int,
        key: str,
        value: Any,
    ) -> GraphEntity:
        """Replace the value of one attribute.

        Raises:
            ValidationError: If the attribute is unknown or the value invalid
            EntityNotFoundError: If the entity does not exist
        """
        properties = prepare_edit(self.schema, key, value)
        now = datetime.now(UTC)
        properties.update(timestamp_properties("modified", now))
        properties.update(timestamp_properties("updated_at", now))

        _ = await self._require(entity_id)
        entity = await self.store.set_properties(entity_id, properties)
        if entity is None:
            raise EntityNotFoundError(
                f"{self.schema.kind.value} '{entity_id}' not found"
            )
        logger.info("Edited %s on %s %s", key, self.schema.kind.value, entity_id)
        return self._publish(entity, actor)

    async def add_relation(
        self,
        actor: AuthenticatedUser | None,
        entity_id: int,
        relation_type: RelationType,
        to_id: int,
    ) -> RelationEdit:
        """Link the entity to an existing vertex.

        Raises:
            EntityNotFoundError: If the entity does not exist
            InvalidReferenceError: If the target does not exist
        """
        _ = await self._require(entity_id)
        try:
            relation = await self.store.create_relation(entity_id, to_id, relation_type)
        except ReferenceNotFoundError as e:
            raise InvalidReferenceError(str(e)) from e

        node = await self._require(entity_id)
        _ = self._publish(node, actor)
        return RelationEdit(relation=relation, node=node)

    async def delete_relation(
        self,
        actor: AuthenticatedUser | None,
        entity_id: int,
        relation_id: int,
    ) -> RelationEdit:
        """Remove one edge of the entity.

        Raises:
            EntityNotFoundError: If the entity or the edge does not exist
        """
        _ = await self._require(entity_id)
        relation = await self.store.delete_relation(entity_id, relation_id)
        if relation is None:
            raise EntityNotFoundError(
                f"Relation '{relation_id}' not found on entity '{entity_id}'"
            )

        node = await self._require(entity_id)
        _ = self._publish(node, actor)
        return RelationEdit(relation=relation, node=node)

    async def set_edit_context(
        self,
        actor: AuthenticatedUser,
        entity_id: int,
        focus_on: str | None,
    ) -> GraphEntity:
        """Record which attribute `actor` is editing."""
        entity = await self._require(entity_id)
        self.edit_contexts.set_context(actor, entity_id, focus_on)
        return self._publish(entity, actor)

    async def clean_edit_context(
        self, actor: AuthenticatedUser, entity_id: int
    ) -> GraphEntity:
        """Forget what `actor` was editing."""
        entity = await self._require(entity_id)
        self.edit_contexts.delete_context(actor, entity_id)
        return self._publish(entity, actor)

    def get_edit_contexts(self, entity_id: int) -> dict[str, str | None]:
        return self.edit_contexts.get_contexts(entity_id)
