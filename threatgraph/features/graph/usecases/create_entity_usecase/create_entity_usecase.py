"""Use case for creating a STIX entity together with its relations.

One call creates exactly one vertex and its relation edges inside a single
write transaction, commits, reads the entity back and publishes it on the
`(entity kind, ADDED)` topic. Edges are all-or-nothing with the vertex:
any failed insert rolls the whole transaction back.
"""

import asyncio
import logging
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from threatgraph.core.schemas import AuthenticatedUser
from threatgraph.features.graph.models import (
    EntityKind,
    EntitySchema,
    GraphEntity,
    RelationRef,
    get_schema,
)
from threatgraph.features.graph.repositories.errors import (
    GraphStoreError,
    ReferenceNotFoundError,
)
from threatgraph.features.graph.repositories.protocols import (
    GraphStore,
    GraphTransaction,
)
from threatgraph.features.graph.repositories.query_utils import timestamp_properties
from threatgraph.features.graph.services.event_bus import BusTopic, EventKind, Notifier
from threatgraph.features.graph.usecases.create_entity_usecase import (
    entity_attributes,
)
from threatgraph.features.graph.usecases.errors import (
    InvalidReferenceError,
    PostCommitFetchError,
    ValidationError,
    WriteFailedError,
)

logger = logging.getLogger(__name__)


def build_vertex_properties(
    schema: EntitySchema, attributes: Mapping[str, Any], stix_id: str, now: datetime
) -> dict[str, Any]:
    """Assemble the full property set of a new vertex.

    `now` is used for every audit timestamp so they are equal to each other.
    """
    properties: dict[str, Any] = {
        "type": schema.type_name,
        "stix_id": stix_id,
    }
    properties.update(entity_attributes.prepare_attributes(schema, attributes))
    properties.update(timestamp_properties("created", now))
    properties.update(timestamp_properties("modified", now))
    properties["revoked"] = False
    properties.update(timestamp_properties("created_at", now))
    properties.update(timestamp_properties("updated_at", now))
    return properties


class CreateEntityUseCaseImpl:
    """Implementation of the create entity use case."""

    def __init__(
        self,
        store: GraphStore,
        notifier: Notifier,
        refetch_attempts: int = 3,
        refetch_delay: float = 0.1,
    ):
        """Initialize the use case with dependencies.

        Args:
            store: Graph store the entity is written to
            notifier: Receives the ADDED notification after commit
            refetch_attempts: Reads attempted for the committed entity
            refetch_delay: Seconds between those reads
        """
        self.store: GraphStore = store
        self.notifier: Notifier = notifier
        self.refetch_attempts: int = max(1, refetch_attempts)
        self.refetch_delay: float = refetch_delay

    async def execute(
        self,
        actor: AuthenticatedUser | None,
        entity_kind: EntityKind | str,
        attributes: Mapping[str, Any],
        relations: Sequence[RelationRef] = (),
    ) -> GraphEntity:
        """Create an entity and its relations atomically.

        Args:
            actor: Caller identity, forwarded to the notification
            entity_kind: Selects the attribute schema
            attributes: Caller-supplied attribute values
            relations: Edges from the new entity to existing vertices

        Returns:
            The committed entity as read back from the store

        Raises:
            ValidationError: If the kind or the attributes are invalid
            InvalidReferenceError: If a relation target does not exist
            WriteFailedError: If the transaction was rolled back
            PostCommitFetchError: If the committed entity cannot be read back
        """
        try:
            schema = get_schema(entity_kind)
        except (KeyError, ValueError):
            raise ValidationError(f"Unknown entity kind: {entity_kind}") from None

        stix_id = f"{schema.stix_prefix}{uuid4()}"
        now = datetime.now(UTC)
        properties = build_vertex_properties(schema, attributes, stix_id, now)

        try:
            async with self.store.write_transaction() as tx:
                entity_id = await tx.insert_vertex(schema.label, properties)
                await self._insert_relations(tx, entity_id, relations)
                await tx.commit()
        except ReferenceNotFoundError as e:
            logger.warning("Creation of %s rolled back: %s", stix_id, e)
            raise InvalidReferenceError(str(e)) from e
        except GraphStoreError as e:
            logger.error("Creation of %s rolled back: %s", stix_id, e)
            raise WriteFailedError(f"Could not create {schema.kind.value}: {e}") from e

        logger.info(
            "Created %s %s with id %s and %d relation(s)",
            schema.kind.value,
            stix_id,
            entity_id,
            len(relations),
        )

        entity = await self._fetch_committed(entity_id, stix_id)
        _ = self.notifier.notify(BusTopic(schema.kind, EventKind.ADDED), entity, actor)
        return entity

    async def _insert_relations(
        self,
        tx: GraphTransaction,
        entity_id: int,
        relations: Sequence[RelationRef],
    ) -> None:
        """Insert every relation edge concurrently and wait for all of them."""
        if not relations:
            return

        results = await asyncio.gather(
            *(
                tx.insert_edge(
                    entity_id, relation.target_id, relation.relation_type.edge_label
                )
                for relation in relations
            ),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result

    async def _fetch_committed(self, entity_id: int, stix_id: str) -> GraphEntity:
        """Read a freshly committed entity, retrying a bounded number of times."""
        last_error: Exception | None = None
        for attempt in range(1, self.refetch_attempts + 1):
            try:
                entity = await self.store.get_by_id(entity_id)
            except GraphStoreError as e:
                last_error = e
                entity = None

            if entity is not None:
                return entity

            logger.warning(
                "Committed entity %s (id %s) not readable, attempt %d/%d",
                stix_id,
                entity_id,
                attempt,
                self.refetch_attempts,
            )
            if attempt < self.refetch_attempts:
                await asyncio.sleep(self.refetch_delay)

        logger.critical(
            "Entity %s was committed with id %s but could not be read back; "
            "no notification was published",
            stix_id,
            entity_id,
        )
        raise PostCommitFetchError(entity_id, stix_id) from last_error
