"""Use case for deleting an entity."""

import logging

from threatgraph.features.graph.models import EntityKind, get_schema
from threatgraph.features.graph.repositories.protocols import GraphStore

logger = logging.getLogger(__name__)


class DeleteEntityUseCaseImpl:
    """Implementation of the delete entity use case.

    Deletion is delegated to the store, which removes the vertex and its
    edges in one transaction.
    """

    def __init__(self, store: GraphStore):
        self.store: GraphStore = store

    async def execute(
        self, entity_id: int, entity_kind: EntityKind | None = None
    ) -> bool:
        """Delete an entity by its store-internal id.

        Args:
            entity_id: Store-internal id of the entity
            entity_kind: When given, only an entity of this kind is deleted

        Returns:
            True if the entity existed and was deleted, False otherwise
        """
        label = get_schema(entity_kind).label if entity_kind is not None else None
        deleted = await self.store.delete_by_id(entity_id, label)
        if not deleted:
            logger.info("Delete of missing entity %s ignored", entity_id)
        return deleted
