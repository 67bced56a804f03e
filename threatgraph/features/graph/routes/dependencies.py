"""Shared dependencies of the entity route handlers."""

from threatgraph.core.settings import get_settings
from threatgraph.db.postgres.graph_connection import get_graph_db_pool
from threatgraph.features.graph.repositories.age_graph_store import AgeGraphStore
from threatgraph.features.graph.repositories.protocols import GraphStore
from threatgraph.features.graph.services.edit_context import (
    EditContextStore,
    get_edit_context_store,
)
from threatgraph.features.graph.services.event_bus import Notifier, get_event_bus


async def get_graph_store() -> GraphStore:
    """Dependency injection for the graph store."""
    settings = get_settings()
    pool = await get_graph_db_pool()
    return AgeGraphStore(
        pool,
        graph_name=settings.age_graph_name,
        acquire_timeout=settings.tx_acquire_timeout,
        commit_timeout=settings.tx_commit_timeout,
    )


def get_notifier() -> Notifier:
    return get_event_bus()


def get_edit_contexts() -> EditContextStore:
    return get_edit_context_store()
