"""Pytest configuration and shared fixtures for all tests.

This module provides function-scoped fixtures for:
- The in-memory graph store
- The event bus and edit-context store
- Authenticated actors
"""

import uuid

import pytest

from threatgraph.core.schemas import AuthenticatedUser, UserRole
from threatgraph.features.graph.services.edit_context import EditContextStore
from threatgraph.features.graph.services.event_bus import EventBus
from tests.utils.memory_graph import MemoryGraphStore


@pytest.fixture
def memory_store() -> MemoryGraphStore:
    """Provide an empty in-memory graph store."""
    return MemoryGraphStore()


@pytest.fixture
def event_bus() -> EventBus:
    """Provide a fresh event bus, isolated from the process-wide one."""
    return EventBus(queue_size=10)


@pytest.fixture
def edit_contexts() -> EditContextStore:
    return EditContextStore()


@pytest.fixture
def analyst() -> AuthenticatedUser:
    """An actor allowed to write."""
    return AuthenticatedUser(
        user_id=uuid.uuid4(), name="analyst", role=UserRole.ANALYST
    )


@pytest.fixture
def viewer() -> AuthenticatedUser:
    """An actor allowed to read only."""
    return AuthenticatedUser(user_id=uuid.uuid4(), name="viewer", role=UserRole.VIEWER)


@pytest.fixture
def identity_id(memory_store: MemoryGraphStore) -> int:
    """A committed Identity vertex to use as created_by_ref target."""
    return memory_store.add_vertex(
        "Identity", {"type": "identity", "name": "ACME CERT"}
    )


@pytest.fixture
def marking_ids(memory_store: MemoryGraphStore) -> list[int]:
    """Two committed marking definitions."""
    return [
        memory_store.add_vertex("MarkingDefinition", {"definition": "TLP:GREEN"}),
        memory_store.add_vertex("MarkingDefinition", {"definition": "TLP:AMBER"}),
    ]
