"""Relation models for graph database.

This module defines the fixed vocabulary of relation types that link a
STIX entity to another vertex, and the value objects used to request and
report those links.
"""

from enum import StrEnum

from pydantic import Field

from .base_model import GraphBaseModel


class RelationType(StrEnum):
    """Relation types a new or existing entity can be linked with."""

    CREATED_BY = "created-by"
    OBJECT_MARKING = "object-marking"
    EXTERNAL_REFERENCE = "external-reference"
    STIX_RELATION = "stix-relation"

    @property
    def edge_label(self) -> str:
        """The AGE edge label stored for this relation type."""
        return _EDGE_LABELS[self]

    @classmethod
    def from_edge_label(cls, label: str) -> "RelationType":
        for relation_type, edge_label in _EDGE_LABELS.items():
            if edge_label == label:
                return relation_type
        raise ValueError(f"Unknown edge label: {label!r}")


_EDGE_LABELS: dict[RelationType, str] = {
    RelationType.CREATED_BY: "created_by_ref",
    RelationType.OBJECT_MARKING: "object_marking_refs",
    RelationType.EXTERNAL_REFERENCE: "external_references",
    RelationType.STIX_RELATION: "stix_relation",
}


class RelationRef(GraphBaseModel):
    """A requested edge from an entity to an existing target vertex."""

    relation_type: RelationType = Field(..., description="Type of the relation")
    target_id: int = Field(..., description="Store-internal id of the target")


class Relation(GraphBaseModel):
    """An edge as stored in the graph."""

    id: int = Field(..., description="Store-internal id of the edge")
    relation_type: RelationType
    from_id: int = Field(..., description="Store-internal id of the source")
    to_id: int = Field(..., description="Store-internal id of the target")
