"""Graph database models package.

This package contains the Pydantic models and declarative schemas for the
STIX entities stored in the AGE graph.
"""

# Base models
from .base_model import GraphBaseModel

# Node models
from .entity_model import GraphEntity

# Schemas
from .entity_schema import (
    AUDIT_TIMESTAMPS,
    CAMPAIGN_SCHEMA,
    ENTITY_SCHEMAS,
    EXTERNAL_REFERENCE_SCHEMA,
    RESERVED_ATTRIBUTES,
    EntityKind,
    EntitySchema,
    FieldKind,
    FieldSpec,
    get_schema,
)

# Relationship models
from .relation_model import Relation, RelationRef, RelationType

__all__ = [
    # Base models
    "GraphBaseModel",
    # Node models
    "GraphEntity",
    # Schemas
    "AUDIT_TIMESTAMPS",
    "CAMPAIGN_SCHEMA",
    "ENTITY_SCHEMAS",
    "EXTERNAL_REFERENCE_SCHEMA",
    "RESERVED_ATTRIBUTES",
    "EntityKind",
    "EntitySchema",
    "FieldKind",
    "FieldSpec",
    "get_schema",
    # Relationship models
    "Relation",
    "RelationRef",
    "RelationType",
]
