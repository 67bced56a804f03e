"""Declarative schemas for STIX entity kinds.

Each entity kind is described once: its vertex label, its STIX type and id
prefix, its ordered attribute list with defaults, the fields free-text
search looks at, and the relation used to find it from another entity.
Creation, edits and queries are all driven from these descriptions.
"""

from dataclasses import dataclass, field
from enum import StrEnum

from .relation_model import RelationType


class EntityKind(StrEnum):
    """Entity kinds managed by the graph feature."""

    CAMPAIGN = "Campaign"
    EXTERNAL_REFERENCE = "External-Reference"


class FieldKind(StrEnum):
    STRING = "string"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"


@dataclass(frozen=True)
class FieldSpec:
    """One caller-settable attribute of an entity kind."""

    name: str
    kind: FieldKind = FieldKind.STRING
    required: bool = False
    default: str | bool | None = ""
    lowercase: bool = False


@dataclass(frozen=True)
class EntitySchema:
    """Everything the write and read paths need to know about a kind."""

    kind: EntityKind
    label: str
    type_name: str
    fields: tuple[FieldSpec, ...]
    search_fields: tuple[str, ...] = ()
    link_relation: RelationType = RelationType.STIX_RELATION
    _by_name: dict[str, FieldSpec] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_by_name", {f.name: f for f in self.fields})

    @property
    def stix_prefix(self) -> str:
        return f"{self.type_name}--"

    @property
    def required_fields(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields if f.required)

    def get_field(self, name: str) -> FieldSpec | None:
        return self._by_name.get(name)

    def has_field(self, name: str) -> bool:
        return name in self._by_name


# Attributes written by the coordinator itself, never by callers.
AUDIT_TIMESTAMPS: tuple[str, ...] = ("created", "modified", "created_at", "updated_at")
RESERVED_ATTRIBUTES: frozenset[str] = frozenset(
    {"type", "stix_id", "revoked", *AUDIT_TIMESTAMPS}
)


CAMPAIGN_SCHEMA = EntitySchema(
    kind=EntityKind.CAMPAIGN,
    label="Campaign",
    type_name="campaign",
    fields=(
        FieldSpec("stix_label"),
        FieldSpec("alias"),
        FieldSpec("name", required=True),
        FieldSpec("description"),
        FieldSpec("first_seen", kind=FieldKind.TIMESTAMP, default=None),
        FieldSpec("last_seen", kind=FieldKind.TIMESTAMP, default=None),
    ),
    search_fields=("name", "alias", "description"),
    link_relation=RelationType.STIX_RELATION,
)

EXTERNAL_REFERENCE_SCHEMA = EntitySchema(
    kind=EntityKind.EXTERNAL_REFERENCE,
    label="ExternalReference",
    type_name="external-reference",
    fields=(
        FieldSpec("source_name", required=True),
        FieldSpec("description"),
        FieldSpec("url", lowercase=True),
        FieldSpec("hash"),
        FieldSpec("external_id"),
    ),
    search_fields=("source_name", "description", "url"),
    link_relation=RelationType.EXTERNAL_REFERENCE,
)

ENTITY_SCHEMAS: dict[EntityKind, EntitySchema] = {
    CAMPAIGN_SCHEMA.kind: CAMPAIGN_SCHEMA,
    EXTERNAL_REFERENCE_SCHEMA.kind: EXTERNAL_REFERENCE_SCHEMA,
}


def get_schema(kind: EntityKind | str) -> EntitySchema:
    """Return the schema for an entity kind.

    Raises:
        KeyError: If the kind is unknown
    """
    return ENTITY_SCHEMAS[EntityKind(kind)]
