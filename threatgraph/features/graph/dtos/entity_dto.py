"""Entity DTOs for API requests and responses.

This module defines Data Transfer Objects for the STIX entity API. Create
requests split into the attribute payload validated by the entity schema
and the relation references linked in the same transaction.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from threatgraph.features.graph.models import (
    GraphEntity,
    Relation,
    RelationRef,
    RelationType,
)
from threatgraph.features.graph.repositories.protocols import (
    Page,
    TimeSeriesPoint,
)


class EntityCreateRequest(BaseModel):
    """Relation references common to every create request."""

    created_by_ref: int | None = Field(
        default=None, description="Graph id of the creating identity"
    )
    marking_definitions: list[int] = Field(
        default_factory=list, description="Graph ids of marking definitions"
    )

    def attributes(self) -> dict[str, Any]:
        """The attribute payload, without relation references."""
        return self.model_dump(
            exclude={"created_by_ref", "marking_definitions"}, exclude_unset=True
        )

    def relations(self) -> list[RelationRef]:
        refs: list[RelationRef] = []
        if self.created_by_ref is not None:
            refs.append(
                RelationRef(
                    relation_type=RelationType.CREATED_BY,
                    target_id=self.created_by_ref,
                )
            )
        refs.extend(
            RelationRef(relation_type=RelationType.OBJECT_MARKING, target_id=target)
            for target in self.marking_definitions
        )
        return refs


class CampaignCreateRequest(EntityCreateRequest):
    """Request model for creating a campaign."""

    name: str = Field(..., description="Campaign name")
    stix_label: str | None = None
    alias: str | None = None
    description: str | None = None
    first_seen: datetime | None = None
    last_seen: datetime | None = None


class ExternalReferenceCreateRequest(EntityCreateRequest):
    """Request model for creating an external reference."""

    source_name: str = Field(..., description="Name of the source")
    description: str | None = None
    url: str | None = Field(default=None, description="Stored lowercased")
    hash: str | None = None
    external_id: str | None = None


class EntityDto(BaseModel):
    """DTO for entity API responses."""

    id: int = Field(..., description="Graph id of the entity")
    label: str
    stix_id: str | None = None
    entity_type: str | None = None
    properties: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_entity(cls, entity: GraphEntity) -> "EntityDto":
        return cls(
            id=entity.id,
            label=entity.label,
            stix_id=entity.stix_id,
            entity_type=entity.entity_type,
            properties=dict(entity.properties),
        )


class EdgeDto(BaseModel):
    node: EntityDto
    cursor: str


class PageInfoDto(BaseModel):
    start_cursor: str | None
    end_cursor: str | None
    has_next_page: bool
    has_previous_page: bool
    global_count: int


class PageDto(BaseModel):
    """One page of entities in connection form."""

    edges: list[EdgeDto]
    page_info: PageInfoDto

    @classmethod
    def from_page(cls, page: Page) -> "PageDto":
        info = page.page_info
        return cls(
            edges=[
                EdgeDto(node=EntityDto.from_entity(edge.node), cursor=edge.cursor)
                for edge in page.edges
            ],
            page_info=PageInfoDto(
                start_cursor=info.start_cursor,
                end_cursor=info.end_cursor,
                has_next_page=info.has_next_page,
                has_previous_page=info.has_previous_page,
                global_count=info.global_count,
            ),
        )


class TimeSeriesPointDto(BaseModel):
    date: str
    value: int

    @classmethod
    def from_point(cls, point: TimeSeriesPoint) -> "TimeSeriesPointDto":
        return cls(date=point.date, value=point.value)


class RelationDto(BaseModel):
    id: int
    relation_type: RelationType
    from_id: int
    to_id: int

    @classmethod
    def from_relation(cls, relation: Relation) -> "RelationDto":
        return cls(
            id=relation.id,
            relation_type=relation.relation_type,
            from_id=relation.from_id,
            to_id=relation.to_id,
        )


class RelationEditResponse(BaseModel):
    """Response model for relation add and delete."""

    relation: RelationDto
    node: EntityDto


class DeleteEntityResponse(BaseModel):
    message: str
    id: int


class EditFieldRequest(BaseModel):
    """Request model for replacing one attribute value."""

    key: str = Field(..., description="Attribute name")
    value: bool | datetime | str | None = Field(
        default=None, description="New value; null clears optional attributes"
    )


class AddRelationRequest(BaseModel):
    relation_type: RelationType
    to_id: int = Field(..., description="Graph id of the target vertex")


class EditContextRequest(BaseModel):
    focus_on: str | None = Field(
        default=None, description="Attribute the user is editing"
    )


class EditContextsResponse(BaseModel):
    contexts: dict[str, str | None]
