"""Entity models for graph database.

A STIX entity is read back from the graph as a vertex: its store-internal
id, its label and the flat property map written at creation time.
"""

from typing import Any

from pydantic import Field

from .base_model import GraphBaseModel


class GraphEntity(GraphBaseModel):
    """A vertex read from the graph."""

    id: int = Field(..., description="Store-internal vertex id (opaque)")
    label: str = Field(..., description="Vertex label, e.g. 'Campaign'")
    properties: dict[str, Any] = Field(
        default_factory=dict, description="Stored attribute values"
    )

    @property
    def stix_id(self) -> str | None:
        return self.properties.get("stix_id")

    @property
    def entity_type(self) -> str | None:
        return self.properties.get("type")

    def get(self, key: str, default: Any = None) -> Any:
        return self.properties.get(key, default)
