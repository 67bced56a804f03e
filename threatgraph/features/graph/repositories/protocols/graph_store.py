"""Protocol definition and types for graph store operations."""

from collections.abc import Mapping
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import StrEnum
from typing import Any, Protocol

from threatgraph.features.graph.models import GraphEntity, Relation, RelationType
from threatgraph.features.graph.repositories.query_utils import (
    Interval,
    check_identifier,
)


@dataclass(frozen=True)
class MatchPattern:
    """A Cypher MATCH clause binding `variable` to the vertices of interest.

    Conditions must already be rendered with the query_utils helpers.
    """

    match: str
    variable: str = "m"
    conditions: tuple[str, ...] = ()
    distinct: bool = False

    def __post_init__(self) -> None:
        _ = check_identifier(self.variable)

    def where(self, *conditions: str) -> "MatchPattern":
        return replace(self, conditions=self.conditions + conditions)

    def render(self) -> str:
        text = self.match
        if self.conditions:
            text += " WHERE " + " AND ".join(f"({c})" for c in self.conditions)
        if self.distinct:
            text += f" WITH DISTINCT {self.variable}"
        return text


class OrderMode(StrEnum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class PaginationArgs:
    """Offset/limit/sort arguments of a paginated read."""

    first: int = 25
    after: str | None = None
    order_by: str | None = None
    order_mode: OrderMode = OrderMode.ASC


@dataclass(frozen=True)
class PageEdge:
    node: GraphEntity
    cursor: str


@dataclass(frozen=True)
class PageInfo:
    start_cursor: str | None
    end_cursor: str | None
    has_next_page: bool
    has_previous_page: bool
    global_count: int


@dataclass(frozen=True)
class Page:
    """One page of results in connection form."""

    edges: list[PageEdge] = field(default_factory=list)
    page_info: PageInfo = field(
        default_factory=lambda: PageInfo(None, None, False, False, 0)
    )


@dataclass(frozen=True)
class TimeSeriesArgs:
    """Bucketing window of a time series over a timestamp attribute."""

    field: str
    interval: Interval
    start_date: datetime
    end_date: datetime


@dataclass(frozen=True)
class TimeSeriesPoint:
    date: str
    value: int


class GraphTransaction(Protocol):
    """A write transaction exclusively owned by the code that opened it."""

    async def query(
        self, cypher: str, columns: tuple[str, ...] = ("result",)
    ) -> list[dict[str, Any]]:
        """Run a Cypher query inside the transaction and return parsed rows."""
        ...

    async def insert_vertex(self, label: str, properties: Mapping[str, Any]) -> int:
        """Create a vertex and return its store-internal id."""
        ...

    async def insert_edge(self, from_id: int, to_id: int, edge_label: str) -> int:
        """Create an edge between two existing vertices and return its id.

        Raises:
            ReferenceNotFoundError: If either vertex does not exist
        """
        ...

    async def commit(self) -> None:
        """Commit. Leaving the transaction scope without committing rolls back."""
        ...


class GraphStore(Protocol):
    """Protocol for the graph database backing STIX entities.

    Implementations include AgeGraphStore for Apache AGE.
    """

    def write_transaction(self) -> AbstractAsyncContextManager[GraphTransaction]:
        """Open a scoped write transaction.

        Raises:
            StoreUnavailableError: If no transaction could be obtained
        """
        ...

    async def get_by_id(self, entity_id: int) -> GraphEntity | None:
        """Read a vertex by its store-internal id."""
        ...

    async def delete_by_id(self, entity_id: int, label: str | None = None) -> bool:
        """Delete a vertex and its edges. Returns True if it existed.

        With `label`, only a vertex carrying that label is deleted.
        """
        ...

    async def set_properties(
        self, entity_id: int, properties: Mapping[str, Any]
    ) -> GraphEntity | None:
        """Replace attribute values of a vertex. Returns None if it is missing."""
        ...

    async def create_relation(
        self, from_id: int, to_id: int, relation_type: RelationType
    ) -> Relation:
        """Create one edge in its own transaction."""
        ...

    async def delete_relation(
        self, entity_id: int, relation_id: int
    ) -> Relation | None:
        """Delete an edge touching `entity_id`. Returns None if there is none."""
        ...

    async def paginate(self, pattern: MatchPattern, args: PaginationArgs) -> Page:
        """Read one page of the vertices bound by `pattern`."""
        ...

    async def count(self, pattern: MatchPattern) -> int:
        """Count the vertices bound by `pattern`."""
        ...

    async def time_series(
        self, pattern: MatchPattern, args: TimeSeriesArgs
    ) -> list[TimeSeriesPoint]:
        """Count the vertices bound by `pattern` per time bucket."""
        ...
