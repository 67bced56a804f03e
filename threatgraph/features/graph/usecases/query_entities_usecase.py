"""Use case for reading entities of one kind.

Listing, lookups, free-text search and time series are thin query builders
over the graph store: each one picks a match pattern for the kind and
hands it to the store's pagination or bucketing helper.
"""

from threatgraph.features.graph.models import (
    AUDIT_TIMESTAMPS,
    RESERVED_ATTRIBUTES,
    EntityKind,
    EntitySchema,
    FieldKind,
    GraphEntity,
    get_schema,
)
from threatgraph.features.graph.repositories.protocols import (
    GraphStore,
    MatchPattern,
    Page,
    PaginationArgs,
    TimeSeriesArgs,
    TimeSeriesPoint,
)
from threatgraph.features.graph.repositories.query_utils import (
    bucket_count,
    coerce_id,
    cypher_literal,
    decode_cursor,
    to_utc,
)
from threatgraph.features.graph.usecases.errors import (
    EntityNotFoundError,
    ValidationError,
)

MAX_PAGE_SIZE = 500
MAX_TIME_SERIES_BUCKETS = 5000


class QueryEntitiesUseCaseImpl:
    """Implementation of the entity query use cases for one entity kind."""

    def __init__(self, store: GraphStore, entity_kind: EntityKind):
        self.store: GraphStore = store
        self.schema: EntitySchema = get_schema(entity_kind)

    def base_pattern(self) -> MatchPattern:
        return MatchPattern(f"MATCH (m:{self.schema.label})")

    def by_entity_pattern(self, object_id: int) -> MatchPattern:
        """Entities of this kind linked to `object_id` by the kind's relation."""
        edge_label = self.schema.link_relation.edge_label
        return MatchPattern(
            f"MATCH (m:{self.schema.label})-[:{edge_label}]-(to)",
            conditions=(f"id(to) = {coerce_id(object_id)}",),
            distinct=True,
        )

    def search_pattern(self, term: str) -> MatchPattern:
        needle = cypher_literal(term.lower())
        clauses = " OR ".join(
            f"toLower(m.{name}) CONTAINS {needle}" for name in self.schema.search_fields
        )
        return self.base_pattern().where(clauses)

    def _check_pagination(self, args: PaginationArgs) -> None:
        if not 1 <= args.first <= MAX_PAGE_SIZE:
            raise ValidationError(f"'first' must be between 1 and {MAX_PAGE_SIZE}")
        if args.order_by is not None and not (
            self.schema.has_field(args.order_by) or args.order_by in RESERVED_ATTRIBUTES
        ):
            raise ValidationError(f"Cannot order by '{args.order_by}'")
        try:
            _ = decode_cursor(args.after)
        except ValueError as e:
            raise ValidationError(str(e)) from e

    def _check_time_series(self, args: TimeSeriesArgs) -> None:
        field_spec = self.schema.get_field(args.field)
        is_timestamp = args.field in AUDIT_TIMESTAMPS or (
            field_spec is not None and field_spec.kind is FieldKind.TIMESTAMP
        )
        if not is_timestamp:
            raise ValidationError(f"'{args.field}' is not a timestamp attribute")
        try:
            start = to_utc(args.start_date)
            end = to_utc(args.end_date)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        if start > end:
            raise ValidationError("'start_date' must not be after 'end_date'")
        if bucket_count(start, end, args.interval) > MAX_TIME_SERIES_BUCKETS:
            raise ValidationError(
                f"Time series window spans more than {MAX_TIME_SERIES_BUCKETS} "
                f"{args.interval.value} buckets"
            )

    async def find_all(self, args: PaginationArgs) -> Page:
        self._check_pagination(args)
        return await self.store.paginate(self.base_pattern(), args)

    async def find_by_id(self, entity_id: int) -> GraphEntity:
        """Read one entity of this kind.

        Raises:
            EntityNotFoundError: If there is no such entity of this kind
        """
        entity = await self.store.get_by_id(entity_id)
        if entity is None or entity.label != self.schema.label:
            raise EntityNotFoundError(
                f"{self.schema.kind.value} '{entity_id}' not found"
            )
        return entity

    async def find_by_entity(self, object_id: int, args: PaginationArgs) -> Page:
        self._check_pagination(args)
        return await self.store.paginate(self.by_entity_pattern(object_id), args)

    async def search(self, term: str, args: PaginationArgs) -> Page:
        if not term.strip():
            raise ValidationError("Search term cannot be empty")
        if "\x00" in term:
            raise ValidationError("Search term cannot contain NUL characters")
        self._check_pagination(args)
        return await self.store.paginate(self.search_pattern(term), args)

    async def time_series(self, args: TimeSeriesArgs) -> list[TimeSeriesPoint]:
        self._check_time_series(args)
        return await self.store.time_series(self.base_pattern(), args)

    async def time_series_by_entity(
        self, object_id: int, args: TimeSeriesArgs
    ) -> list[TimeSeriesPoint]:
        self._check_time_series(args)
        return await self.store.time_series(self.by_entity_pattern(object_id), args)
