"""PostgreSQL AGE implementation of the graph store protocol."""

import asyncio
import json
import logging
from collections.abc import AsyncGenerator, Mapping
from contextlib import asynccontextmanager
from typing import Any, cast, override

import asyncpg
from asyncpg.transaction import Transaction

from threatgraph.features.graph.models import GraphEntity, Relation, RelationType
from threatgraph.features.graph.repositories.errors import (
    ReferenceNotFoundError,
    StoreUnavailableError,
    TransactionError,
)
from threatgraph.features.graph.repositories.protocols import (
    GraphStore,
    GraphTransaction,
    MatchPattern,
    Page,
    PageEdge,
    PageInfo,
    PaginationArgs,
    TimeSeriesArgs,
    TimeSeriesPoint,
)
from threatgraph.features.graph.repositories.query_utils import (
    check_identifier,
    coerce_id,
    cypher_literal,
    cypher_map,
    decode_cursor,
    dollar_quote,
    encode_cursor,
    fill_time_series,
)

logger = logging.getLogger(__name__)

_AGTYPE_SUFFIXES = ("::vertex", "::edge", "::path", "::numeric")


def _parse_agtype(value: str | None) -> Any:
    """Parse one agtype column into Python values."""
    if value is None:
        return None
    text = value.strip()
    for suffix in _AGTYPE_SUFFIXES:
        if text.endswith(suffix):
            text = text[: -len(suffix)]
            break
    return json.loads(text)


def _to_entity(vertex: Mapping[str, Any]) -> GraphEntity:
    return GraphEntity(
        id=int(vertex["id"]),
        label=str(vertex["label"]),
        properties=dict(vertex.get("properties") or {}),
    )


def _to_relation(edge: Mapping[str, Any]) -> Relation:
    return Relation(
        id=int(edge["id"]),
        relation_type=RelationType.from_edge_label(str(edge["label"])),
        from_id=int(edge["start_id"]),
        to_id=int(edge["end_id"]),
    )


class AgeTransaction(GraphTransaction):
    """A write transaction on one pooled connection.

    A connection runs one statement at a time, so concurrent `query` calls
    are queued on a lock and sent one after the other.
    """

    def __init__(
        self,
        conn: asyncpg.Connection,
        transaction: Transaction,
        graph_name: str,
        commit_timeout: float,
    ):
        self._conn = conn
        self._transaction = transaction
        self._graph_name = graph_name
        self._commit_timeout = commit_timeout
        self._lock = asyncio.Lock()
        self.closed = False

    @override
    async def query(
        self, cypher: str, columns: tuple[str, ...] = ("result",)
    ) -> list[dict[str, Any]]:
        if self.closed:
            raise TransactionError("Transaction is already closed")
        sql = build_cypher_sql(self._graph_name, cypher, columns)
        async with self._lock:
            try:
                records = await self._conn.fetch(sql)
            except asyncpg.PostgresError as e:
                raise TransactionError(f"Query failed: {e}") from e
        return [parse_record(record, columns) for record in records]

    @override
    async def insert_vertex(self, label: str, properties: Mapping[str, Any]) -> int:
        cypher = (
            f"CREATE (n:{check_identifier(label)} {cypher_map(properties)}) "
            "RETURN id(n)"
        )
        rows = await self.query(cypher)
        if not rows:
            raise TransactionError(f"Insert of {label} returned no id")
        return self.resolve_id(rows[0])

    @override
    async def insert_edge(self, from_id: int, to_id: int, edge_label: str) -> int:
        from_id = coerce_id(from_id)
        to_id = coerce_id(to_id)
        cypher = (
            f"MATCH (a), (b) WHERE id(a) = {from_id} AND id(b) = {to_id} "
            f"CREATE (a)-[r:{check_identifier(edge_label)}]->(b) "
            "RETURN id(r)"
        )
        rows = await self.query(cypher)
        if not rows:
            raise ReferenceNotFoundError(from_id, to_id, edge_label)
        return self.resolve_id(rows[0])

    @staticmethod
    def resolve_id(row: Mapping[str, Any]) -> int:
        """Resolve the store-internal id from an insert result row."""
        return coerce_id(row["result"])

    @override
    async def commit(self) -> None:
        if self.closed:
            raise TransactionError("Transaction is already closed")
        try:
            async with self._lock:
                await asyncio.wait_for(
                    self._transaction.commit(), timeout=self._commit_timeout
                )
        except TimeoutError as e:
            raise TransactionError(
                f"Commit timed out after {self._commit_timeout}s"
            ) from e
        except asyncpg.PostgresError as e:
            raise TransactionError(f"Commit failed: {e}") from e
        self.closed = True

    async def rollback(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            await self._transaction.rollback()
        except (asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            # The pool resets the connection on release.
            logger.warning("Rollback failed: %s", e)


def build_cypher_sql(graph_name: str, cypher: str, columns: tuple[str, ...]) -> str:
    """Wrap a Cypher query in the SQL call AGE expects."""
    as_clause = ", ".join(f"{check_identifier(c)} agtype" for c in columns)
    return (
        f"SELECT * FROM ag_catalog.cypher('{check_identifier(graph_name)}', "
        f"{dollar_quote(cypher)}) AS ({as_clause});"
    )


def parse_record(record: Mapping[str, Any], columns: tuple[str, ...]) -> dict[str, Any]:
    return {
        column: _parse_agtype(cast(str | None, record[column])) for column in columns
    }


class AgeGraphStore(GraphStore):
    """PostgreSQL AGE implementation of the graph store."""

    pool: asyncpg.Pool
    graph_name: str

    def __init__(
        self,
        pool: asyncpg.Pool,
        graph_name: str,
        acquire_timeout: float = 10.0,
        commit_timeout: float = 10.0,
    ):
        """Initialize the store with a connection pool and graph name."""
        if not graph_name:
            raise ValueError("graph_name must be provided")
        self.pool = pool
        self.graph_name = check_identifier(graph_name)
        self.acquire_timeout = acquire_timeout
        self.commit_timeout = commit_timeout

    @asynccontextmanager
    async def _connection(self) -> AsyncGenerator[asyncpg.Connection, None]:
        try:
            conn = await self.pool.acquire(timeout=self.acquire_timeout)
        except (
            TimeoutError,
            OSError,
            asyncpg.PostgresError,
            asyncpg.InterfaceError,
        ) as e:
            raise StoreUnavailableError(f"Could not acquire a connection: {e}") from e
        try:
            yield cast(asyncpg.Connection, conn)
        finally:
            await self.pool.release(conn)

    @override
    @asynccontextmanager
    async def write_transaction(self) -> AsyncGenerator[AgeTransaction, None]:
        async with self._connection() as conn:
            transaction = conn.transaction()
            try:
                await asyncio.wait_for(
                    transaction.start(), timeout=self.acquire_timeout
                )
            except (TimeoutError, asyncpg.PostgresError) as e:
                raise StoreUnavailableError(
                    f"Could not start a transaction: {e}"
                ) from e

            tx = AgeTransaction(conn, transaction, self.graph_name, self.commit_timeout)
            try:
                yield tx
            finally:
                if not tx.closed:
                    logger.debug("Rolling back uncommitted write transaction")
                    await tx.rollback()

    async def _read(
        self, cypher: str, columns: tuple[str, ...] = ("result",)
    ) -> list[dict[str, Any]]:
        sql = build_cypher_sql(self.graph_name, cypher, columns)
        async with self._connection() as conn:
            try:
                records = await conn.fetch(sql)
            except asyncpg.PostgresError as e:
                raise TransactionError(f"Query failed: {e}") from e
        return [parse_record(record, columns) for record in records]

    @override
    async def get_by_id(self, entity_id: int) -> GraphEntity | None:
        rows = await self._read(
            f"MATCH (n) WHERE id(n) = {coerce_id(entity_id)} RETURN n"
        )
        if not rows:
            return None
        return _to_entity(rows[0]["result"])

    @override
    async def delete_by_id(self, entity_id: int, label: str | None = None) -> bool:
        entity_id = coerce_id(entity_id)
        node = f"n:{check_identifier(label)}" if label else "n"
        async with self.write_transaction() as tx:
            rows = await tx.query(
                f"MATCH ({node}) WHERE id(n) = {entity_id} RETURN id(n)"
            )
            if not rows:
                return False
            _ = await tx.query(f"MATCH (n) WHERE id(n) = {entity_id} DETACH DELETE n")
            await tx.commit()
        logger.info("Deleted vertex %s", entity_id)
        return True

    @override
    async def set_properties(
        self, entity_id: int, properties: Mapping[str, Any]
    ) -> GraphEntity | None:
        if not properties:
            return await self.get_by_id(entity_id)
        assignments = ", ".join(
            f"n.{check_identifier(key)} = {cypher_literal(value)}"
            for key, value in properties.items()
        )
        async with self.write_transaction() as tx:
            rows = await tx.query(
                f"MATCH (n) WHERE id(n) = {coerce_id(entity_id)} "
                f"SET {assignments} RETURN n"
            )
            if not rows:
                return None
            await tx.commit()
        return _to_entity(rows[0]["result"])

    @override
    async def create_relation(
        self, from_id: int, to_id: int, relation_type: RelationType
    ) -> Relation:
        async with self.write_transaction() as tx:
            edge_id = await tx.insert_edge(from_id, to_id, relation_type.edge_label)
            await tx.commit()
        return Relation(
            id=edge_id,
            relation_type=relation_type,
            from_id=coerce_id(from_id),
            to_id=coerce_id(to_id),
        )

    @override
    async def delete_relation(
        self, entity_id: int, relation_id: int
    ) -> Relation | None:
        entity_id = coerce_id(entity_id)
        relation_id = coerce_id(relation_id)
        async with self.write_transaction() as tx:
            rows = await tx.query(
                f"MATCH (n)-[r]-() WHERE id(n) = {entity_id} AND id(r) = {relation_id} "
                "RETURN r"
            )
            if not rows:
                return None
            relation = _to_relation(rows[0]["result"])
            _ = await tx.query(f"MATCH ()-[r]->() WHERE id(r) = {relation_id} DELETE r")
            await tx.commit()
        return relation

    @override
    async def paginate(self, pattern: MatchPattern, args: PaginationArgs) -> Page:
        offset = decode_cursor(args.after)
        var = pattern.variable
        # Offset cursors need a total order; id() breaks ties.
        order = f"id({var})"
        if args.order_by:
            key = check_identifier(args.order_by)
            order = f"{var}.{key} {args.order_mode.value.upper()}, {order}"
        cypher = (
            f"{pattern.render()} RETURN {var} ORDER BY {order} "
            f"SKIP {offset} LIMIT {int(args.first) + 1}"
        )
        rows = await self._read(cypher)
        global_count = await self.count(pattern)

        has_next_page = len(rows) > args.first
        edges = [
            PageEdge(
                node=_to_entity(row["result"]), cursor=encode_cursor(offset + i + 1)
            )
            for i, row in enumerate(rows[: args.first])
        ]
        return Page(
            edges=edges,
            page_info=PageInfo(
                start_cursor=edges[0].cursor if edges else None,
                end_cursor=edges[-1].cursor if edges else None,
                has_next_page=has_next_page,
                has_previous_page=offset > 0,
                global_count=global_count,
            ),
        )

    @override
    async def count(self, pattern: MatchPattern) -> int:
        rows = await self._read(f"{pattern.render()} RETURN count({pattern.variable})")
        if not rows:
            return 0
        return int(rows[0]["result"])

    @override
    async def time_series(
        self, pattern: MatchPattern, args: TimeSeriesArgs
    ) -> list[TimeSeriesPoint]:
        var = pattern.variable
        field = check_identifier(args.field)
        windowed = pattern.where(
            f"{var}.{field} >= {cypher_literal(args.start_date)}",
            f"{var}.{field} <= {cypher_literal(args.end_date)}",
        )
        cypher = (
            f"{windowed.render()} "
            f"RETURN {var}.{field}_{args.interval.value}, count({var})"
        )
        rows = await self._read(cypher, columns=("bucket", "total"))
        counts = {
            str(row["bucket"]): int(row["total"])
            for row in rows
            if row["bucket"] is not None
        }
        return [
            TimeSeriesPoint(date=bucket, value=value)
            for bucket, value in fill_time_series(
                counts, args.start_date, args.end_date, args.interval
            )
        ]
