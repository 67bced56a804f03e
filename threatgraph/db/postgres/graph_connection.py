"""PostgreSQL connection management for AGE graph operations.

This module provides the asyncpg pool used by the graph store for Cypher
queries and write transactions.
"""

import logging

import asyncpg

from threatgraph.core.settings import get_settings

logger = logging.getLogger(__name__)

_pool: asyncpg.Pool | None = None


async def _setup_age_connection(conn: asyncpg.Connection) -> None:
    """Load AGE and set the search path each time a connection is acquired."""
    _ = await conn.execute("LOAD 'age';")
    _ = await conn.execute("SET search_path = ag_catalog, '$user', public;")


async def get_graph_db_pool() -> asyncpg.Pool:
    """Get the database connection pool as a dependency."""
    global _pool
    if _pool is None:
        settings = get_settings()
        _pool = await asyncpg.create_pool(
            user=settings.postgres_user,
            password=settings.postgres_password,
            host=settings.postgres_host,
            port=settings.postgres_port,
            database=settings.postgres_db,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
            setup=_setup_age_connection,
        )
        logger.info(
            "Graph database pool created for %s:%s/%s",
            settings.postgres_host,
            settings.postgres_port,
            settings.postgres_db,
        )

    return _pool


async def ensure_graph(pool: asyncpg.Pool, graph_name: str) -> None:
    """Create the AGE graph if it does not exist yet."""
    async with pool.acquire() as conn:
        exists = await conn.fetchval(
            "SELECT 1 FROM ag_catalog.ag_graph WHERE name = $1;", graph_name
        )
        if not exists:
            _ = await conn.execute(
                "SELECT ag_catalog.create_graph($1::text::name);", graph_name
            )
            logger.info("Created AGE graph %s", graph_name)


async def close_graph_db_pool() -> None:
    """Close the database connection pool."""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
