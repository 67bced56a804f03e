"""Repository protocols for the graph feature."""

from .graph_store import (
    GraphStore,
    GraphTransaction,
    MatchPattern,
    OrderMode,
    Page,
    PageEdge,
    PageInfo,
    PaginationArgs,
    TimeSeriesArgs,
    TimeSeriesPoint,
)

__all__ = [
    # Store protocols
    "GraphStore",
    "GraphTransaction",
    # Query types
    "MatchPattern",
    "OrderMode",
    "Page",
    "PageEdge",
    "PageInfo",
    "PaginationArgs",
    "TimeSeriesArgs",
    "TimeSeriesPoint",
]
