"""Exceptions raised by graph store implementations."""


class GraphStoreError(Exception):
    """Base class for graph store failures."""

    pass


class StoreUnavailableError(GraphStoreError):
    """Raised when no connection or transaction could be obtained."""

    def __init__(self, detail: str = "Graph store unavailable"):
        super().__init__(detail)


class TransactionError(GraphStoreError):
    """Raised when a query or the commit of a write transaction fails."""

    pass


class ReferenceNotFoundError(GraphStoreError):
    """Raised when an edge endpoint does not exist in the graph."""

    def __init__(self, from_id: int, to_id: int, edge_label: str):
        self.from_id = from_id
        self.to_id = to_id
        self.edge_label = edge_label
        super().__init__(
            f"Cannot create {edge_label} from {from_id} to {to_id}: "
            "one of the vertices does not exist"
        )
