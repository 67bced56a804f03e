"""Custom exceptions for graph entity use cases."""


class GraphUseCaseError(Exception):
    """Base class for errors raised by graph entity use cases."""

    pass


class ValidationError(GraphUseCaseError, ValueError):
    """Raised when input is rejected before any query is issued."""

    pass


class EntityNotFoundError(GraphUseCaseError):
    """Raised when an entity or relation does not exist."""

    def __init__(self, detail: str = "Entity not found"):
        super().__init__(detail)


class InvalidReferenceError(GraphUseCaseError):
    """Raised when a relation points at a vertex that does not exist."""

    def __init__(self, detail: str = "Relation target does not exist"):
        super().__init__(detail)


class WriteFailedError(GraphUseCaseError):
    """Raised when a write transaction was rolled back."""

    def __init__(self, detail: str = "Write failed"):
        super().__init__(detail)


class PostCommitFetchError(GraphUseCaseError):
    """Raised when a committed entity cannot be read back.

    The write is durable; only the returned value and the notification
    are missing.
    """

    def __init__(self, entity_id: int, stix_id: str):
        self.entity_id = entity_id
        self.stix_id = stix_id
        super().__init__(
            f"Entity {stix_id} was committed with id {entity_id} "
            "but could not be read back"
        )
