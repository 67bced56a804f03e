"""Graph entity use cases."""

from .create_entity_usecase import CreateEntityUseCaseImpl
from .delete_entity_usecase import DeleteEntityUseCaseImpl
from .edit_entity_usecase import EditEntityUseCaseImpl, RelationEdit
from .errors import (
    EntityNotFoundError,
    GraphUseCaseError,
    InvalidReferenceError,
    PostCommitFetchError,
    ValidationError,
    WriteFailedError,
)
from .query_entities_usecase import QueryEntitiesUseCaseImpl

__all__ = [
    # Use cases
    "CreateEntityUseCaseImpl",
    "DeleteEntityUseCaseImpl",
    "EditEntityUseCaseImpl",
    "QueryEntitiesUseCaseImpl",
    "RelationEdit",
    # Errors
    "EntityNotFoundError",
    "GraphUseCaseError",
    "InvalidReferenceError",
    "PostCommitFetchError",
    "ValidationError",
    "WriteFailedError",
]
