"""Translation of graph errors into HTTP errors."""

import logging

from fastapi import HTTPException, status

from threatgraph.features.graph.repositories.errors import (
    GraphStoreError,
    StoreUnavailableError,
)
from threatgraph.features.graph.usecases.errors import (
    EntityNotFoundError,
    GraphUseCaseError,
    InvalidReferenceError,
    PostCommitFetchError,
    ValidationError,
    WriteFailedError,
)

logger = logging.getLogger(__name__)

HANDLED_ERRORS = (GraphUseCaseError, GraphStoreError)


def http_error(exc: Exception) -> HTTPException:
    """Map a use case or store error to the HTTPException returned for it."""
    if isinstance(exc, ValidationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, EntityNotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, InvalidReferenceError):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(exc, StoreUnavailableError) or (
        isinstance(exc, WriteFailedError)
        and isinstance(exc.__cause__, StoreUnavailableError)
    ):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR

    if code >= 500 and not isinstance(exc, PostCommitFetchError):
        logger.error("Graph request failed: %s", exc)
    return HTTPException(status_code=code, detail=str(exc))
