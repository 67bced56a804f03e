"""Request-scoped context.

`contextvars` let log records and notifications be attributed to the current
request without passing plumbing everywhere.
"""

from __future__ import annotations

import contextvars
import uuid

request_id_var: contextvars.ContextVar[uuid.UUID | None] = contextvars.ContextVar(
    "request_id", default=None
)
request_path_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_path", default=None
)


def new_request_id() -> uuid.UUID:
    return uuid.uuid4()


def set_request_id(request_id: uuid.UUID | None) -> None:
    _ = request_id_var.set(request_id)


def get_request_id() -> uuid.UUID | None:
    return request_id_var.get()


def set_request_path(path: str | None) -> None:
    _ = request_path_var.set(path)


def get_request_path() -> str | None:
    return request_path_var.get()


def clear_request_context() -> None:
    """Best-effort cleanup to avoid cross-request leakage."""
    _ = request_id_var.set(None)
    _ = request_path_var.set(None)
