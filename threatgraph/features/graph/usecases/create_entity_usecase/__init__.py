"""Create entity use case module."""

from .create_entity_usecase import CreateEntityUseCaseImpl, build_vertex_properties
from .entity_attributes import prepare_attributes, prepare_edit, prepare_field

__all__ = [
    "CreateEntityUseCaseImpl",
    "build_vertex_properties",
    "prepare_attributes",
    "prepare_edit",
    "prepare_field",
]
