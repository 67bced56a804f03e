"""Turn caller-supplied attribute values into stored vertex properties."""

from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from threatgraph.features.graph.models import (
    RESERVED_ATTRIBUTES,
    EntitySchema,
    FieldKind,
    FieldSpec,
)
from threatgraph.features.graph.repositories.query_utils import timestamp_properties
from threatgraph.features.graph.usecases.errors import ValidationError


def _timestamp_nulls(name: str) -> dict[str, None]:
    return {
        name: None,
        f"{name}_day": None,
        f"{name}_month": None,
        f"{name}_year": None,
    }


def prepare_field(field_spec: FieldSpec, value: Any) -> dict[str, Any]:
    """Validate one attribute and return the properties it is stored as.

    A missing optional timestamp maps to nulls for the attribute and its
    derived fields.
    """
    if field_spec.kind is FieldKind.TIMESTAMP:
        if value is None:
            if field_spec.required:
                raise ValidationError(f"'{field_spec.name}' is required")
            return _timestamp_nulls(field_spec.name)
        if not isinstance(value, (datetime, date, str)):
            raise ValidationError(f"'{field_spec.name}' must be a timestamp")
        try:
            return timestamp_properties(field_spec.name, value)
        except ValueError:
            raise ValidationError(
                f"'{field_spec.name}' is not a valid ISO-8601 timestamp"
            ) from None

    if field_spec.kind is FieldKind.BOOLEAN:
        if value is None:
            if field_spec.required:
                raise ValidationError(f"'{field_spec.name}' is required")
            return {field_spec.name: bool(field_spec.default)}
        if not isinstance(value, bool):
            raise ValidationError(f"'{field_spec.name}' must be a boolean")
        return {field_spec.name: value}

    if value is None:
        if field_spec.required:
            raise ValidationError(f"'{field_spec.name}' is required")
        value = field_spec.default if field_spec.default is not None else ""
    if not isinstance(value, str):
        raise ValidationError(f"'{field_spec.name}' must be a string")
    if "\x00" in value:
        raise ValidationError(f"'{field_spec.name}' cannot contain NUL characters")
    if field_spec.required and not value.strip():
        raise ValidationError(f"'{field_spec.name}' cannot be empty")
    return {field_spec.name: value.lower() if field_spec.lowercase else value}


def prepare_attributes(
    schema: EntitySchema, attributes: Mapping[str, Any]
) -> dict[str, Any]:
    """Validate a full attribute payload against a schema.

    Returns the schema's properties in schema order. Null timestamps are
    left out: business timestamps are never invented.
    """
    unknown = sorted(
        key
        for key in attributes
        if key in RESERVED_ATTRIBUTES or not schema.has_field(key)
    )
    if unknown:
        raise ValidationError(
            f"Unknown attribute(s) for {schema.kind.value}: {', '.join(unknown)}"
        )

    properties: dict[str, Any] = {}
    for field_spec in schema.fields:
        prepared = prepare_field(field_spec, attributes.get(field_spec.name))
        properties.update({k: v for k, v in prepared.items() if v is not None})
    return properties


def prepare_edit(schema: EntitySchema, key: str, value: Any) -> dict[str, Any]:
    """Validate a replace-value edit of one attribute."""
    field_spec = schema.get_field(key)
    if field_spec is None or key in RESERVED_ATTRIBUTES:
        raise ValidationError(
            f"'{key}' is not an editable {schema.kind.value} attribute"
        )
    return prepare_field(field_spec, value)
