"""Tests for entity schemas and the relation vocabulary."""

import pytest

from threatgraph.features.graph.models import (
    CAMPAIGN_SCHEMA,
    EXTERNAL_REFERENCE_SCHEMA,
    RESERVED_ATTRIBUTES,
    EntityKind,
    FieldKind,
    RelationType,
    get_schema,
)


class TestEntitySchemas:
    def test_lookup_by_kind_and_value(self):
        assert get_schema(EntityKind.CAMPAIGN) is CAMPAIGN_SCHEMA
        assert get_schema("External-Reference") is EXTERNAL_REFERENCE_SCHEMA

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            _ = get_schema("Malware")

    def test_campaign_fields(self):
        assert CAMPAIGN_SCHEMA.stix_prefix == "campaign--"
        assert CAMPAIGN_SCHEMA.required_fields == ("name",)
        first_seen = CAMPAIGN_SCHEMA.get_field("first_seen")
        assert first_seen is not None
        assert first_seen.kind is FieldKind.TIMESTAMP
        assert CAMPAIGN_SCHEMA.link_relation is RelationType.STIX_RELATION

    def test_external_reference_fields(self):
        assert EXTERNAL_REFERENCE_SCHEMA.label == "ExternalReference"
        assert EXTERNAL_REFERENCE_SCHEMA.stix_prefix == "external-reference--"
        url = EXTERNAL_REFERENCE_SCHEMA.get_field("url")
        assert url is not None and url.lowercase
        assert EXTERNAL_REFERENCE_SCHEMA.required_fields == ("source_name",)

    def test_reserved_attributes_are_not_fields(self):
        for schema in (CAMPAIGN_SCHEMA, EXTERNAL_REFERENCE_SCHEMA):
            assert not any(schema.has_field(name) for name in RESERVED_ATTRIBUTES)


class TestRelationType:
    @pytest.mark.parametrize(
        ("relation_type", "edge_label"),
        [
            (RelationType.CREATED_BY, "created_by_ref"),
            (RelationType.OBJECT_MARKING, "object_marking_refs"),
            (RelationType.EXTERNAL_REFERENCE, "external_references"),
            (RelationType.STIX_RELATION, "stix_relation"),
        ],
    )
    def test_edge_labels(self, relation_type: RelationType, edge_label: str):
        assert relation_type.edge_label == edge_label
        assert RelationType.from_edge_label(edge_label) is relation_type

    def test_unknown_edge_label(self):
        with pytest.raises(ValueError):
            _ = RelationType.from_edge_label("uses")
