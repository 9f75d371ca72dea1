"""Unit tests for flowgraph models."""

import pytest
from pydantic import ValidationError

from flowgraph import (
    Cardinality,
    Column,
    ColumnType,
    Edge,
    EdgeKind,
    FlowGraph,
    RelationshipDetail,
    TableNode,
    TransformationNode,
    TransformKind,
    is_table,
)


class TestColumn:
    """Tests for the Column descriptor."""

    def test_defaults(self):
        col = Column(name="email")
        assert col.type == ColumnType.VARCHAR
        assert col.is_primary_key is False
        assert col.is_foreign_key is False
        assert col.references is None

    def test_camel_case_flags_from_schema_snapshot(self):
        col = Column.model_validate({
            "name": "customer_id",
            "type": "int",
            "isForeignKey": True,
            "references": "customers.id",
        })
        assert col.is_foreign_key is True
        assert col.referenced_table() == "customers"
        assert col.referenced_column() == "id"

    def test_serial_is_normalized_to_int(self):
        col = Column.model_validate({"name": "id", "type": "serial", "isPrimaryKey": True})
        assert col.type == ColumnType.INT
        assert col.is_primary_key is True

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            Column(name="blob", type="geometry")

    def test_foreign_key_requires_references(self):
        with pytest.raises(ValidationError):
            Column(name="user_id", is_foreign_key=True)

    def test_references_require_foreign_key(self):
        with pytest.raises(ValidationError):
            Column(name="user_id", references="users.id")

    def test_empty_references_string_means_none(self):
        col = Column.model_validate({"name": "x", "references": ""})
        assert col.references is None


class TestNodes:
    """Tests for the node variants."""

    def test_generated_ids_carry_kind_prefix(self):
        assert TableNode(label="orders").id.startswith("table-")
        assert TransformationNode(label="f").id.startswith("transformation-")

    def test_table_helpers(self):
        table = TableNode(label="orders", columns=[
            Column(name="id", type="int", is_primary_key=True),
            Column(name="total", type="decimal"),
        ])
        assert table.column_names() == ["id", "total"]
        assert table.get_column("total").type == ColumnType.DECIMAL
        assert table.get_column("missing") is None
        assert table.primary_key().name == "id"

    def test_is_table_uses_variant(self):
        assert is_table(TableNode(label="t"))
        assert not is_table(TransformationNode(label="t", transform_kind=TransformKind.JOIN))


class TestEdge:
    """Tests for Edge."""

    def test_legacy_from_to(self):
        edge = Edge.model_validate({"from": "a", "to": "b"})
        assert edge.source == "a"
        assert edge.target == "b"
        assert edge.kind == EdgeKind.GENERIC_FLOW
        assert edge.id.startswith("edge-")

    def test_relationship_needs_detail(self):
        with pytest.raises(ValidationError):
            Edge(source="a", target="b", kind=EdgeKind.RELATIONSHIP)

    def test_generic_flow_rejects_detail(self):
        with pytest.raises(ValidationError):
            Edge(
                source="a",
                target="b",
                relationship=RelationshipDetail(source_column="id", target_column="a_id"),
            )

    def test_relationship_json_dict(self):
        edge = Edge(
            source="a",
            target="b",
            kind=EdgeKind.RELATIONSHIP,
            label="id → a_id",
            relationship=RelationshipDetail(source_column="id", target_column="a_id"),
        )
        data = edge.to_json_dict()
        assert data["kind"] == "relationship"
        assert data["relationship"]["cardinality"] == Cardinality.ONE_TO_MANY.value
        assert edge.touches("a") and edge.touches("b") and not edge.touches("c")


class TestFlowGraph:
    """Tests for FlowGraph snapshots."""

    def test_from_json_dict_dispatches_on_kind(self):
        graph = FlowGraph.from_json_dict({
            "nodes": [
                {"id": "t1", "kind": "table", "label": "users", "columns": [{"name": "id", "type": "int"}]},
                {"id": "f1", "kind": "transformation", "label": "Filter", "transform_kind": "filter"},
            ],
            "edges": [{"id": "e1", "from": "t1", "to": "f1", "label": "users → Filter"}],
        })

        assert isinstance(graph.get_node("t1"), TableNode)
        assert isinstance(graph.get_node("f1"), TransformationNode)
        assert graph.get_edge("e1").source == "t1"
        assert graph.get_node("nope") is None

        data = graph.to_json_dict()
        assert [n["kind"] for n in data["nodes"]] == ["table", "transformation"]
        assert data["edges"][0]["source"] == "t1"

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            FlowGraph.from_json_dict({"nodes": [{"id": "x", "kind": "view", "label": "v"}]})
