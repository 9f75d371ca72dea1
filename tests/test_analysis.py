"""Unit tests for flow analysis."""

from flowgraph import (
    Column,
    TransformationNode,
    downstream_nodes,
    find_connected_components,
    summarize_flow,
    upstream_nodes,
)


class TestSummary:
    """Tests for summarize_flow."""

    def test_empty(self, store):
        summary = summarize_flow(store)
        assert summary.total_nodes == 0
        assert summary.connected_components == 0
        assert summary.edges_by_kind == {"generic-flow": 0, "relationship": 0}

    def test_counts(self, ab_designer):
        ab_designer.create_relationship("A", "id", "B", "a_id")
        ab_designer.add_transformation("filter", "B")
        ab_designer.add_generic_node("join")

        summary = summarize_flow(ab_designer.store)

        assert summary.total_nodes == 4
        assert summary.table_count == 2
        assert summary.transformation_count == 2
        assert summary.transformations_by_kind == {"filter": 1, "join": 1}
        assert summary.edges_by_kind == {"generic-flow": 1, "relationship": 1}
        assert summary.foreign_key_columns == 1
        assert summary.connected_components == 2
        assert summary.orphan_count == 1
        assert summary.most_connected_nodes[0].node_id == "B"

        data = summary.to_dict()
        assert data["most_connected_nodes"][0]["connections"] == 2


class TestComponents:
    """Tests for find_connected_components."""

    def test_direction_is_ignored(self, ab_designer):
        ab_designer.add_node(TransformationNode(id="F", label="Filter"))
        ab_designer.connect_generic("B", "A")

        components = find_connected_components(ab_designer.store)

        assert [c.node_ids for c in components] == [["A", "B"], ["F"]]
        assert components[0].edge_count == 1
        assert components[1].size == 1


class TestLineage:
    """Tests for upstream/downstream traversal."""

    def test_upstream_and_downstream(self, designer):
        users = designer.add_table("users", [Column(name="id")])
        orders = designer.add_table("orders", [Column(name="user_id")])
        join = designer.add_transformation("join", users.id)
        designer.connect_generic(orders.id, join.id)
        output = designer.add_transformation("output", join.id)

        assert upstream_nodes(designer.store, output.id) == [join.id, users.id, orders.id]
        assert downstream_nodes(designer.store, users.id) == [join.id, output.id]
        assert upstream_nodes(designer.store, users.id) == []
