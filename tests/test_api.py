"""Tests for the HTTP/WebSocket adapter."""

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from backend.main import app
from backend.websocket_manager import WebSocketManager


@pytest.fixture
def client():
    # Entering the client runs the lifespan, so each test gets a fresh flow
    with TestClient(app) as test_client:
        yield test_client


def _add_table(client, name, columns):
    response = client.post("/api/tables", json={"name": name, "columns": columns})
    assert response.status_code == 200
    return response.json()["node"]


@pytest.fixture
def users_orders(client):
    users = _add_table(client, "users", [{"name": "id", "type": "int", "isPrimaryKey": True}])
    orders = _add_table(client, "orders", [
        {"name": "id", "type": "int", "is_primary_key": True},
        {"name": "user_id", "type": "int"},
    ])
    return users, orders


class TestHealth:

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.json() == {"status": "ok", "connections": 0}


class TestNodes:
    """Node endpoints."""

    def test_add_table(self, client):
        node = _add_table(client, "users", [{"name": "id", "type": "serial"}])

        assert node["kind"] == "table"
        assert node["id"].startswith("table-")
        assert node["columns"][0]["type"] == "int"

        flow = client.get("/api/flow").json()["flow"]
        assert [n["id"] for n in flow["nodes"]] == [node["id"]]

    def test_palette_node(self, client):
        response = client.post("/api/nodes", json={"palette_entry": "join"})
        node = response.json()["node"]
        assert node["label"] == "Join Transformation 1"
        assert node["transform_kind"] == "join"

    def test_get_missing_node(self, client):
        response = client.get("/api/nodes/ghost")
        assert response.status_code == 404
        assert response.json()["kind"] == "not_found"

    def test_delete_cascades(self, client, users_orders):
        users, orders = users_orders
        edge = client.post("/api/edges", json={"source": users["id"], "target": orders["id"]}).json()["edge"]

        response = client.delete(f"/api/nodes/{users['id']}")

        assert response.json() == {"success": True, "removed_edges": [edge["id"]]}
        assert client.get("/api/flow").json()["flow"]["edges"] == []

    def test_transformation_and_lineage(self, client, users_orders):
        users, _ = users_orders
        response = client.post(f"/api/nodes/{users['id']}/transformations", json={"transform_kind": "filter"})
        node = response.json()["node"]

        assert node["label"] == "Filter Transformation"
        upstream = client.get(f"/api/nodes/{node['id']}/upstream").json()
        assert upstream["node_ids"] == [users["id"]]


class TestRelationships:
    """Relationship endpoint and error mapping."""

    def test_create(self, client, users_orders):
        users, orders = users_orders
        response = client.post("/api/relationships", json={
            "source_table_id": users["id"],
            "source_column": "id",
            "target_table_id": orders["id"],
            "target_column": "user_id",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["edge"]["kind"] == "relationship"
        assert data["edge"]["label"] == "id → user_id"
        user_id = data["target"]["columns"][1]
        assert user_id["is_foreign_key"] is True
        assert user_id["references"] == "users.id"

    def test_incomplete_selection(self, client, users_orders):
        users, _ = users_orders
        response = client.post("/api/relationships", json={"source_table_id": users["id"]})

        assert response.status_code == 422
        assert response.json()["kind"] == "incomplete_selection"

    def test_unknown_column(self, client, users_orders):
        users, orders = users_orders
        response = client.post("/api/relationships", json={
            "source_table_id": users["id"],
            "source_column": "id",
            "target_table_id": orders["id"],
            "target_column": "missing",
        })

        assert response.status_code == 422
        assert response.json() == {
            "success": False,
            "detail": response.json()["detail"],
            "kind": "unknown_column",
        }
        assert client.get("/api/flow").json()["flow"]["edges"] == []


class TestColumns:
    """Column editor endpoints."""

    def test_add_and_remove(self, client, users_orders):
        users, _ = users_orders
        response = client.post(f"/api/nodes/{users['id']}/columns", json={"name": "email", "type": "varchar"})
        assert [c["name"] for c in response.json()["node"]["columns"]] == ["id", "email"]

        response = client.delete(f"/api/nodes/{users['id']}/columns/0")
        assert response.json()["removed"]["name"] == "id"

    def test_duplicate_column_is_a_conflict(self, client, users_orders):
        users, _ = users_orders
        response = client.post(f"/api/nodes/{users['id']}/columns", json={"name": "id"})
        assert response.status_code == 409

    def test_empty_column_name(self, client, users_orders):
        users, _ = users_orders
        response = client.post(f"/api/nodes/{users['id']}/columns", json={"name": " "})
        assert response.status_code == 422
        assert response.json()["kind"] == "empty_column_name"

    def test_replace(self, client, users_orders):
        _, orders = users_orders
        response = client.put(f"/api/nodes/{orders['id']}/columns", json={"columns": [{"name": "total"}]})
        assert [c["name"] for c in response.json()["node"]["columns"]] == ["total"]


class TestFlow:
    """Snapshot load, validation, summary and notifications."""

    def test_load_snapshot(self, client):
        snapshot = {
            "nodes": [
                {"id": "a", "kind": "table", "label": "a", "columns": [{"name": "id"}]},
                {"id": "f", "kind": "transformation", "label": "Filter", "transform_kind": "filter"},
            ],
            "edges": [{"id": "e1", "from": "a", "to": "f"}],
        }

        response = client.put("/api/flow", json=snapshot)

        flow = response.json()["flow"]
        assert [n["id"] for n in flow["nodes"]] == ["a", "f"]
        assert flow["edges"][0]["source"] == "a"
        assert client.get("/api/edges/e1").json()["edge"]["kind"] == "generic-flow"

    def test_load_rejects_dangling_edge(self, client):
        snapshot = {"nodes": [], "edges": [{"id": "e1", "source": "a", "target": "b"}]}
        assert client.put("/api/flow", json=snapshot).status_code == 404

    def test_load_rejects_relationship_to_transformation(self, client):
        snapshot = {
            "nodes": [
                {"id": "a", "kind": "table", "label": "a", "columns": [{"name": "id"}]},
                {"id": "f", "kind": "transformation", "label": "Filter"},
            ],
            "edges": [{
                "id": "r1",
                "source": "a",
                "target": "f",
                "kind": "relationship",
                "relationship": {"source_column": "id", "target_column": "ghost"},
            }],
        }

        response = client.put("/api/flow", json=snapshot)

        assert response.status_code == 404
        assert client.get("/api/flow").json()["flow"]["nodes"] == []

    def test_validate_and_summary(self, client, users_orders):
        issues = client.get("/api/flow/validate").json()
        assert issues["summary"]["warnings"] == 1

        summary = client.get("/api/flow/summary").json()["summary"]
        assert summary["table_count"] == 2
        assert summary["orphan_count"] == 2

    def test_notifications(self, client, users_orders):
        users, _ = users_orders
        client.delete(f"/api/nodes/{users['id']}")

        titles = [n["title"] for n in client.get("/api/notifications").json()["notifications"]]
        assert titles == ["Node added", "Node added", "Node removed"]

    def test_enums(self, client):
        assert "timestamp" in client.get("/api/enums/column-types").json()["column_types"]
        assert client.get("/api/enums/transform-kinds").json()["transform_kinds"] == [
            "filter", "join", "output", "other"
        ]
        assert client.get("/api/enums/edge-kinds").json()["edge_kinds"] == ["generic-flow", "relationship"]

    def test_missing_edge(self, client):
        assert client.get("/api/edges/ghost").status_code == 404
        assert client.delete("/api/edges/ghost").status_code == 404


class TestWebSocket:

    def test_ping(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_text("ping")
            assert json.loads(websocket.receive_text()) == {"type": "pong"}


class _FakeSocket:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    async def accept(self):
        pass

    async def send_text(self, text):
        if self.fail:
            raise RuntimeError("closed")
        self.sent.append(text)


def test_broadcast_drops_failed_clients():
    manager = WebSocketManager()
    good, bad = _FakeSocket(), _FakeSocket(fail=True)

    async def scenario():
        await manager.connect(good)
        await manager.connect(bad)
        await manager.notify_graph_event({"type": "node_added"}, {"title": "Node added", "description": "x"})

    asyncio.run(scenario())

    assert manager.connection_count == 1
    message = json.loads(good.sent[0])
    assert message["type"] == "graph_event"
    assert message["notification"]["title"] == "Node added"
