"""
Flow analysis - Graph analysis and summarization utilities.

Read-only helpers over a GraphStore used by the wizard's review steps and
by the HTTP adapter's summary endpoint.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .models import EdgeKind, TableNode, TransformationNode

if TYPE_CHECKING:
    from .store import GraphStore


@dataclass
class ConnectedComponent:
    """A connected component in the flow graph."""
    node_ids: list[str] = field(default_factory=list)
    edge_count: int = 0

    @property
    def size(self) -> int:
        return len(self.node_ids)


@dataclass
class NodeConnectionInfo:
    """Connection information for a single node."""
    node_id: str
    label: str
    incoming: int = 0   # Edges pointing to this node
    outgoing: int = 0   # Edges pointing from this node

    @property
    def total(self) -> int:
        return self.incoming + self.outgoing


@dataclass
class FlowSummary:
    """Complete summary of a flow's structure."""
    total_nodes: int
    total_edges: int
    table_count: int
    transformation_count: int
    transformations_by_kind: dict[str, int]
    edges_by_kind: dict[str, int]
    foreign_key_columns: int
    connected_components: int
    most_connected_nodes: list[NodeConnectionInfo]
    orphan_count: int

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "total_nodes": self.total_nodes,
            "total_edges": self.total_edges,
            "table_count": self.table_count,
            "transformation_count": self.transformation_count,
            "transformations_by_kind": self.transformations_by_kind,
            "edges_by_kind": self.edges_by_kind,
            "foreign_key_columns": self.foreign_key_columns,
            "connected_components": self.connected_components,
            "most_connected_nodes": [
                {
                    "id": n.node_id,
                    "label": n.label,
                    "connections": n.total,
                    "incoming": n.incoming,
                    "outgoing": n.outgoing
                }
                for n in self.most_connected_nodes
            ],
            "orphan_count": self.orphan_count
        }


def find_connected_components(store: "GraphStore") -> list[ConnectedComponent]:
    """
    Find all connected components using BFS, treating edges as undirected.

    Args:
        store: The graph to analyze

    Returns:
        List of ConnectedComponent objects, in node insertion order
    """
    node_ids = [n.id for n in store.nodes]
    if not node_ids:
        return []

    adjacency: dict[str, set[str]] = {nid: set() for nid in node_ids}
    for edge in store.edges:
        if edge.source in adjacency and edge.target in adjacency:
            adjacency[edge.source].add(edge.target)
            adjacency[edge.target].add(edge.source)

    visited: set[str] = set()
    components: list[ConnectedComponent] = []

    for start_node in node_ids:
        if start_node in visited:
            continue

        component_nodes: list[str] = []
        queue = [start_node]

        while queue:
            current = queue.pop(0)
            if current in visited:
                continue

            visited.add(current)
            component_nodes.append(current)

            for neighbor in adjacency[current]:
                if neighbor not in visited:
                    queue.append(neighbor)

        members = set(component_nodes)
        components.append(ConnectedComponent(
            node_ids=component_nodes,
            edge_count=sum(1 for e in store.edges if e.source in members)
        ))

    return components


def calculate_node_connections(store: "GraphStore") -> dict[str, NodeConnectionInfo]:
    """Incoming/outgoing edge counts for every node."""
    connections: dict[str, NodeConnectionInfo] = {}
    for node in store.nodes:
        connections[node.id] = NodeConnectionInfo(node_id=node.id, label=node.label)

    for edge in store.edges:
        if edge.source in connections:
            connections[edge.source].outgoing += 1
        if edge.target in connections:
            connections[edge.target].incoming += 1

    return connections


def summarize_flow(store: "GraphStore", top_n: int = 5) -> FlowSummary:
    """
    Generate a summary of a flow.

    Args:
        store: The graph to summarize
        top_n: Number of top connected nodes to include

    Returns:
        FlowSummary object with all analysis results
    """
    nodes = store.nodes
    edges = store.edges

    tables = [n for n in nodes if isinstance(n, TableNode)]
    transformations = [n for n in nodes if isinstance(n, TransformationNode)]

    kind_counts: dict[str, int] = defaultdict(int)
    for node in transformations:
        kind_counts[node.transform_kind.value] += 1

    edge_counts: dict[str, int] = {kind.value: 0 for kind in EdgeKind}
    for edge in edges:
        edge_counts[edge.kind.value] += 1

    foreign_keys = sum(1 for t in tables for c in t.columns if c.is_foreign_key)

    connections = calculate_node_connections(store)
    sorted_by_connections = sorted(connections.values(), key=lambda x: x.total, reverse=True)
    most_connected = [n for n in sorted_by_connections[:top_n] if n.total > 0]
    orphan_count = sum(1 for n in connections.values() if n.total == 0)

    return FlowSummary(
        total_nodes=len(nodes),
        total_edges=len(edges),
        table_count=len(tables),
        transformation_count=len(transformations),
        transformations_by_kind=dict(kind_counts),
        edges_by_kind=edge_counts,
        foreign_key_columns=foreign_keys,
        connected_components=len(find_connected_components(store)),
        most_connected_nodes=most_connected,
        orphan_count=orphan_count
    )


def upstream_nodes(store: "GraphStore", node_id: str) -> list[str]:
    """
    Every node that feeds into `node_id`, following edges backwards.

    Returns ids nearest-first (BFS order), excluding `node_id` itself.
    """
    incoming: dict[str, list[str]] = defaultdict(list)
    for edge in store.edges:
        incoming[edge.target].append(edge.source)

    return _walk(incoming, node_id)


def downstream_nodes(store: "GraphStore", node_id: str) -> list[str]:
    """Every node fed by `node_id`, following edges forwards (BFS order)."""
    outgoing: dict[str, list[str]] = defaultdict(list)
    for edge in store.edges:
        outgoing[edge.source].append(edge.target)

    return _walk(outgoing, node_id)


def _walk(adjacency: dict[str, list[str]], start: str) -> list[str]:
    seen = {start}
    order: list[str] = []
    queue = [start]
    while queue:
        current = queue.pop(0)
        for neighbor in adjacency[current]:
            if neighbor not in seen:
                seen.add(neighbor)
                order.append(neighbor)
                queue.append(neighbor)
    return order
