"""
Change events emitted by the graph store.

Events are delivered to subscribers only after the mutation that produced
them has committed, in the order they were emitted. A node delete yields
one NodeRemoved followed by one EdgeRemoved per incident edge.

Every event carries the `batch` number of the commit that produced it;
events sharing a batch were written by one outermost transaction.
"""

from dataclasses import dataclass
from typing import Callable, Union

from .models import Column, Edge, FlowGraph, TableNode, TransformationNode


@dataclass(frozen=True)
class NodeAdded:
    node: Union[TableNode, TransformationNode]
    type: str = "node_added"
    batch: int = 0

    def to_dict(self) -> dict:
        return {"type": self.type, "batch": self.batch, "node": self.node.model_dump(mode="json")}


@dataclass(frozen=True)
class NodeRemoved:
    node: Union[TableNode, TransformationNode]
    type: str = "node_removed"
    batch: int = 0

    def to_dict(self) -> dict:
        return {"type": self.type, "batch": self.batch, "node_id": self.node.id}


@dataclass(frozen=True)
class NodeColumnsUpdated:
    node_id: str
    columns: tuple[Column, ...]
    type: str = "node_columns_updated"
    batch: int = 0

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "batch": self.batch,
            "node_id": self.node_id,
            "columns": [c.model_dump(mode="json") for c in self.columns],
        }


@dataclass(frozen=True)
class EdgeAdded:
    edge: Edge
    type: str = "edge_added"
    batch: int = 0

    def to_dict(self) -> dict:
        return {"type": self.type, "batch": self.batch, "edge": self.edge.to_json_dict()}


@dataclass(frozen=True)
class EdgeRemoved:
    edge: Edge
    type: str = "edge_removed"
    batch: int = 0

    def to_dict(self) -> dict:
        return {"type": self.type, "batch": self.batch, "edge_id": self.edge.id}


@dataclass(frozen=True)
class GraphReset:
    """The whole graph was replaced from a snapshot."""
    graph: FlowGraph
    type: str = "graph_reset"
    batch: int = 0

    def to_dict(self) -> dict:
        return {"type": self.type, "batch": self.batch, "graph": self.graph.to_json_dict()}


GraphEvent = Union[NodeAdded, NodeRemoved, NodeColumnsUpdated, EdgeAdded, EdgeRemoved, GraphReset]

EventCallback = Callable[[GraphEvent], None]
