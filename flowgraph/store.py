"""
Graph Store - Authoritative node/edge state for one flow-design session.

This module implements:
- O(1) node/edge lookups via index dictionaries
- Cascade delete (removing a node removes every incident edge)
- Snapshot-based transactions: a failed mutation restores the state taken
  at entry, so observers never see a half-applied change
- Change events delivered to subscribers after commit

One GraphStore is constructed per session and passed to everything that
reads or writes the graph. There is no module-level instance.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Iterable, Iterator, Optional, Union

from .errors import DuplicateIdError, EmptyColumnNameError, InvalidColumnsError, NotFoundError
from .events import (
    EdgeAdded,
    EdgeRemoved,
    EventCallback,
    GraphEvent,
    GraphReset,
    NodeAdded,
    NodeColumnsUpdated,
    NodeRemoved,
)
from .models import Column, Edge, EdgeKind, FlowGraph, TableNode, TransformationNode

logger = logging.getLogger(__name__)

AnyNode = Union[TableNode, TransformationNode]

_Snapshot = tuple[dict[str, AnyNode], dict[str, Edge], dict[str, set[str]]]


def coerce_columns(columns: Iterable[Union[Column, dict]]) -> list[Column]:
    """
    Accept Column models or plain dicts (as sent by the column editor).

    Column models are copied, so the result shares no state with the caller.
    """
    return [c.model_copy(deep=True) if isinstance(c, Column) else Column.model_validate(c) for c in columns]


def check_columns(table_label: str, columns: list[Column]):
    """Enforce the table-level column rules: non-empty unique names, one primary key."""
    seen: set[str] = set()
    primary_keys: list[str] = []
    for column in columns:
        if not column.name or not column.name.strip():
            raise EmptyColumnNameError(f"Table '{table_label}' has a column without a name")
        if column.name in seen:
            raise DuplicateIdError(f"Column '{column.name}' appears twice in table '{table_label}'")
        seen.add(column.name)
        if column.is_primary_key:
            primary_keys.append(column.name)

    if len(primary_keys) > 1:
        raise InvalidColumnsError(
            f"Table '{table_label}' has more than one primary key: {', '.join(primary_keys)}"
        )


class GraphStore:
    """
    Owns the node set and edge set of a flow graph.

    Features:
    - O(1) node/edge lookups via index dictionaries
    - Incident-edge index for cascade deletes
    - Nested transactions with rollback on any exception
    - Subscriber callbacks for change events

    Stored nodes and edges are private copies: inserts copy what the caller
    passes in, reads hand out copies, and column edits replace the stored
    node rather than mutating it in place.
    """

    def __init__(self):
        self._nodes: dict[str, AnyNode] = {}            # node_id -> node (insertion ordered)
        self._edges: dict[str, Edge] = {}               # edge_id -> edge (insertion ordered)
        self._edges_by_node: dict[str, set[str]] = {}   # node_id -> set of edge_ids
        self._subscribers: list[EventCallback] = []
        self._pending: list[GraphEvent] = []
        self._depth = 0
        self._batch = 0
        self._delivering = False
        # Held for each mutating call, including its cascade
        self._lock = threading.RLock()

    # --- Index Management ---

    def _index_edge(self, edge: Edge):
        """Add an edge to the indexes."""
        self._edges[edge.id] = edge
        self._edges_by_node.setdefault(edge.source, set()).add(edge.id)
        self._edges_by_node.setdefault(edge.target, set()).add(edge.id)

    def _unindex_edge(self, edge: Edge):
        """Remove an edge from the indexes."""
        self._edges.pop(edge.id, None)
        if edge.source in self._edges_by_node:
            self._edges_by_node[edge.source].discard(edge.id)
        if edge.target in self._edges_by_node:
            self._edges_by_node[edge.target].discard(edge.id)

    # --- Subscribers ---

    def subscribe(self, callback: EventCallback):
        """Register a callback for change events."""
        self._subscribers.append(callback)

    def unsubscribe(self, callback: EventCallback):
        """Remove a previously registered callback."""
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def _emit(self, event: GraphEvent):
        self._pending.append(replace(event, batch=self._batch))

    def _deliver_pending(self):
        """
        Hand committed events to subscribers, oldest first.

        A subscriber that mutates the store has its events queued behind the
        ones still waiting. A subscriber that raises is logged and skipped;
        the commit stands and the other subscribers still get the event.
        """
        self._delivering = True
        try:
            while self._pending:
                event = self._pending.pop(0)
                logger.debug("Delivering %s to %d subscriber(s)", event.type, len(self._subscribers))
                for callback in list(self._subscribers):
                    try:
                        callback(event)
                    except Exception:
                        logger.exception("Subscriber %r failed on %s", callback, event.type)
        finally:
            self._delivering = False

    # --- Transactions ---

    def _take_snapshot(self) -> _Snapshot:
        return (
            dict(self._nodes),
            dict(self._edges),
            {node_id: set(edge_ids) for node_id, edge_ids in self._edges_by_node.items()},
        )

    def _restore_snapshot(self, snapshot: _Snapshot):
        self._nodes, self._edges, self._edges_by_node = snapshot

    @contextmanager
    def transaction(self) -> Iterator["GraphStore"]:
        """
        Run a group of mutations as one unit.

        Nested transactions act as savepoints: an exception restores the
        state at entry of the innermost transaction and drops the events it
        emitted. Events are delivered when the outermost transaction commits.
        """
        with self._lock:
            snapshot = self._take_snapshot()
            mark = len(self._pending)
            if self._depth == 0:
                self._batch += 1
            self._depth += 1
            try:
                yield self
            except BaseException:
                self._restore_snapshot(snapshot)
                del self._pending[mark:]
                logger.debug("Rolled back transaction at depth %d", self._depth)
                raise
            finally:
                self._depth -= 1

            if self._depth == 0 and not self._delivering:
                self._deliver_pending()

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    # --- Reads ---

    @property
    def nodes(self) -> list[AnyNode]:
        """All nodes in insertion order."""
        return [n.model_copy(deep=True) for n in self._nodes.values()]

    @property
    def edges(self) -> list[Edge]:
        """All edges in insertion order."""
        return [e.model_copy(deep=True) for e in self._edges.values()]

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def has_edge(self, edge_id: str) -> bool:
        return edge_id in self._edges

    def get_node(self, node_id: str) -> Optional[AnyNode]:
        """Get a node by ID (O(1) lookup)."""
        node = self._nodes.get(node_id)
        return node.model_copy(deep=True) if node is not None else None

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        """Get an edge by ID (O(1) lookup)."""
        edge = self._edges.get(edge_id)
        return edge.model_copy(deep=True) if edge is not None else None

    def require_node(self, node_id: str) -> AnyNode:
        """Get a node by ID or raise NotFoundError."""
        return self._require_node(node_id).model_copy(deep=True)

    def require_table(self, node_id: str) -> TableNode:
        """Get a table node by ID or raise NotFoundError."""
        return self._require_table(node_id).model_copy(deep=True)

    def table_nodes(self) -> list[TableNode]:
        return [n.model_copy(deep=True) for n in self._nodes.values() if isinstance(n, TableNode)]

    def find_tables_by_label(self, label: str) -> list[TableNode]:
        """Table nodes whose label matches exactly (labels are not unique)."""
        return [n for n in self.table_nodes() if n.label == label]

    def get_edges_for_node(self, node_id: str) -> list[Edge]:
        """Get all edges connected to a node, in insertion order."""
        return [e.model_copy(deep=True) for e in self._incident_edges(node_id)]

    def snapshot(self) -> FlowGraph:
        """Copy of the current state for rendering or persistence collaborators."""
        return FlowGraph(nodes=self.nodes, edges=self.edges)

    def _require_node(self, node_id: str) -> AnyNode:
        node = self._nodes.get(node_id)
        if node is None:
            raise NotFoundError(f"Node not found: {node_id}")
        return node

    def _require_table(self, node_id: str) -> TableNode:
        node = self._require_node(node_id)
        if not isinstance(node, TableNode):
            raise NotFoundError(f"Node is not a table: {node_id}")
        return node

    def _incident_edges(self, node_id: str) -> list[Edge]:
        edge_ids = self._edges_by_node.get(node_id)
        if not edge_ids:
            return []
        return [e for e in self._edges.values() if e.id in edge_ids]

    def _check_edge(self, edge: Edge):
        """Endpoint rules for an edge about to be indexed."""
        if edge.source not in self._nodes:
            raise NotFoundError(f"Source node not found: {edge.source}")
        if edge.target not in self._nodes:
            raise NotFoundError(f"Target node not found: {edge.target}")
        if edge.id in self._edges:
            raise DuplicateIdError(f"Edge id already exists: {edge.id}")

        if edge.kind == EdgeKind.RELATIONSHIP:
            detail = edge.relationship
            source = self._require_table(edge.source)
            target = self._require_table(edge.target)
            if source.get_column(detail.source_column) is None:
                raise NotFoundError(f"Table '{source.label}' has no column '{detail.source_column}'")
            if target.get_column(detail.target_column) is None:
                raise NotFoundError(f"Table '{target.label}' has no column '{detail.target_column}'")

    # --- Node Operations ---

    def add_node(self, node: AnyNode) -> str:
        """Add a copy of `node`. Raises DuplicateIdError if the id is taken."""
        with self.transaction():
            if node.id in self._nodes:
                raise DuplicateIdError(f"Node id already exists: {node.id}")
            if isinstance(node, TableNode):
                check_columns(node.label, node.columns)

            self._nodes[node.id] = node.model_copy(deep=True)
            self._emit(NodeAdded(node.model_copy(deep=True)))
            logger.debug("Added %s node %s (%s)", node.kind, node.id, node.label)
        return node.id

    def remove_node(self, node_id: str):
        """Remove a node and, in the same transaction, every edge touching it."""
        with self.transaction():
            node = self._require_node(node_id)
            incident = self._incident_edges(node_id)

            del self._nodes[node_id]
            self._emit(NodeRemoved(node))

            for edge in incident:
                self._unindex_edge(edge)
                self._emit(EdgeRemoved(edge))
            self._edges_by_node.pop(node_id, None)

            logger.debug("Removed node %s and %d incident edge(s)", node_id, len(incident))

    def update_node_columns(self, node_id: str, columns: Iterable[Union[Column, dict]]):
        """
        Replace a table node's full column sequence (order preserved).

        Foreign-key `references` are stored as given; they are only checked
        against other tables when a relationship is created.
        """
        with self.transaction():
            node = self._require_table(node_id)
            new_columns = coerce_columns(columns)
            check_columns(node.label, new_columns)

            self._nodes[node_id] = node.model_copy(update={"columns": new_columns})
            self._emit(NodeColumnsUpdated(node_id, tuple(coerce_columns(new_columns))))
            logger.debug("Replaced columns of %s (%d columns)", node_id, len(new_columns))

    # --- Edge Operations ---

    def add_edge(self, edge: Edge) -> str:
        """
        Add a copy of `edge`. Both endpoints must exist and the id must be free.

        A relationship edge must join two tables, and the columns named in its
        detail must exist on them.
        """
        with self.transaction():
            self._check_edge(edge)

            self._index_edge(edge.model_copy(deep=True))
            self._emit(EdgeAdded(edge.model_copy(deep=True)))
            logger.debug("Added %s edge %s (%s -> %s)", edge.kind.value, edge.id, edge.source, edge.target)
        return edge.id

    def remove_edge(self, edge_id: str):
        """Remove a single edge."""
        with self.transaction():
            edge = self._edges.get(edge_id)
            if edge is None:
                raise NotFoundError(f"Edge not found: {edge_id}")
            self._unindex_edge(edge)
            self._emit(EdgeRemoved(edge))
            logger.debug("Removed edge %s", edge_id)

    # --- Bulk ---

    def load(self, graph: FlowGraph):
        """
        Replace the whole state with a copy of a snapshot.

        The snapshot goes through the same checks as individual inserts, so
        a snapshot with a dangling edge, a relationship on a missing column
        or a duplicate id is rejected whole.
        """
        with self.transaction():
            self._nodes.clear()
            self._edges.clear()
            self._edges_by_node.clear()

            for node in graph.nodes:
                if node.id in self._nodes:
                    raise DuplicateIdError(f"Node id already exists: {node.id}")
                if isinstance(node, TableNode):
                    check_columns(node.label, node.columns)
                self._nodes[node.id] = node.model_copy(deep=True)

            for edge in graph.edges:
                self._check_edge(edge)
                self._index_edge(edge.model_copy(deep=True))

            self._emit(GraphReset(self.snapshot()))
            logger.info("Loaded graph with %d node(s) and %d edge(s)", len(self._nodes), len(self._edges))
