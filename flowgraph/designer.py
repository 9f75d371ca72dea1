"""
Flow Designer - The mutation API used by the designer UI and wizard steps.

Every operation runs to completion (including cascades) inside a single
store transaction before it returns; a failed operation leaves the graph
as it was.
"""

import logging
from typing import Iterable, Optional, Union

from .analysis import FlowSummary, summarize_flow
from .errors import EmptyColumnNameError, NotFoundError
from .models import (
    Column,
    Edge,
    EdgeKind,
    RelationshipDetail,
    TableNode,
    TransformKind,
    TransformationNode,
    generate_relationship_id,
)
from .store import AnyNode, GraphStore, coerce_columns
from .validation import ValidationIssue, validate_flow, validate_relationship

logger = logging.getLogger(__name__)

# Node palette: entry -> (label prefix, transform kind); "output" creates a table
PALETTE_LABELS = {
    "filter": "Filter Transformation",
    "join": "Join Transformation",
    "output": "Output Destination",
}
DEFAULT_PALETTE_LABEL = "New Node"


class FlowDesigner:
    """
    Orchestrates mutations of one flow graph.

    Wraps a GraphStore (a fresh one unless given) and adds the operations
    that combine several store writes: relationships, transformation steps,
    column edits.
    """

    def __init__(self, store: Optional[GraphStore] = None):
        self._store = store if store is not None else GraphStore()

    @property
    def store(self) -> GraphStore:
        return self._store

    # --- Nodes ---

    def add_node(self, node: AnyNode) -> str:
        """Add a prepared node as-is."""
        return self._store.add_node(node)

    def add_table(
        self,
        name: str,
        columns: Iterable[Union[Column, dict]] = (),
        origin_database_name: Optional[str] = None,
    ) -> TableNode:
        """Add a table picked from schema discovery; columns are taken wholesale."""
        node = TableNode(
            label=name,
            origin_database_name=origin_database_name,
            columns=coerce_columns(columns),
        )
        self._store.add_node(node)
        logger.info("Table %s added as %s", name, node.id)
        return node

    def add_transformation(self, transform_kind: Union[TransformKind, str], upstream_node_id: str) -> TransformationNode:
        """
        Add a transformation step fed by an existing node.

        Creates the node and a generic-flow edge from the upstream node to it
        in one transaction.
        """
        kind = TransformKind(transform_kind)
        with self._store.transaction():
            upstream = self._store.require_node(upstream_node_id)
            node = TransformationNode(
                label=f"{kind.value.capitalize()} Transformation",
                transform_kind=kind,
                upstream_node_id=upstream.id,
            )
            self._store.add_node(node)
            self.connect_generic(upstream.id, node.id)
        return node

    def add_generic_node(self, palette_entry: str) -> AnyNode:
        """
        Add a node from the palette ("filter", "join", "output" or anything else).

        Labels are numbered per palette entry: "Filter Transformation 1",
        "Filter Transformation 2", ... An "output" entry becomes an empty
        table so its columns can be edited.
        """
        prefix = PALETTE_LABELS.get(palette_entry, DEFAULT_PALETTE_LABEL)
        count = sum(1 for n in self._store.nodes if n.label.startswith(prefix + " "))
        label = f"{prefix} {count + 1}"

        node: AnyNode
        if palette_entry == "output":
            node = TableNode(label=label)
        elif palette_entry in (TransformKind.FILTER.value, TransformKind.JOIN.value):
            node = TransformationNode(label=label, transform_kind=TransformKind(palette_entry))
        else:
            node = TransformationNode(label=label, transform_kind=TransformKind.OTHER)

        self._store.add_node(node)
        return node

    def delete_node(self, node_id: str):
        """Delete a node and every edge touching it."""
        self._store.remove_node(node_id)
        logger.info("Node %s deleted", node_id)

    # --- Edges ---

    def connect_generic(self, source_id: str, target_id: str) -> str:
        """
        Freeform connection between any two nodes (drag-connect).

        The label is synthesized from the node labels; no column semantics.
        """
        with self._store.transaction():
            source = self._store.require_node(source_id)
            target = self._store.require_node(target_id)
            edge = Edge(
                source=source.id,
                target=target.id,
                kind=EdgeKind.GENERIC_FLOW,
                label=f"{source.label} → {target.label}",
            )
            return self._store.add_edge(edge)

    def create_relationship(
        self,
        source_table_id: str,
        source_column: str,
        target_table_id: str,
        target_column: str,
    ) -> str:
        """
        Create a foreign-key style relationship between two table columns.

        Adds a relationship edge and marks the target column as a foreign
        key referencing "<source label>.<source column>". Validation and both
        writes happen in one transaction. Raises RelationshipError when
        validation fails.
        """
        with self._store.transaction():
            check = validate_relationship(
                self._store, source_table_id, source_column, target_table_id, target_column
            )
            if not check.ok:
                logger.warning("Relationship rejected (%s): %s", check.error.kind.value, check.error.message)
                raise check.error
            relationship = check.relationship

            edge = Edge(
                id=generate_relationship_id(),
                source=relationship.source_table_id,
                target=relationship.target_table_id,
                kind=EdgeKind.RELATIONSHIP,
                label=relationship.label,
                relationship=RelationshipDetail(
                    source_column=relationship.source_column,
                    target_column=relationship.target_column,
                    cardinality=relationship.cardinality,
                    description=relationship.description,
                ),
            )

            self._store.add_edge(edge)
            target = self._store.require_table(relationship.target_table_id)
            columns = [
                c.model_copy(update={"is_foreign_key": True, "references": relationship.references})
                if c.name == relationship.target_column else c
                for c in target.columns
            ]
            self._store.update_node_columns(target.id, columns)

        logger.info("Relationship %s created: %s", edge.id, relationship.description)
        return edge.id

    def remove_edge(self, edge_id: str):
        """
        Remove a single edge.

        Removing a relationship edge leaves the target column's foreign-key
        flag and `references` in place.
        """
        self._store.remove_edge(edge_id)

    # --- Columns ---

    def update_columns(self, table_id: str, columns: Iterable[Union[Column, dict]]):
        """Replace a table's columns (column editor "Save")."""
        self._store.update_node_columns(table_id, columns)

    def add_column(self, table_id: str, column: Union[Column, dict]) -> Column:
        """Append a column. Raises EmptyColumnNameError for a blank name."""
        raw_name = column.name if isinstance(column, Column) else column.get("name")
        if not raw_name or not str(raw_name).strip():
            logger.warning("Rejected column without a name on %s", table_id)
            raise EmptyColumnNameError("Column name is required")

        new_column = coerce_columns([column])[0]
        with self._store.transaction():
            table = self._store.require_table(table_id)
            self._store.update_node_columns(table_id, [*table.columns, new_column])
        return new_column

    def remove_column(self, table_id: str, index: int) -> Column:
        """Remove the column at `index` and return it."""
        with self._store.transaction():
            table = self._store.require_table(table_id)
            if index < 0 or index >= len(table.columns):
                raise NotFoundError(f"Table '{table.label}' has no column at index {index}")

            columns = list(table.columns)
            removed = columns.pop(index)
            self._store.update_node_columns(table_id, columns)
        return removed

    # --- Review ---

    def validate(self) -> list[ValidationIssue]:
        return validate_flow(self._store)

    def summary(self) -> FlowSummary:
        return summarize_flow(self._store)
