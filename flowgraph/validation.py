"""
Flow validation - Relationship checks and structural issue reports.

Provides:
- validate_relationship: pure check of a proposed relationship against the
  current graph, run before anything is written
- validate_flow: structural report used by the wizard's validation step
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

from .errors import ErrorKind, RelationshipError
from .models import Cardinality, EdgeKind, TableNode

if TYPE_CHECKING:
    from .store import GraphStore


@dataclass(frozen=True)
class ValidatedRelationship:
    """A relationship that passed validation, with resolved display labels."""
    source_table_id: str
    source_label: str
    source_column: str
    target_table_id: str
    target_label: str
    target_column: str
    # Fixed default; never inferred from the key flags
    cardinality: Cardinality = Cardinality.ONE_TO_MANY

    @property
    def label(self) -> str:
        return f"{self.source_column} → {self.target_column}"

    @property
    def references(self) -> str:
        """Value written to the target column's `references`."""
        return f"{self.source_label}.{self.source_column}"

    @property
    def description(self) -> str:
        return (
            f"Foreign key relationship from {self.source_label}.{self.source_column} "
            f"to {self.target_label}.{self.target_column}"
        )


@dataclass(frozen=True)
class RelationshipCheck:
    """Result of validate_relationship: exactly one of the two fields is set."""
    relationship: Optional[ValidatedRelationship] = None
    error: Optional[RelationshipError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> ValidatedRelationship:
        """Return the relationship, or raise the error it was rejected with."""
        if self.error is not None:
            raise self.error
        return self.relationship


def _reject(kind: ErrorKind, message: str) -> RelationshipCheck:
    return RelationshipCheck(error=RelationshipError(message, kind=kind))


def validate_relationship(
    store: "GraphStore",
    source_table_id: str,
    source_column: str,
    target_table_id: str,
    target_column: str,
) -> RelationshipCheck:
    """
    Check a proposed relationship against the current graph.

    Checks, in order, stopping at the first failure:
    - none of the four selections is empty (INCOMPLETE_SELECTION)
    - both ids are existing table nodes (UNKNOWN_TABLE)
    - the source column exists on the source table (UNKNOWN_COLUMN)
    - the target column exists on the target table (UNKNOWN_COLUMN)

    Args:
        store: The graph to check against (read only)
        source_table_id: Node id of the referenced table
        source_column: Column on the source table
        target_table_id: Node id of the table getting the foreign key
        target_column: Column on the target table

    Returns:
        RelationshipCheck carrying either a ValidatedRelationship or a RelationshipError
    """
    if not (source_table_id and source_column and target_table_id and target_column):
        return _reject(
            ErrorKind.INCOMPLETE_SELECTION,
            "Please select all required fields for the relationship",
        )

    source = store.get_node(source_table_id)
    target = store.get_node(target_table_id)

    if not isinstance(source, TableNode):
        return _reject(ErrorKind.UNKNOWN_TABLE, f"Unknown source table: {source_table_id}")
    if not isinstance(target, TableNode):
        return _reject(ErrorKind.UNKNOWN_TABLE, f"Unknown target table: {target_table_id}")

    if source.get_column(source_column) is None:
        return _reject(ErrorKind.UNKNOWN_COLUMN, f"Table '{source.label}' has no column '{source_column}'")
    if target.get_column(target_column) is None:
        return _reject(ErrorKind.UNKNOWN_COLUMN, f"Table '{target.label}' has no column '{target_column}'")

    return RelationshipCheck(relationship=ValidatedRelationship(
        source_table_id=source.id,
        source_label=source.label,
        source_column=source_column,
        target_table_id=target.id,
        target_label=target.label,
        target_column=target_column,
    ))


# --- Structural validation ---

class IssueSeverity(str, Enum):
    """Severity levels for validation issues."""
    ERROR = "error"      # Invalid state, must be fixed
    WARNING = "warning"  # Potential problem, should review
    INFO = "info"        # Informational, may be intentional


@dataclass
class ValidationIssue:
    """A single validation issue found in a flow."""
    severity: IssueSeverity
    message: str
    node_id: str | None = None
    edge_id: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "type": self.severity.value,
            "message": self.message
        }
        if self.node_id:
            result["node_id"] = self.node_id
        if self.edge_id:
            result["edge_id"] = self.edge_id
        return result


def validate_flow(store: "GraphStore") -> list[ValidationIssue]:
    """
    Validate a flow and return a list of issues.

    Checks for:
    - Empty flow - INFO
    - Orphan nodes (no connections) - WARNING
    - Tables without columns - INFO
    - Invalid edge references (source/target doesn't exist) - ERROR
    - Self-referencing edges - WARNING
    - Relationship edges whose columns were since removed - WARNING
    - Duplicate relationships (same columns on both ends) - WARNING
    - Foreign keys referencing a table or column not in the flow - WARNING

    Args:
        store: The graph to validate

    Returns:
        List of ValidationIssue objects
    """
    issues: list[ValidationIssue] = []

    nodes = store.nodes
    edges = store.edges
    node_ids = {n.id for n in nodes}

    if not nodes:
        issues.append(ValidationIssue(
            severity=IssueSeverity.INFO,
            message="Flow has no nodes"
        ))
        return issues

    connected_nodes: set[str] = set()
    for edge in edges:
        connected_nodes.add(edge.source)
        connected_nodes.add(edge.target)

    orphans = node_ids - connected_nodes
    if orphans:
        orphan_labels = [f"{n.label} ({n.id})" for n in nodes if n.id in orphans]
        issues.append(ValidationIssue(
            severity=IssueSeverity.WARNING,
            message=f"Orphan nodes (no connections): {', '.join(orphan_labels)}"
        ))

    for node in nodes:
        if isinstance(node, TableNode) and not node.columns:
            issues.append(ValidationIssue(
                severity=IssueSeverity.INFO,
                message=f"Table '{node.label}' has no columns",
                node_id=node.id
            ))

    for edge in edges:
        if edge.source not in node_ids:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Edge references non-existent source node: {edge.source}",
                edge_id=edge.id
            ))
        if edge.target not in node_ids:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Edge references non-existent target node: {edge.target}",
                edge_id=edge.id
            ))
        if edge.source == edge.target:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message="Self-referencing edge (node points to itself)",
                edge_id=edge.id,
                node_id=edge.source
            ))

    seen_relationships: set[tuple[str, str, str, str]] = set()
    for edge in edges:
        if edge.kind != EdgeKind.RELATIONSHIP:
            continue
        detail = edge.relationship
        source = store.get_node(edge.source)
        target = store.get_node(edge.target)

        if isinstance(source, TableNode) and source.get_column(detail.source_column) is None:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message=f"Relationship uses column '{detail.source_column}' which no longer exists on '{source.label}'",
                edge_id=edge.id,
                node_id=source.id
            ))
        if isinstance(target, TableNode) and target.get_column(detail.target_column) is None:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message=f"Relationship uses column '{detail.target_column}' which no longer exists on '{target.label}'",
                edge_id=edge.id,
                node_id=target.id
            ))

        key = (edge.source, detail.source_column, edge.target, detail.target_column)
        if key in seen_relationships:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message=f"Duplicate relationship {detail.source_column} → {detail.target_column}",
                edge_id=edge.id
            ))
        else:
            seen_relationships.add(key)

    for table in store.table_nodes():
        for column in table.columns:
            if not column.is_foreign_key:
                continue
            if not _reference_resolves(store, column.referenced_table(), column.referenced_column()):
                issues.append(ValidationIssue(
                    severity=IssueSeverity.WARNING,
                    message=f"Foreign key {table.label}.{column.name} references {column.references}, which is not in the flow",
                    node_id=table.id
                ))

    return issues


def _reference_resolves(store: "GraphStore", table_label: Optional[str], column_name: Optional[str]) -> bool:
    if not table_label or not column_name:
        return False
    for table in store.find_tables_by_label(table_label):
        if table.get_column(column_name) is not None:
            return True
    return False


def validation_summary(issues: list[ValidationIssue]) -> dict:
    """
    Create a summary of validation issues.

    Args:
        issues: List of validation issues

    Returns:
        Dictionary with counts by severity
    """
    errors = len([i for i in issues if i.severity == IssueSeverity.ERROR])
    return {
        "total": len(issues),
        "errors": errors,
        "warnings": len([i for i in issues if i.severity == IssueSeverity.WARNING]),
        "info": len([i for i in issues if i.severity == IssueSeverity.INFO]),
        "valid": errors == 0
    }
