"""
Flow Graph - Schema relationship graph model for the ETL flow designer.

This package is the system of record for the flow designer: table and
transformation nodes, relationship and data-flow edges, and the column
key metadata kept consistent across every mutation.
"""

from .models import (
    # Enums
    ColumnType,
    NodeKind,
    TransformKind,
    EdgeKind,
    Cardinality,
    # Core models
    Column,
    TableNode,
    TransformationNode,
    Node,
    RelationshipDetail,
    Edge,
    FlowGraph,
    is_table,
)
from .errors import (
    ErrorKind,
    FlowGraphError,
    NotFoundError,
    DuplicateIdError,
    InvalidColumnsError,
    EmptyColumnNameError,
    RelationshipError,
)
from .events import (
    NodeAdded,
    NodeRemoved,
    NodeColumnsUpdated,
    EdgeAdded,
    EdgeRemoved,
    GraphReset,
    GraphEvent,
)
from .store import GraphStore
from .designer import FlowDesigner
from .validation import (
    validate_relationship,
    RelationshipCheck,
    ValidatedRelationship,
    validate_flow,
    validation_summary,
    ValidationIssue,
    IssueSeverity,
)
from .analysis import summarize_flow, find_connected_components, upstream_nodes, downstream_nodes
from .notifications import Notification, NotificationCollector, describe

__all__ = [
    # Enums
    "ColumnType",
    "NodeKind",
    "TransformKind",
    "EdgeKind",
    "Cardinality",
    # Models
    "Column",
    "TableNode",
    "TransformationNode",
    "Node",
    "RelationshipDetail",
    "Edge",
    "FlowGraph",
    "is_table",
    # Errors
    "ErrorKind",
    "FlowGraphError",
    "NotFoundError",
    "DuplicateIdError",
    "InvalidColumnsError",
    "EmptyColumnNameError",
    "RelationshipError",
    # Events
    "NodeAdded",
    "NodeRemoved",
    "NodeColumnsUpdated",
    "EdgeAdded",
    "EdgeRemoved",
    "GraphReset",
    "GraphEvent",
    # Store and mutation API
    "GraphStore",
    "FlowDesigner",
    # Validation
    "validate_relationship",
    "RelationshipCheck",
    "ValidatedRelationship",
    "validate_flow",
    "validation_summary",
    "ValidationIssue",
    "IssueSeverity",
    # Analysis
    "summarize_flow",
    "find_connected_components",
    "upstream_nodes",
    "downstream_nodes",
    # Notifications
    "Notification",
    "NotificationCollector",
    "describe",
]
