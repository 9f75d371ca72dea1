"""
Core data models for flow graphs.

These models define the canonical schema for the flow designer:
- Columns with primary/foreign-key metadata
- Table and transformation nodes (tagged on `kind`)
- Edges connecting nodes (using source/target naming convention)
- FlowGraph snapshots for handing state to external collaborators

Field Naming Convention:
- Edges use `source` and `target` (same as the diagramming collaborator)
- For backward compatibility, `from`/`to` and the camelCase column flags
  (`isPrimaryKey`, `isForeignKey`) are accepted on input and converted
"""

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from pydantic import BaseModel, Field, field_validator, model_validator
import uuid


class ColumnType(str, Enum):
    """Primitive column types understood by the designer."""
    VARCHAR = "varchar"
    INT = "int"
    BIGINT = "bigint"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    DATE = "date"
    DECIMAL = "decimal"
    TEXT = "text"
    JSON = "json"


# Vendor spellings that schema discovery may hand us
COLUMN_TYPE_ALIASES = {
    "serial": ColumnType.INT,
    "integer": ColumnType.INT,
    "bigserial": ColumnType.BIGINT,
    "numeric": ColumnType.DECIMAL,
    "bool": ColumnType.BOOLEAN,
}


class NodeKind(str, Enum):
    """Discriminant for the node variants."""
    TABLE = "table"
    TRANSFORMATION = "transformation"


class TransformKind(str, Enum):
    """What a transformation node does to the data flowing through it."""
    FILTER = "filter"
    JOIN = "join"
    OUTPUT = "output"
    OTHER = "other"


class EdgeKind(str, Enum):
    """Semantic edge types."""
    GENERIC_FLOW = "generic-flow"   # Pipeline data flow, no column semantics
    RELATIONSHIP = "relationship"   # Foreign-key style column-to-column link


class Cardinality(str, Enum):
    """Relationship cardinalities."""
    ONE_TO_ONE = "one-to-one"
    ONE_TO_MANY = "one-to-many"
    MANY_TO_MANY = "many-to-many"


def _short_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


def generate_table_id() -> str:
    """Generate a unique table node ID."""
    return _short_id("table")


def generate_transformation_id() -> str:
    """Generate a unique transformation node ID."""
    return _short_id("transformation")


def generate_edge_id() -> str:
    """Generate a unique generic-flow edge ID."""
    return _short_id("edge")


def generate_relationship_id() -> str:
    """Generate a unique relationship edge ID."""
    return _short_id("rel")


class Column(BaseModel):
    """One column of a table node and its key role."""
    name: str
    type: ColumnType = ColumnType.VARCHAR
    is_primary_key: bool = False
    is_foreign_key: bool = False
    references: Optional[str] = None  # "table.column", only on foreign keys

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert camelCase flags from schema snapshots to snake_case."""
        if isinstance(data, dict):
            data = dict(data)
            if 'isPrimaryKey' in data and 'is_primary_key' not in data:
                data['is_primary_key'] = data.pop('isPrimaryKey')
            if 'isForeignKey' in data and 'is_foreign_key' not in data:
                data['is_foreign_key'] = data.pop('isForeignKey')
            # Schema snapshots send an empty string for "no reference"
            if data.get('references') == "":
                data['references'] = None
        return data

    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            lowered = value.strip().lower()
            return COLUMN_TYPE_ALIASES.get(lowered, lowered)
        return value

    @model_validator(mode='after')
    def check_references(self) -> "Column":
        if self.is_foreign_key and not self.references:
            raise ValueError(f"Foreign key column '{self.name}' must name the column it references")
        if self.references and not self.is_foreign_key:
            raise ValueError(f"Column '{self.name}' has references but is not a foreign key")
        return self

    def referenced_table(self) -> Optional[str]:
        """Table part of `references` ("orders.id" -> "orders")."""
        if not self.references:
            return None
        return self.references.rsplit(".", 1)[0]

    def referenced_column(self) -> Optional[str]:
        """Column part of `references` ("orders.id" -> "id")."""
        if not self.references or "." not in self.references:
            return None
        return self.references.rsplit(".", 1)[1]


class TableNode(BaseModel):
    """A node representing a relational table and its columns."""
    id: str = Field(default_factory=generate_table_id)
    kind: Literal["table"] = "table"
    label: str = "New Table"
    origin_database_name: Optional[str] = None
    columns: list[Column] = Field(default_factory=list)

    def get_column(self, name: str) -> Optional[Column]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def primary_key(self) -> Optional[Column]:
        """The primary-key column, if one is marked."""
        for column in self.columns:
            if column.is_primary_key:
                return column
        return None


class TransformationNode(BaseModel):
    """A non-table pipeline step (filter, join, output, ...)."""
    id: str = Field(default_factory=generate_transformation_id)
    kind: Literal["transformation"] = "transformation"
    label: str = "New Node"
    transform_kind: TransformKind = TransformKind.OTHER
    upstream_node_id: Optional[str] = None


Node = Annotated[Union[TableNode, TransformationNode], Field(discriminator="kind")]


def is_table(node: Any) -> bool:
    """True when `node` is a table node."""
    return isinstance(node, TableNode)


class RelationshipDetail(BaseModel):
    """Column-level semantics carried by a relationship edge."""
    source_column: str
    target_column: str
    cardinality: Cardinality = Cardinality.ONE_TO_MANY
    description: str = ""


class Edge(BaseModel):
    """
    A directed edge connecting two nodes.

    Uses `source` and `target` as canonical field names.
    Accepts `from`/`to` on input for backward compatibility.
    """
    id: str = Field(default_factory=generate_edge_id)
    source: str  # Source node ID
    target: str  # Target node ID
    kind: EdgeKind = EdgeKind.GENERIC_FLOW
    label: str = ""
    relationship: Optional[RelationshipDetail] = None

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert legacy 'from'/'to' fields to 'source'/'target'."""
        if isinstance(data, dict):
            data = dict(data)
            if 'from' in data and 'source' not in data:
                data['source'] = data.pop('from')
            if 'to' in data and 'target' not in data:
                data['target'] = data.pop('to')
        return data

    @model_validator(mode='after')
    def check_relationship_detail(self) -> "Edge":
        if self.kind == EdgeKind.RELATIONSHIP and self.relationship is None:
            raise ValueError("Relationship edges must carry relationship detail")
        if self.kind == EdgeKind.GENERIC_FLOW and self.relationship is not None:
            raise ValueError("Generic-flow edges carry no relationship detail")
        return self

    def touches(self, node_id: str) -> bool:
        """True when either endpoint is `node_id`."""
        return self.source == node_id or self.target == node_id

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        result = {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "kind": self.kind.value,
            "label": self.label,
        }
        # Only include detail on relationship edges
        if self.relationship is not None:
            result["relationship"] = self.relationship.model_dump(mode="json")
        return result


class FlowGraph(BaseModel):
    """
    A snapshot of the whole graph.
    This is what persistence and rendering collaborators receive.
    """
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict with proper field names."""
        return {
            "nodes": [n.model_dump(mode="json") for n in self.nodes],
            "edges": [e.to_json_dict() for e in self.edges],
        }

    @classmethod
    def from_json_dict(cls, data: dict) -> "FlowGraph":
        """Create a FlowGraph from a JSON dict (handles legacy edge fields)."""
        return cls.model_validate({
            "nodes": data.get("nodes", []),
            "edges": data.get("edges", []),
        })

    def get_node(self, node_id: str) -> Optional[Union[TableNode, TransformationNode]]:
        """Get a node by ID (O(n) - use GraphStore for indexed access)."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        """Get an edge by ID (O(n) - use GraphStore for indexed access)."""
        for edge in self.edges:
            if edge.id == edge_id:
                return edge
        return None
