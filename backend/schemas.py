"""
Request models for the flow designer API.

Node, edge and column payloads reuse the flowgraph models; these wrap the
parameters of the mutation operations.
"""
from typing import Optional
from pydantic import BaseModel, Field

from flowgraph import Column, TransformKind


class CreateTableRequest(BaseModel):
    """Add a table picked from schema discovery."""
    name: str
    columns: list[Column] = Field(default_factory=list)
    origin_database_name: Optional[str] = None


class CreatePaletteNodeRequest(BaseModel):
    """Add a node from the palette ("filter", "join", "output", ...)."""
    palette_entry: str


class CreateTransformationRequest(BaseModel):
    """Add a transformation step fed by the node in the URL."""
    transform_kind: TransformKind


class ConnectRequest(BaseModel):
    """Freeform drag-connection between two nodes."""
    source: str
    target: str


class CreateRelationshipRequest(BaseModel):
    """Relationship dialog selections. Empty strings mean "not selected"."""
    source_table_id: str = ""
    source_column: str = ""
    target_table_id: str = ""
    target_column: str = ""


class ReplaceColumnsRequest(BaseModel):
    """Column editor save: the full new column list."""
    columns: list[Column]
