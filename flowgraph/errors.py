"""
Typed errors raised by the graph store and the mutation API.

Every error carries an `ErrorKind` so callers (dialogs, the HTTP adapter)
can map it to a user-facing message without parsing strings.
A mutation that raises one of these leaves the graph unchanged.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    DUPLICATE_ID = "duplicate_id"
    UNKNOWN_TABLE = "unknown_table"
    UNKNOWN_COLUMN = "unknown_column"
    INCOMPLETE_SELECTION = "incomplete_selection"
    EMPTY_COLUMN_NAME = "empty_column_name"
    INVALID_COLUMNS = "invalid_columns"


class FlowGraphError(Exception):
    """Base class for expected misuse of the flow graph."""
    kind: ErrorKind

    def __init__(self, message: str, kind: Optional[ErrorKind] = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else ""

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message}


class NotFoundError(FlowGraphError):
    """A referenced node, edge or column does not exist."""
    kind = ErrorKind.NOT_FOUND


class DuplicateIdError(FlowGraphError):
    """An id (or a column name within a table) is already taken."""
    kind = ErrorKind.DUPLICATE_ID


class InvalidColumnsError(FlowGraphError):
    """A column sequence breaks a table-level key rule."""
    kind = ErrorKind.INVALID_COLUMNS


class EmptyColumnNameError(FlowGraphError):
    """A column was added without a name."""
    kind = ErrorKind.EMPTY_COLUMN_NAME


class RelationshipError(FlowGraphError):
    """
    A proposed relationship was rejected by the validator.

    `kind` is one of UNKNOWN_TABLE, UNKNOWN_COLUMN or INCOMPLETE_SELECTION.
    """
    kind = ErrorKind.INCOMPLETE_SELECTION
