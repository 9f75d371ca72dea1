"""
Human-readable confirmations for graph changes.

The presentation layer shows these as toasts ("Table added",
"Relationship created"). They are derived purely from committed events.
"""

from collections import deque
from dataclasses import dataclass
from typing import Optional

from .events import (
    EdgeAdded,
    GraphEvent,
    GraphReset,
    NodeAdded,
    NodeColumnsUpdated,
    NodeRemoved,
)
from .models import EdgeKind, TableNode, TransformationNode


@dataclass(frozen=True)
class Notification:
    title: str
    description: str

    def to_dict(self) -> dict:
        return {"title": self.title, "description": self.description}


def describe(event: GraphEvent) -> Optional[Notification]:
    """Map an event to a notification, or None for events not worth surfacing."""
    if isinstance(event, NodeAdded):
        if isinstance(event.node, TableNode) and event.node.origin_database_name:
            return Notification("Table added", f"{event.node.label} has been added to the flow.")
        if isinstance(event.node, TransformationNode) and event.node.upstream_node_id:
            return Notification(
                "Transformation added",
                f"{event.node.transform_kind.value} transformation node has been added to the flow.",
            )
        return Notification("Node added", f"{event.node.label} has been added to the flow.")

    if isinstance(event, NodeRemoved):
        return Notification("Node removed", f"{event.node.label} has been removed from the flow.")

    if isinstance(event, NodeColumnsUpdated):
        return Notification("Columns updated", "Table columns have been successfully updated.")

    if isinstance(event, EdgeAdded):
        edge = event.edge
        if edge.kind == EdgeKind.RELATIONSHIP:
            return Notification("Relationship created", f"{edge.relationship.description} has been created.")
        return Notification("Connection created", f"{edge.label} has been connected.")

    if isinstance(event, GraphReset):
        return Notification(
            "Flow loaded",
            f"{len(event.graph.nodes)} nodes and {len(event.graph.edges)} connections loaded.",
        )

    # EdgeRemoved is either explicit (the user already sees it go) or part of
    # a node delete cascade, which the NodeRemoved notification covers.
    return None


class NotificationCollector:
    """
    Subscriber that keeps the most recent notifications.

    The column update that follows a relationship edge in the same commit
    is folded into the "Relationship created" notification.
    """

    def __init__(self, max_items: int = 50):
        self._items: deque[Notification] = deque(maxlen=max_items)
        # (batch, target node id) of the last relationship edge
        self._fold_columns_of: Optional[tuple[int, str]] = None

    def __call__(self, event: GraphEvent):
        if isinstance(event, NodeColumnsUpdated) and (event.batch, event.node_id) == self._fold_columns_of:
            self._fold_columns_of = None
            return
        self._fold_columns_of = None

        if isinstance(event, EdgeAdded) and event.edge.kind == EdgeKind.RELATIONSHIP:
            self._fold_columns_of = (event.batch, event.edge.target)

        notification = describe(event)
        if notification is not None:
            self._items.append(notification)

    @property
    def items(self) -> list[Notification]:
        return list(self._items)

    def latest(self) -> Optional[Notification]:
        return self._items[-1] if self._items else None

    def clear(self):
        self._items.clear()
