"""
Flow Designer Backend - FastAPI Application

This is the HTTP/WebSocket adapter in front of the flowgraph library.
It provides:
- REST API for every mutation operation (tables, palette nodes,
  transformations, connections, relationships, column edits, deletes)
- WebSocket endpoint that forwards each committed graph event
- Validation and summary endpoints for the wizard's review step
- CORS configuration for local frontend development

One FlowDesigner is created per application lifespan and kept on
app.state; routes receive it through a dependency.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from flowgraph import (
    ColumnType,
    EdgeKind,
    ErrorKind,
    FlowDesigner,
    FlowGraph,
    FlowGraphError,
    GraphEvent,
    NotFoundError,
    NotificationCollector,
    TransformKind,
    Column,
    describe,
    upstream_nodes,
    validation_summary,
)

from .config import get_settings
from .log_config import setup_logging
from .schemas import (
    ConnectRequest,
    CreatePaletteNodeRequest,
    CreateRelationshipRequest,
    CreateTableRequest,
    CreateTransformationRequest,
    ReplaceColumnsRequest,
)
from .websocket_manager import WebSocketManager

logger = logging.getLogger(__name__)

settings = get_settings()


# --- Async change notification ---
# Bridge between sync GraphStore subscribers and async WebSocket broadcasts

async def event_broadcaster(queue: "asyncio.Queue[GraphEvent]", ws_manager: WebSocketManager):
    """Background task that forwards committed events to WebSocket clients."""
    while True:
        event = await queue.get()
        notification = describe(event)
        await ws_manager.notify_graph_event(
            event.to_dict(),
            notification.to_dict() if notification else None,
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the session's designer and start the event broadcaster."""
    setup_logging(settings.log_level)

    designer = FlowDesigner()
    notifications = NotificationCollector(max_items=settings.notification_history)
    events: asyncio.Queue = asyncio.Queue()
    ws_manager = WebSocketManager()

    # Routes run on the event loop thread, so a plain put is safe here
    designer.store.subscribe(notifications)
    designer.store.subscribe(events.put_nowait)

    app.state.designer = designer
    app.state.notifications = notifications
    app.state.ws_manager = ws_manager

    broadcaster_task = asyncio.create_task(event_broadcaster(events, ws_manager))
    logger.info("Flow designer session started")

    yield

    broadcaster_task.cancel()
    try:
        await broadcaster_task
    except asyncio.CancelledError:
        pass
    logger.info("Flow designer session closed")


# --- FastAPI App ---

app = FastAPI(
    title=settings.app_title,
    description="Schema relationship graph behind the ETL flow designer",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_designer(request: Request) -> FlowDesigner:
    return request.app.state.designer


ERROR_STATUS = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.DUPLICATE_ID: 409,
}


@app.exception_handler(FlowGraphError)
async def flow_graph_error_handler(request: Request, exc: FlowGraphError):
    """Map typed graph errors to HTTP responses (404, 409, otherwise 422)."""
    return JSONResponse(
        status_code=ERROR_STATUS.get(exc.kind, 422),
        content={"success": False, "detail": exc.message, "kind": exc.kind.value},
    )


# --- Health Check ---

@app.get("/api/health")
async def health_check(request: Request):
    """Health check endpoint."""
    return {"status": "ok", "connections": request.app.state.ws_manager.connection_count}


# --- Flow State ---

@app.get("/api/flow")
async def get_flow(designer: FlowDesigner = Depends(get_designer)):
    """Get the current flow graph."""
    return {"success": True, "flow": designer.store.snapshot().to_json_dict()}


@app.put("/api/flow")
async def load_flow(graph: FlowGraph, designer: FlowDesigner = Depends(get_designer)):
    """Replace the flow with a snapshot (e.g. a saved pipeline)."""
    designer.store.load(graph)
    return {"success": True, "flow": designer.store.snapshot().to_json_dict()}


# --- Node Operations ---

@app.post("/api/tables")
async def add_table(request: CreateTableRequest, designer: FlowDesigner = Depends(get_designer)):
    """Add a table from schema discovery."""
    node = designer.add_table(
        request.name,
        request.columns,
        origin_database_name=request.origin_database_name,
    )
    return {"success": True, "node": node.model_dump(mode="json")}


@app.post("/api/nodes")
async def add_palette_node(request: CreatePaletteNodeRequest, designer: FlowDesigner = Depends(get_designer)):
    """Add a node from the palette."""
    node = designer.add_generic_node(request.palette_entry)
    return {"success": True, "node": node.model_dump(mode="json")}


@app.get("/api/nodes/{node_id}")
async def get_node(node_id: str, designer: FlowDesigner = Depends(get_designer)):
    """Get a specific node."""
    node = designer.store.require_node(node_id)
    return {"success": True, "node": node.model_dump(mode="json")}


@app.delete("/api/nodes/{node_id}")
async def delete_node(node_id: str, designer: FlowDesigner = Depends(get_designer)):
    """Delete a node and its connected edges."""
    removed_edges = [e.id for e in designer.store.get_edges_for_node(node_id)]
    designer.delete_node(node_id)
    return {"success": True, "removed_edges": removed_edges}


@app.post("/api/nodes/{node_id}/transformations")
async def add_transformation(
    node_id: str,
    request: CreateTransformationRequest,
    designer: FlowDesigner = Depends(get_designer),
):
    """Add a transformation step downstream of a node."""
    node = designer.add_transformation(request.transform_kind, node_id)
    return {"success": True, "node": node.model_dump(mode="json")}


@app.get("/api/nodes/{node_id}/upstream")
async def get_upstream(node_id: str, designer: FlowDesigner = Depends(get_designer)):
    """Lineage: every node feeding into this one."""
    designer.store.require_node(node_id)
    return {"success": True, "node_ids": upstream_nodes(designer.store, node_id)}


# --- Column Operations ---

@app.put("/api/nodes/{node_id}/columns")
async def replace_columns(
    node_id: str,
    request: ReplaceColumnsRequest,
    designer: FlowDesigner = Depends(get_designer),
):
    """Replace a table's columns (column editor save)."""
    designer.update_columns(node_id, request.columns)
    return {"success": True, "node": designer.store.require_node(node_id).model_dump(mode="json")}


@app.post("/api/nodes/{node_id}/columns")
async def add_column(node_id: str, column: Column, designer: FlowDesigner = Depends(get_designer)):
    """Append a column to a table."""
    designer.add_column(node_id, column)
    return {"success": True, "node": designer.store.require_node(node_id).model_dump(mode="json")}


@app.delete("/api/nodes/{node_id}/columns/{index}")
async def remove_column(node_id: str, index: int, designer: FlowDesigner = Depends(get_designer)):
    """Remove the column at a position."""
    removed = designer.remove_column(node_id, index)
    return {"success": True, "removed": removed.model_dump(mode="json")}


# --- Edge Operations ---

@app.post("/api/edges")
async def connect(request: ConnectRequest, designer: FlowDesigner = Depends(get_designer)):
    """Create a generic-flow edge (drag-connect)."""
    edge_id = designer.connect_generic(request.source, request.target)
    return {"success": True, "edge": designer.store.get_edge(edge_id).to_json_dict()}


@app.post("/api/relationships")
async def create_relationship(request: CreateRelationshipRequest, designer: FlowDesigner = Depends(get_designer)):
    """Create a relationship edge and mark the target column as a foreign key."""
    edge_id = designer.create_relationship(
        request.source_table_id,
        request.source_column,
        request.target_table_id,
        request.target_column,
    )
    edge = designer.store.get_edge(edge_id)
    target = designer.store.get_node(edge.target)
    return {
        "success": True,
        "edge": edge.to_json_dict(),
        "target": target.model_dump(mode="json"),
    }


@app.get("/api/edges/{edge_id}")
async def get_edge(edge_id: str, designer: FlowDesigner = Depends(get_designer)):
    """Get a specific edge."""
    edge = designer.store.get_edge(edge_id)
    if edge is None:
        raise NotFoundError(f"Edge not found: {edge_id}")
    return {"success": True, "edge": edge.to_json_dict()}


@app.delete("/api/edges/{edge_id}")
async def delete_edge(edge_id: str, designer: FlowDesigner = Depends(get_designer)):
    """Delete an edge."""
    designer.remove_edge(edge_id)
    return {"success": True}


# --- Enums for Frontend ---

@app.get("/api/enums/column-types")
async def get_column_types():
    """Get available column types."""
    return {"column_types": [t.value for t in ColumnType]}


@app.get("/api/enums/transform-kinds")
async def get_transform_kinds():
    """Get available transformation kinds."""
    return {"transform_kinds": [k.value for k in TransformKind]}


@app.get("/api/enums/edge-kinds")
async def get_edge_kinds():
    """Get available edge kinds."""
    return {"edge_kinds": [k.value for k in EdgeKind]}


# --- Analysis & Validation ---

@app.get("/api/flow/validate")
async def validate_current_flow(designer: FlowDesigner = Depends(get_designer)):
    """
    Validate the current flow for structural issues.

    Returns a list of issues (errors, warnings, info) and a summary.
    """
    issues = designer.validate()
    return {
        "success": True,
        "issues": [issue.to_dict() for issue in issues],
        "summary": validation_summary(issues)
    }


@app.get("/api/flow/summary")
async def summarize_current_flow(designer: FlowDesigner = Depends(get_designer)):
    """Get a structural summary of the current flow."""
    return {"success": True, "summary": designer.summary().to_dict()}


@app.get("/api/notifications")
async def get_notifications(request: Request):
    """Recent human-readable confirmations, oldest first."""
    collector: NotificationCollector = request.app.state.notifications
    return {"success": True, "notifications": [n.to_dict() for n in collector.items]}


# --- WebSocket ---

@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for real-time updates.

    Clients connect here to receive graph_event messages.
    """
    ws_manager: WebSocketManager = websocket.app.state.ws_manager
    await ws_manager.connect(websocket)

    try:
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text('{"type": "pong"}')
    except WebSocketDisconnect:
        await ws_manager.disconnect(websocket)
