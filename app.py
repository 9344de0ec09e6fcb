"""
OpenCanvas FastAPI Application

A REST API server for the OpenCanvas engine.
Provides endpoints for canvas sessions, chat and memory nodes, edges,
message sending and document upload.
"""

import base64
import binascii
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from opencanvas.config import Config
from opencanvas.core.storage import StorageFactory
from opencanvas.models import CanvasSession, CanvasSnapshot, Edge, Message, Node, Position, Size
from opencanvas.models.session import Viewport
from opencanvas.services.ingestion import IngestionResult, UploadedFile
from opencanvas.services.workspace import CanvasWorkspace
from opencanvas.utils.exceptions import (
    ConfigurationError,
    CycleError,
    EmbeddingError,
    LLMError,
    NotFoundError,
    OpenCanvasError,
    ParseError,
    SendInProgressError,
    ValidationError,
)
from opencanvas.utils.logger import get_logger, setup_logging

# Global workspace instance
workspace: CanvasWorkspace | None = None
logger = get_logger(__name__)


# Pydantic models for API
class AddChatNodeRequest(BaseModel):
    """Request model for adding a chat node."""

    title: str = "New Chat"
    provider: str | None = None
    model: str | None = None
    system_prompt: str | None = None
    position: Position | None = None
    size: Size | None = None


class AddMemoryNodeRequest(BaseModel):
    """Request model for adding a memory node."""

    title: str = "Memory"
    position: Position | None = None
    size: Size | None = None


class UpdateNodeRequest(BaseModel):
    """Request model for patching a node. Unset fields are left alone."""

    title: str | None = None
    position: Position | None = None
    size: Size | None = None
    provider: str | None = None
    model: str | None = None
    system_prompt: str | None = None


class MergeRequest(BaseModel):
    """Request model for merging chat nodes."""

    node_ids: list[str] = Field(..., min_length=2)


class AddEdgeRequest(BaseModel):
    """Request model for connecting two nodes."""

    source: str
    target: str


class SendMessageRequest(BaseModel):
    """Request model for sending a message from a chat node."""

    content: str = Field(..., description="User message text")


class SendMessageResponse(BaseModel):
    """Response model for send message."""

    node_id: str
    reply: Message
    message_count: int


class DocumentUpload(BaseModel):
    """A document given either as text or as base64 encoded bytes."""

    name: str
    text: str | None = None
    content_base64: str | None = None


class UploadDocumentsRequest(BaseModel):
    """Request model for uploading documents into a memory node."""

    files: list[DocumentUpload] = Field(..., min_length=1)


class RenameSessionRequest(BaseModel):
    title: str


class UpdateSettingsRequest(BaseModel):
    """Request model for changing runtime provider settings."""

    enabled_providers: list[str] | None = None
    api_keys: dict[str, str | None] | None = None
    ollama_base_url: str | None = None
    embedding_provider: str | None = None
    embedding_models: dict[str, str] | None = None


class SettingsResponse(BaseModel):
    """Effective provider settings. API keys are reported as set or not."""

    enabled_providers: list[str]
    ollama_base_url: str
    openai_api_key_set: bool
    openrouter_api_key_set: bool
    embedding_provider: str
    embedding_model: str
    embedding_models: dict[str, str]


class CanvasResponse(BaseModel):
    """The open canvas and the session it belongs to."""

    session_id: str | None
    state: str
    canvas: CanvasSnapshot


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    workspace_initialized: bool
    storage_backend: str | None = None
    session_id: str | None = None
    providers: dict[str, bool] | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    global workspace

    # Load configuration from environment or use defaults
    config = Config.from_env()

    # Initialize logging with config
    setup_logging(
        level=config.logging.level,
        log_to_file=config.logging.log_to_file,
        log_dir=config.logging.log_dir,
        file_rotation=config.logging.file_rotation,
        file_retention=config.logging.file_retention,
        compression=config.logging.compression,
        serialize=config.logging.serialize,
    )

    logger.info("Starting OpenCanvas server")
    logger.info(
        f"Configuration: LLM={config.llm.provider}/{config.llm.model}, "
        f"Embedder={config.embedder.provider}, "
        f"Storage={config.persistence.backend}"
    )

    logger.info("Creating persistent store")
    storage = StorageFactory.create(config.persistence)

    workspace = CanvasWorkspace(storage=storage, config=config)
    await workspace.initialize()
    logger.info("OpenCanvas workspace initialized")

    yield

    # Cleanup
    logger.info("Shutting down OpenCanvas server")
    if workspace is not None:
        await workspace.close()
    workspace = None
    logger.info("Cleanup complete")


# Create FastAPI app
app = FastAPI(
    title="OpenCanvas API",
    description="Node-based conversation canvas with context propagation and memory retrieval",
    version="0.1.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _require_workspace() -> CanvasWorkspace:
    if not workspace:
        raise HTTPException(status_code=503, detail="Workspace not initialized")
    return workspace


def _to_http_error(e: OpenCanvasError) -> HTTPException:
    """Map engine errors to HTTP status codes."""
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=e.message)
    if isinstance(e, (SendInProgressError, CycleError)):
        return HTTPException(status_code=409, detail=e.message)
    if isinstance(e, (ConfigurationError, ParseError, ValidationError)):
        return HTTPException(status_code=400, detail=e.message)
    if isinstance(e, (LLMError, EmbeddingError)):
        return HTTPException(status_code=502, detail=e.message)
    logger.error(f"Unhandled engine error: {e.message}")
    return HTTPException(status_code=500, detail=e.message)


def _not_found(what: str, item_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{what} {item_id} not found")


# Health check endpoint
@app.get("/health", response_model=HealthResponse)
async def health_check(check_providers: bool = False):
    """
    Health check endpoint.

    With check_providers=true, also reports whether each enabled provider and
    the default embedder answer.
    """
    providers = None
    if workspace and check_providers:
        providers = await workspace.check_providers()
    return HealthResponse(
        status="healthy" if workspace else "initializing",
        workspace_initialized=workspace is not None,
        storage_backend=workspace.config.persistence.backend if workspace else None,
        session_id=workspace.persistence.current_session_id if workspace else None,
        providers=providers,
    )


# Canvas endpoints
@app.get("/canvas", response_model=CanvasResponse)
async def get_canvas():
    """Return the open canvas: nodes, edges and viewport."""
    ws = _require_workspace()
    return CanvasResponse(
        session_id=ws.persistence.current_session_id,
        state=ws.persistence.state.value,
        canvas=ws.graph.snapshot(),
    )


@app.put("/canvas/viewport", response_model=Viewport)
async def set_viewport(viewport: Viewport):
    ws = _require_workspace()
    return await ws.set_viewport(viewport)


# Node endpoints
@app.post("/nodes/chat", response_model=Node)
async def add_chat_node(request: AddChatNodeRequest):
    """Add a chat node. Provider and model default to the configured LLM."""
    ws = _require_workspace()
    try:
        return await ws.add_chat_node(
            title=request.title,
            provider=request.provider,
            model=request.model,
            system_prompt=request.system_prompt,
            position=request.position,
            size=request.size,
        )
    except OpenCanvasError as e:
        raise _to_http_error(e) from e


@app.post("/nodes/memory", response_model=Node)
async def add_memory_node(request: AddMemoryNodeRequest):
    """Add an empty memory node. Documents are uploaded separately."""
    ws = _require_workspace()
    try:
        return await ws.add_memory_node(
            title=request.title, position=request.position, size=request.size
        )
    except OpenCanvasError as e:
        raise _to_http_error(e) from e


@app.get("/nodes/{node_id}", response_model=Node)
async def get_node(node_id: str):
    ws = _require_workspace()
    node = ws.graph.get_node(node_id)
    if node is None:
        raise _not_found("Node", node_id)
    return node


@app.patch("/nodes/{node_id}", response_model=Node)
async def update_node(node_id: str, request: UpdateNodeRequest):
    """
    Patch a node's title, layout or chat settings.

    Chat settings (provider, model, system prompt) only apply to chat nodes.
    """
    ws = _require_workspace()
    node = ws.graph.get_node(node_id)
    if node is None:
        raise _not_found("Node", node_id)

    try:
        if request.title is not None:
            node = await ws.rename_node(node_id, request.title)
        if request.position is not None:
            node = await ws.move_node(node_id, request.position)
        if request.size is not None:
            node = await ws.resize_node(node_id, request.size)
        if any(v is not None for v in (request.provider, request.model, request.system_prompt)):
            node = await ws.update_chat_settings(
                node_id,
                provider=request.provider,
                model=request.model,
                system_prompt=request.system_prompt,
            )
    except OpenCanvasError as e:
        raise _to_http_error(e) from e

    return node


@app.delete("/nodes/{node_id}")
async def delete_node(node_id: str):
    """
    Delete a node and its edges.

    A reply still streaming into the node is cancelled; a memory node's
    index is deleted.
    """
    ws = _require_workspace()
    node = await ws.delete_node(node_id)
    if node is None:
        raise _not_found("Node", node_id)
    return {"id": node_id, "deleted": True}


@app.post("/nodes/{node_id}/branch", response_model=Node)
async def branch_node(node_id: str):
    """Branch a chat node into a new chat that inherits its context."""
    ws = _require_workspace()
    try:
        child = await ws.branch(node_id)
    except OpenCanvasError as e:
        raise _to_http_error(e) from e
    if child is None:
        raise _not_found("Node", node_id)
    return child


@app.post("/nodes/merge", response_model=Node)
async def merge_nodes(request: MergeRequest):
    """Merge two or more chat nodes into a new chat connected from each."""
    ws = _require_workspace()
    try:
        return await ws.merge(request.node_ids)
    except OpenCanvasError as e:
        raise _to_http_error(e) from e


# Edge endpoints
@app.post("/edges", response_model=Edge)
async def add_edge(request: AddEdgeRequest):
    """
    Connect two nodes.

    Memory -> chat edges attach the memory node for retrieval; every other
    edge passes conversation context from source to target.
    """
    ws = _require_workspace()
    for node_id in (request.source, request.target):
        if not ws.graph.has_node(node_id):
            raise _not_found("Node", node_id)

    try:
        edge = await ws.connect(request.source, request.target)
    except OpenCanvasError as e:
        raise _to_http_error(e) from e

    if edge is None:
        raise HTTPException(status_code=409, detail="Edge already exists")
    return edge


@app.delete("/edges/{edge_id}")
async def delete_edge(edge_id: str):
    ws = _require_workspace()
    edge = await ws.disconnect(edge_id)
    if edge is None:
        raise _not_found("Edge", edge_id)
    return {"id": edge_id, "deleted": True}


# Message endpoints
@app.post("/nodes/{node_id}/messages", response_model=SendMessageResponse)
async def send_message(node_id: str, request: SendMessageRequest):
    """
    Send a user message from a chat node and wait for the complete reply.

    The prompt carries the node's system prompt, the transcripts of its
    donor nodes, context retrieved from attached memory nodes, and the
    node's own conversation.
    """
    ws = _require_workspace()
    try:
        reply = await ws.send_message(node_id, request.content)
    except OpenCanvasError as e:
        raise _to_http_error(e) from e

    node = ws.graph.get_node(node_id)
    if reply is None or node is None:
        raise _not_found("Node", node_id)

    return SendMessageResponse(
        node_id=node_id, reply=reply, message_count=len(node.payload.messages)
    )


# Document endpoints
@app.post("/nodes/{node_id}/documents", response_model=IngestionResult)
async def upload_documents(node_id: str, request: UploadDocumentsRequest):
    """
    Upload documents into a memory node.

    Each file is parsed by extension (.txt, .md, .csv, .pdf; anything else
    as plain text), chunked, embedded and added to the node's index.
    """
    ws = _require_workspace()

    files: list[UploadedFile] = []
    for upload in request.files:
        if upload.content_base64 is not None:
            try:
                data = base64.b64decode(upload.content_base64, validate=True)
            except (binascii.Error, ValueError) as e:
                raise HTTPException(
                    status_code=400, detail=f"{upload.name}: invalid base64 content"
                ) from e
        elif upload.text is not None:
            data = upload.text.encode("utf-8")
        else:
            raise HTTPException(status_code=400, detail=f"{upload.name}: no content given")
        files.append(UploadedFile(name=upload.name, data=data))

    try:
        result = await ws.upload_documents(node_id, files)
    except OpenCanvasError as e:
        raise _to_http_error(e) from e

    if result is None:
        raise _not_found("Memory node", node_id)
    return result


# Session endpoints
@app.get("/sessions", response_model=list[CanvasSession])
async def list_sessions():
    """List stored canvas sessions, most recently updated first."""
    ws = _require_workspace()
    return await ws.list_sessions()


@app.post("/sessions/new")
async def new_canvas():
    """Save the open canvas and start an empty one."""
    ws = _require_workspace()
    await ws.new_canvas()
    return {"session_id": None, "state": ws.persistence.state.value}


@app.post("/sessions/flush")
async def flush_session():
    """Save pending changes now (tab hidden / page unload)."""
    ws = _require_workspace()
    try:
        session = await ws.flush()
    except OpenCanvasError as e:
        raise _to_http_error(e) from e
    return {"saved": session is not None, "session_id": ws.persistence.current_session_id}


@app.post("/sessions/import", response_model=CanvasSession)
async def import_session(payload: dict[str, Any]):
    ws = _require_workspace()
    try:
        return await ws.import_session(payload)
    except OpenCanvasError as e:
        raise _to_http_error(e) from e


@app.post("/sessions/{session_id}/load", response_model=CanvasSession)
async def load_session(session_id: str):
    ws = _require_workspace()
    session = await ws.load_session(session_id)
    if session is None:
        raise _not_found("Session", session_id)
    return session


@app.patch("/sessions/{session_id}", response_model=CanvasSession)
async def rename_session(session_id: str, request: RenameSessionRequest):
    ws = _require_workspace()
    session = await ws.rename_session(session_id, request.title)
    if session is None:
        raise _not_found("Session", session_id)
    return session


@app.delete("/sessions/{session_id}")
async def delete_session(session_id: str):
    """Delete a session. Deleting the open session clears the canvas."""
    ws = _require_workspace()
    if not await ws.delete_session(session_id):
        raise _not_found("Session", session_id)
    return {"id": session_id, "deleted": True}


@app.get("/sessions/{session_id}/export")
async def export_session(session_id: str):
    ws = _require_workspace()
    exported = await ws.export_session(session_id)
    if exported is None:
        raise _not_found("Session", session_id)
    return exported


# Settings endpoints
def _settings_response(ws: CanvasWorkspace) -> SettingsResponse:
    providers = ws.settings.providers
    embedding_provider, embedding_model = ws.settings.default_embedding()
    return SettingsResponse(
        enabled_providers=providers.enabled,
        ollama_base_url=providers.ollama.base_url,
        openai_api_key_set=bool(providers.openai.api_key),
        openrouter_api_key_set=bool(providers.openrouter.api_key),
        embedding_provider=embedding_provider,
        embedding_model=embedding_model,
        embedding_models=ws.settings.config.embedder.models,
    )


@app.get("/settings", response_model=SettingsResponse)
async def get_settings():
    ws = _require_workspace()
    return _settings_response(ws)


@app.put("/settings", response_model=SettingsResponse)
async def update_settings(request: UpdateSettingsRequest):
    """Change enabled providers, API keys, the Ollama URL and embedding models."""
    ws = _require_workspace()
    try:
        await ws.update_settings(
            enabled_providers=request.enabled_providers,
            api_keys=request.api_keys,
            ollama_base_url=request.ollama_base_url,
            embedding_provider=request.embedding_provider,
            embedding_models=request.embedding_models,
        )
    except OpenCanvasError as e:
        raise _to_http_error(e) from e
    return _settings_response(ws)


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "OpenCanvas API",
        "version": "0.1.0",
        "description": app.description,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
