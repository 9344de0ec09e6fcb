"""
Canvas Workspace - integrates all components.

Brings together:
- Canvas graph store and its commands
- Session persistence
- Provider clients and runtime settings
- Document ingestion and memory indices
- Context propagation, retrieval and message sending
- Provider reachability checks
"""

from opencanvas.config import Config
from opencanvas.core.graph.commands import (
    AddEdge,
    AddNode,
    DeleteEdge,
    DeleteNode,
    GraphChange,
    GraphCommand,
    RenameNode,
    SetViewport,
    UpdateChatSettings,
    UpdateNodeLayout,
)
from opencanvas.core.graph.store import CanvasGraph
from opencanvas.core.index.registry import IndexRegistry
from opencanvas.core.parsers.registry import ParserRegistry
from opencanvas.core.storage.base import StorageAdapter
from opencanvas.models.edge import Edge
from opencanvas.models.message import Message
from opencanvas.models.node import ChatPayload, MemoryPayload, Node, NodeKind, Position, Size
from opencanvas.models.session import CanvasSession, Viewport
from opencanvas.services.context_propagation import ContextPropagationEngine
from opencanvas.services.conversation import ConversationService
from opencanvas.services.ingestion import IngestionPipeline, IngestionResult, UploadedFile
from opencanvas.services.persistence import SessionPersistenceOrchestrator
from opencanvas.services.providers import EmbedderBuilder, LLMBuilder, ProviderPool
from opencanvas.services.retrieval import RetrievalEngine
from opencanvas.services.settings import SettingsService
from opencanvas.utils.exceptions import ConfigurationError, ValidationError
from opencanvas.utils.id_generator import generate_chat_node_id, generate_memory_node_id
from opencanvas.utils.logger import get_logger

logger = get_logger(__name__)

BRANCH_OFFSET_X = 100
BRANCH_STACK_Y = 150
MERGE_OFFSET = Position(x=250, y=300)
MERGED_CHAT_TITLE = "Merged Chat"


class CanvasWorkspace:
    """
    Entry point for everything done on a canvas.

    Features:
    - Add, connect, move, rename and delete chat and memory nodes
    - Branch and merge conversations
    - Send messages with donor context and memory retrieval
    - Upload documents into memory nodes
    - Session switching, export and import
    """

    def __init__(
        self,
        storage: StorageAdapter,
        config: Config,
        llm_builder: LLMBuilder | None = None,
        embedder_builder: EmbedderBuilder | None = None,
    ):
        """
        Initialize Canvas Workspace.

        Args:
            storage: Persistent store
            config: Configuration object
            llm_builder: Optional LLM client factory (defaults to LLMFactory.create)
            embedder_builder: Optional embedder factory (defaults to EmbedderFactory.create)
        """
        self.storage = storage
        self.config = config

        self.graph = CanvasGraph()
        self.settings = SettingsService(storage, config)

        pool_kwargs = {}
        if llm_builder is not None:
            pool_kwargs["llm_builder"] = llm_builder
        if embedder_builder is not None:
            pool_kwargs["embedder_builder"] = embedder_builder
        self.providers = ProviderPool(self.settings, **pool_kwargs)

        self.indices = IndexRegistry(storage)
        self.persistence = SessionPersistenceOrchestrator(self.graph, storage, config.persistence)

        self.context = ContextPropagationEngine(self.graph)
        self.retrieval = RetrievalEngine(self.graph, self.indices, self.providers, config.retrieval)
        self.ingestion = IngestionPipeline(
            graph=self.graph,
            indices=self.indices,
            providers=self.providers,
            parsers=ParserRegistry(config.chunking),
            commit=self.apply,
        )
        self.conversations = ConversationService(
            graph=self.graph,
            providers=self.providers,
            context=self.context,
            retrieval=self.retrieval,
            commit=self.apply,
            save_now=self.persistence.save_now,
            llm_config=config.llm,
        )

    async def initialize(self, start_background_worker: bool = True) -> CanvasSession | None:
        """
        Open the store, load settings and the last canvas.

        Returns:
            The session opened at start-up, if any
        """
        logger.info("Initializing Canvas Workspace")

        await self.storage.initialize()
        await self.settings.load()
        session = await self.persistence.load_canvas()

        if start_background_worker:
            self.persistence.start_background_worker()
            logger.info("Periodic save worker started")

        logger.info("Canvas Workspace ready")
        return session

    async def apply(self, command: GraphCommand) -> GraphChange:
        """Apply a graph command and let persistence react to it."""
        change = self.graph.apply(command)
        await self.persistence.record_change(change)
        return change

    # NODES

    async def add_chat_node(
        self,
        title: str = "New Chat",
        provider: str | None = None,
        model: str | None = None,
        system_prompt: str | None = None,
        position: Position | None = None,
        size: Size | None = None,
    ) -> Node:
        node = Node(
            id=generate_chat_node_id(),
            kind=NodeKind.CHAT,
            position=position or Position(),
            size=size or Size(),
            payload=ChatPayload(
                title=title,
                provider=provider or self.config.llm.provider,
                model=model if model is not None else self.config.llm.model,
                system_prompt=system_prompt,
            ),
        )
        change = await self.apply(AddNode(node=node))
        return change.result

    async def add_memory_node(
        self,
        title: str = "Memory",
        position: Position | None = None,
        size: Size | None = None,
    ) -> Node:
        node = Node(
            id=generate_memory_node_id(),
            kind=NodeKind.MEMORY,
            position=position or Position(),
            size=size or Size(),
            payload=MemoryPayload(title=title),
        )
        change = await self.apply(AddNode(node=node))
        return change.result

    async def move_node(self, node_id: str, position: Position) -> Node | None:
        return (await self.apply(UpdateNodeLayout(node_id=node_id, position=position))).result

    async def resize_node(self, node_id: str, size: Size) -> Node | None:
        return (await self.apply(UpdateNodeLayout(node_id=node_id, size=size))).result

    async def rename_node(self, node_id: str, title: str) -> Node | None:
        return (await self.apply(RenameNode(node_id=node_id, title=title))).result

    async def update_chat_settings(
        self,
        node_id: str,
        provider: str | None = None,
        model: str | None = None,
        system_prompt: str | None = None,
    ) -> Node | None:
        command = UpdateChatSettings(
            node_id=node_id, provider=provider, model=model, system_prompt=system_prompt
        )
        return (await self.apply(command)).result

    async def set_viewport(self, viewport: Viewport) -> Viewport:
        return (await self.apply(SetViewport(viewport=viewport))).result

    async def delete_node(self, node_id: str) -> Node | None:
        """
        Delete a node with its edges.

        A send in flight on the node is cancelled; a memory node's index is
        deleted once no upload holds it.
        """
        change = await self.apply(DeleteNode(node_id=node_id))
        node = change.result
        if node is None:
            return None

        self.conversations.cancel(node_id)
        if node.is_memory:
            async with self.indices.lock(node_id):
                await self.indices.drop(node_id)
        logger.info(f"Deleted {node.kind.value} node {node_id}")
        return node

    # EDGES

    async def connect(self, source: str, target: str) -> Edge | None:
        """
        Connect two nodes. Memory -> chat edges attach the memory for retrieval;
        every other edge passes conversation context.

        Raises:
            CycleError: If a context edge would close a cycle
        """
        return (await self.apply(AddEdge(source=source, target=target))).result

    async def disconnect(self, edge_id: str) -> Edge | None:
        return (await self.apply(DeleteEdge(edge_id=edge_id))).result

    # BRANCH / MERGE

    async def branch(self, node_id: str) -> Node | None:
        """
        Branch a chat node.

        The new chat starts with an empty conversation, inherits provider,
        model and system prompt, and receives the parent's context through a
        new edge. It is placed right of the parent, below earlier branches.

        Returns:
            The new chat node, or None if the parent doesn't exist
        """
        parent = self.graph.get_node(node_id)
        if parent is None:
            return None
        if not parent.is_chat:
            raise ValidationError(
                f"Only chat nodes can be branched, {node_id} is {parent.kind.value}"
            )

        existing_children = len(self.graph.outgoing_edges(node_id))
        position = Position(
            x=parent.position.x + parent.size.width + BRANCH_OFFSET_X,
            y=parent.position.y + existing_children * BRANCH_STACK_Y,
        )
        child = await self.add_chat_node(
            title=f"{parent.title} (Branch)",
            provider=parent.payload.provider,
            model=parent.payload.model,
            system_prompt=parent.payload.system_prompt,
            position=position,
        )
        await self.connect(parent.id, child.id)
        logger.info(f"Branched {parent.id} into {child.id}")
        return child

    async def merge(self, node_ids: list[str]) -> Node:
        """
        Merge chat nodes into a new chat that receives all of their context.

        The merged node uses the first source's provider, model and system
        prompt and sits below the sources' average position.

        Raises:
            ValidationError: If fewer than two existing chat nodes are given
        """
        sources = [self.graph.get_node(node_id) for node_id in dict.fromkeys(node_ids)]
        chats = [node for node in sources if node is not None and node.is_chat]
        if len(chats) < 2:
            raise ValidationError("Select at least two chat nodes to merge")

        avg_x = sum(node.position.x for node in chats) / len(chats)
        avg_y = sum(node.position.y for node in chats) / len(chats)
        first = chats[0]
        merged = await self.add_chat_node(
            title=MERGED_CHAT_TITLE,
            provider=first.payload.provider,
            model=first.payload.model,
            system_prompt=first.payload.system_prompt,
            position=Position(x=avg_x + MERGE_OFFSET.x, y=avg_y + MERGE_OFFSET.y),
        )
        for node in chats:
            await self.connect(node.id, merged.id)
        logger.info(f"Merged {len(chats)} chats into {merged.id}")
        return merged

    # MESSAGES AND DOCUMENTS

    async def send_message(self, node_id: str, content: str) -> Message | None:
        """Send a user message from a chat node; see ConversationService.send."""
        return await self.conversations.send(node_id, content)

    async def upload_documents(
        self, memory_node_id: str, files: list[UploadedFile]
    ) -> IngestionResult | None:
        """Parse, embed and index files into a memory node."""
        return await self.ingestion.ingest_files(memory_node_id, files)

    def attached_memory_ids(self, chat_node_id: str) -> tuple[str, ...]:
        return self.graph.attached_memory_ids(chat_node_id)

    # SETTINGS

    async def update_settings(
        self,
        enabled_providers: list[str] | None = None,
        api_keys: dict[str, str | None] | None = None,
        ollama_base_url: str | None = None,
        embedding_provider: str | None = None,
        embedding_models: dict[str, str] | None = None,
    ) -> None:
        """
        Change runtime provider settings.

        Cached provider clients are closed so the next call uses the new values.

        Raises:
            ValidationError: If a provider name is unknown
        """
        if enabled_providers is not None:
            await self.settings.set_enabled_providers(enabled_providers)
        for provider, api_key in (api_keys or {}).items():
            await self.settings.set_api_key(provider, api_key)
        if ollama_base_url is not None:
            await self.settings.set_ollama_base_url(ollama_base_url)
        if embedding_provider is not None:
            await self.settings.set_embedding_provider(embedding_provider)
        for provider, model in (embedding_models or {}).items():
            await self.settings.set_embedding_model(provider, model)

        await self.providers.reset()
        logger.info("Provider settings updated")

    async def check_providers(self) -> dict[str, bool]:
        """
        Check that each enabled chat provider and the default embedder answer.

        A provider that can't be configured (e.g. no API key) counts as
        unreachable.

        Returns:
            Provider name -> reachable, plus an "embedding" entry
        """
        status: dict[str, bool] = {}
        for provider in self.settings.providers.enabled:
            try:
                status[provider] = await self.providers.llm(provider).check_reachable()
            except ConfigurationError as e:
                logger.warning(f"Provider {provider} unavailable: {e.message}")
                status[provider] = False

        try:
            status["embedding"] = await self.providers.default_embedder().check_reachable()
        except ConfigurationError as e:
            logger.warning(f"Embedding provider unavailable: {e.message}")
            status["embedding"] = False
        return status

    # SESSIONS

    async def list_sessions(self) -> list[CanvasSession]:
        return await self.persistence.list_sessions()

    async def load_session(self, session_id: str) -> CanvasSession | None:
        if await self.storage.get_canvas_session(session_id) is None:
            return None
        await self.conversations.cancel_all()
        self.indices.clear_cache()
        return await self.persistence.load_session(session_id)

    async def new_canvas(self) -> None:
        await self.conversations.cancel_all()
        self.indices.clear_cache()
        await self.persistence.new_canvas()

    async def rename_session(self, session_id: str, title: str) -> CanvasSession | None:
        return await self.persistence.rename_session(session_id, title)

    async def delete_session(self, session_id: str) -> bool:
        if session_id == self.persistence.current_session_id:
            await self.conversations.cancel_all()
            self.indices.clear_cache()
        return await self.persistence.delete_session(session_id)

    async def export_session(self, session_id: str) -> dict | None:
        return await self.persistence.export_session(session_id)

    async def import_session(self, data: dict | str) -> CanvasSession:
        return await self.persistence.import_session(data)

    async def flush(self) -> CanvasSession | None:
        return await self.persistence.flush()

    # LIFECYCLE MANAGEMENT

    async def close(self) -> None:
        """Cancel sends, flush the canvas and close connections."""
        logger.info("Shutting down Canvas Workspace")

        await self.conversations.cancel_all()
        await self.persistence.close()
        await self.providers.close()
        await self.storage.close()

        logger.info("Canvas Workspace shutdown complete")

    async def wait_for_pending_saves(self) -> None:
        await self.persistence.wait_for_pending_save()
