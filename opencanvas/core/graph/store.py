"""
Canvas graph store.

Holds the nodes, edges and viewport of the open canvas and is the only place
they change. Derived facts (which memory nodes feed a chat, which chats donate
context) are computed from the edge list whenever they are asked for.
"""

from collections import deque
from collections.abc import Iterable

from opencanvas.core.graph.commands import (
    AddEdge,
    AddNode,
    AppendMessage,
    DeleteEdge,
    DeleteNode,
    GraphChange,
    GraphCommand,
    RenameNode,
    ReplaceStreamingMessage,
    SetViewport,
    UpdateChatSettings,
    UpdateMemoryStats,
    UpdateNodeLayout,
)
from opencanvas.models.edge import Edge, EdgeKind, infer_edge_kind
from opencanvas.models.node import Node, NodeKind
from opencanvas.models.session import CanvasSnapshot, Viewport
from opencanvas.utils.exceptions import CycleError, GraphError
from opencanvas.utils.id_generator import generate_edge_id
from opencanvas.utils.logger import get_logger

logger = get_logger(__name__)

HISTORY_LIMIT = 1000


def derive_attached_memory_ids(
    nodes: dict[str, Node], edges: Iterable[Edge], chat_id: str
) -> tuple[str, ...]:
    """
    Memory nodes attached to a chat node.

    A memory node is attached when an edge runs from it to the chat. Order
    follows edge insertion; each memory node appears once.

    Args:
        nodes: Nodes by ID
        edges: Edges in insertion order
        chat_id: Chat node ID

    Returns:
        Attached memory node IDs, empty when the chat node doesn't exist
    """
    chat = nodes.get(chat_id)
    if chat is None or chat.kind != NodeKind.CHAT:
        return ()

    attached: dict[str, None] = {}
    for edge in edges:
        if edge.target != chat_id:
            continue
        source = nodes.get(edge.source)
        if source is not None and source.kind == NodeKind.MEMORY:
            attached.setdefault(edge.source, None)
    return tuple(attached)


class CanvasGraph:
    """
    Owned store for the canvas graph.

    All mutations go through apply(); commands addressing nodes or edges that
    no longer exist are no-ops whose GraphChange carries result None.
    """

    def __init__(self):
        self._nodes: dict[str, Node] = {}
        self._edges: dict[str, Edge] = {}
        self.viewport = Viewport()
        self.history: deque[GraphCommand] = deque(maxlen=HISTORY_LIMIT)

        self._handlers = {
            AddNode: self._add_node,
            DeleteNode: self._delete_node,
            AddEdge: self._add_edge,
            DeleteEdge: self._delete_edge,
            UpdateNodeLayout: self._update_layout,
            RenameNode: self._rename_node,
            UpdateChatSettings: self._update_chat_settings,
            AppendMessage: self._append_message,
            ReplaceStreamingMessage: self._replace_streaming_message,
            UpdateMemoryStats: self._update_memory_stats,
            SetViewport: self._set_viewport,
        }

    # COMMANDS

    def apply(self, command: GraphCommand) -> GraphChange:
        """
        Apply a command atomically.

        Args:
            command: Command to apply

        Returns:
            GraphChange with the handler's result (None when nothing changed)

        Raises:
            GraphError: If the command would break a structural rule
            CycleError: If a context edge would close a cycle
        """
        handler = self._handlers.get(type(command))
        if handler is None:
            raise GraphError(f"Unknown graph command: {type(command).__name__}")

        result = handler(command)
        if result is not None:
            self.history.append(command)
        return GraphChange(command=command, result=result)

    def _add_node(self, command: AddNode) -> Node:
        node = command.node
        if node.id in self._nodes:
            raise GraphError(f"Node {node.id} already exists", context={"node_id": node.id})
        self._nodes[node.id] = node
        return node

    def _delete_node(self, command: DeleteNode) -> Node | None:
        node = self._nodes.pop(command.node_id, None)
        if node is None:
            logger.debug(f"Delete ignored, node {command.node_id} not found")
            return None

        dangling = [
            edge_id
            for edge_id, edge in self._edges.items()
            if edge.source == node.id or edge.target == node.id
        ]
        for edge_id in dangling:
            del self._edges[edge_id]
        if dangling:
            logger.debug(f"Removed {len(dangling)} edges with node {node.id}")
        return node

    def _add_edge(self, command: AddEdge) -> Edge | None:
        source = self._nodes.get(command.source)
        target = self._nodes.get(command.target)
        if source is None or target is None:
            logger.warning(
                f"Edge {command.source} -> {command.target} ignored, endpoint not found"
            )
            return None

        kind = infer_edge_kind(source.kind, target.kind)

        for edge in self._edges.values():
            if edge.source == source.id and edge.target == target.id and edge.kind == kind:
                logger.debug(f"Edge {source.id} -> {target.id} already exists as {edge.id}")
                return None

        if kind == EdgeKind.CONTEXT and source.id != target.id:
            if self._reaches(target.id, source.id):
                raise CycleError(
                    f"Connecting {source.id} to {target.id} would create a context cycle",
                    context={"source": source.id, "target": target.id},
                )

        edge_id = command.edge_id or generate_edge_id(source.id, target.id)
        if edge_id in self._edges:
            raise GraphError(f"Edge {edge_id} already exists", context={"edge_id": edge_id})

        edge = Edge(id=edge_id, source=source.id, target=target.id, kind=kind)
        self._edges[edge.id] = edge
        return edge

    def _delete_edge(self, command: DeleteEdge) -> Edge | None:
        return self._edges.pop(command.edge_id, None)

    def _update_layout(self, command: UpdateNodeLayout) -> Node | None:
        node = self._nodes.get(command.node_id)
        if node is None:
            return None
        update = {}
        if command.position is not None:
            update["position"] = command.position
        if command.size is not None:
            update["size"] = command.size
        return self._replace(node.model_copy(update=update))

    def _rename_node(self, command: RenameNode) -> Node | None:
        node = self._nodes.get(command.node_id)
        if node is None:
            return None
        payload = node.payload.model_copy(update={"title": command.title})
        return self._replace(node.model_copy(update={"payload": payload}))

    def _update_chat_settings(self, command: UpdateChatSettings) -> Node | None:
        node = self._require_kind(command.node_id, NodeKind.CHAT)
        if node is None:
            return None
        update = {}
        if command.provider is not None:
            update["provider"] = command.provider
        if command.model is not None:
            update["model"] = command.model
        if command.system_prompt is not None:
            update["system_prompt"] = command.system_prompt or None
        payload = node.payload.model_copy(update=update)
        return self._replace(node.model_copy(update={"payload": payload}))

    def _append_message(self, command: AppendMessage) -> Node | None:
        node = self._require_kind(command.node_id, NodeKind.CHAT)
        if node is None:
            return None
        payload = node.payload.model_copy(
            update={"messages": [*node.payload.messages, command.message]}
        )
        return self._replace(node.model_copy(update={"payload": payload}))

    def _replace_streaming_message(self, command: ReplaceStreamingMessage) -> Node | None:
        node = self._require_kind(command.node_id, NodeKind.CHAT)
        if node is None:
            return None

        messages = list(node.payload.messages)
        for i in range(len(messages) - 1, -1, -1):
            if messages[i].id == command.message_id:
                messages[i] = messages[i].with_content(command.content)
                payload = node.payload.model_copy(update={"messages": messages})
                return self._replace(node.model_copy(update={"payload": payload}))

        logger.debug(f"Streaming message {command.message_id} not found on {node.id}")
        return None

    def _update_memory_stats(self, command: UpdateMemoryStats) -> Node | None:
        node = self._require_kind(command.node_id, NodeKind.MEMORY)
        if node is None:
            return None
        update = {
            "chunk_count": command.chunk_count,
            "document_count": command.document_count,
        }
        if command.embedding_provider and command.embedding_model:
            update["embedding_provider"] = command.embedding_provider
            update["embedding_model"] = command.embedding_model
        payload = node.payload.model_copy(update=update)
        return self._replace(node.model_copy(update={"payload": payload}))

    def _set_viewport(self, command: SetViewport) -> Viewport:
        self.viewport = command.viewport
        return self.viewport

    def _replace(self, node: Node) -> Node:
        self._nodes[node.id] = node
        return node

    def _require_kind(self, node_id: str, kind: NodeKind) -> Node | None:
        node = self._nodes.get(node_id)
        if node is None:
            return None
        if node.kind != kind:
            raise GraphError(
                f"Node {node_id} is a {node.kind.value} node, expected {kind.value}",
                context={"node_id": node_id},
            )
        return node

    def _reaches(self, start: str, goal: str) -> bool:
        """Whether goal is reachable from start along context edges."""
        seen = {start}
        frontier = [start]
        while frontier:
            current = frontier.pop()
            if current == goal:
                return True
            for edge in self._edges.values():
                if (
                    edge.source == current
                    and edge.kind == EdgeKind.CONTEXT
                    and edge.target not in seen
                ):
                    seen.add(edge.target)
                    frontier.append(edge.target)
        return False

    # QUERIES

    def get_node(self, node_id: str) -> Node | None:
        return self._nodes.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def get_edge(self, edge_id: str) -> Edge | None:
        return self._edges.get(edge_id)

    @property
    def nodes(self) -> list[Node]:
        return list(self._nodes.values())

    @property
    def edges(self) -> list[Edge]:
        return list(self._edges.values())

    @property
    def is_empty(self) -> bool:
        return not self._nodes and not self._edges

    def incoming_edges(self, node_id: str, kind: EdgeKind | None = None) -> list[Edge]:
        """Edges ending at node_id, in insertion order."""
        return [
            edge
            for edge in self._edges.values()
            if edge.target == node_id and (kind is None or edge.kind == kind)
        ]

    def outgoing_edges(self, node_id: str, kind: EdgeKind | None = None) -> list[Edge]:
        return [
            edge
            for edge in self._edges.values()
            if edge.source == node_id and (kind is None or edge.kind == kind)
        ]

    def attached_memory_ids(self, chat_id: str) -> tuple[str, ...]:
        return derive_attached_memory_ids(self._nodes, self._edges.values(), chat_id)

    # LOAD / SAVE

    def reconcile_edge_kinds(self) -> list[str]:
        """
        Repair edges loaded from storage.

        Edges whose stored kind disagrees with their endpoints are reclassified;
        edges pointing at missing nodes are dropped.

        Returns:
            IDs of edges that were changed or removed
        """
        repaired: list[str] = []
        for edge_id, edge in list(self._edges.items()):
            source = self._nodes.get(edge.source)
            target = self._nodes.get(edge.target)
            if source is None or target is None:
                del self._edges[edge_id]
                repaired.append(edge_id)
                logger.warning(f"Dropped edge {edge_id} with a missing endpoint")
                continue

            expected = infer_edge_kind(source.kind, target.kind)
            if edge.kind != expected:
                self._edges[edge_id] = edge.model_copy(update={"kind": expected})
                repaired.append(edge_id)
                logger.warning(
                    f"Reclassified edge {edge_id} from {edge.kind.value} to {expected.value}"
                )
        return repaired

    def snapshot(self) -> CanvasSnapshot:
        return CanvasSnapshot(
            nodes=self.nodes, edges=self.edges, viewport=self.viewport
        ).model_copy(deep=True)

    def restore(self, snapshot: CanvasSnapshot) -> list[str]:
        """
        Replace the whole graph with a snapshot and reconcile its edges.

        Returns:
            IDs of edges repaired during reconciliation
        """
        snapshot = snapshot.model_copy(deep=True)
        self._nodes = {node.id: node for node in snapshot.nodes}
        self._edges = {edge.id: edge for edge in snapshot.edges}
        self.viewport = snapshot.viewport
        self.history.clear()
        return self.reconcile_edge_kinds()

    def clear(self) -> None:
        self._nodes = {}
        self._edges = {}
        self.viewport = Viewport()
        self.history.clear()
