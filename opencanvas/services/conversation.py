"""
Sending messages from chat nodes.

A send appends the user message, assembles the prompt from the node's system
prompt, its donors' transcripts, retrieved memory context and its own
conversation, then streams the reply into a new assistant message.

Each send runs as its own task. A node has at most one send in flight, and
deleting the node cancels it.
"""

import asyncio
from collections.abc import Awaitable, Callable

from opencanvas.config import LLMConfig
from opencanvas.core.graph.commands import (
    AppendMessage,
    GraphChange,
    GraphCommand,
    ReplaceStreamingMessage,
)
from opencanvas.core.graph.store import CanvasGraph
from opencanvas.core.llm.base import CompletionOptions
from opencanvas.models.message import Message, Role
from opencanvas.models.node import Node
from opencanvas.services.context_propagation import ContextPropagationEngine
from opencanvas.services.providers import ProviderPool
from opencanvas.services.retrieval import RetrievalEngine
from opencanvas.utils.exceptions import ConfigurationError, SendInProgressError, ValidationError
from opencanvas.utils.logger import get_logger

logger = get_logger(__name__)

CommandSink = Callable[[GraphCommand], Awaitable[GraphChange]]
SaveHook = Callable[[], Awaitable[object]]


class ConversationService:
    """Runs sends for chat nodes."""

    def __init__(
        self,
        graph: CanvasGraph,
        providers: ProviderPool,
        context: ContextPropagationEngine,
        retrieval: RetrievalEngine,
        commit: CommandSink,
        save_now: SaveHook | None = None,
        llm_config: LLMConfig | None = None,
    ):
        """
        Initialize conversation service.

        Args:
            graph: Canvas graph
            providers: Provider clients
            context: Donor transcript builder
            retrieval: Memory retrieval
            commit: Applies a graph command and schedules persistence
            save_now: Called after a reply completes to persist immediately
            llm_config: Sampling defaults
        """
        self.graph = graph
        self.providers = providers
        self.context = context
        self.retrieval = retrieval
        self.commit = commit
        self.save_now = save_now
        self.llm_config = llm_config or LLMConfig()
        self._in_flight: dict[str, asyncio.Task] = {}

    def is_sending(self, node_id: str) -> bool:
        task = self._in_flight.get(node_id)
        return task is not None and not task.done()

    async def build_prompt(self, node: Node, query: str) -> list[Message]:
        """
        Assemble the prompt for a chat node from current graph state.

        Order: system prompt, donor transcript, retrieved context, the node's
        own messages (which already end with the new user message).
        """
        prompt: list[Message] = []
        if node.payload.system_prompt:
            prompt.append(Message(role=Role.SYSTEM, content=node.payload.system_prompt))

        prompt.extend(self.context.build_transcript(node.id))

        retrieved = await self.retrieval.retrieve(node.id, query)
        if retrieved is not None:
            rag_message = retrieved.to_system_message()
            if rag_message is not None:
                prompt.append(rag_message)

        prompt.extend(node.payload.messages)
        return prompt

    async def send(self, node_id: str, content: str) -> Message | None:
        """
        Send a user message from a chat node and stream the reply.

        Args:
            node_id: Chat node ID
            content: User message text

        Returns:
            The completed assistant message, or None if the node doesn't exist
            or the send was cancelled (node deleted, canvas switched)

        Raises:
            SendInProgressError: If the node already has a send in flight
            ValidationError: If the message is empty or the node is not a chat node
            ConfigurationError: If no model is selected or the provider is unavailable
            LLMError: If the completion stream fails
        """
        node = self.graph.get_node(node_id)
        if node is None:
            logger.warning(f"Send ignored, node {node_id} not found")
            return None
        if not node.is_chat:
            raise ValidationError(f"Node {node_id} is not a chat node")
        if not content.strip():
            raise ValidationError("Message cannot be empty")
        if self.is_sending(node_id):
            raise SendInProgressError(
                f"Node {node_id} is still answering the previous message",
                context={"node_id": node_id},
            )
        if not node.payload.model:
            raise ConfigurationError(
                f"No model selected for {node.title}", context={"node_id": node_id}
            )

        llm = self.providers.llm(node.payload.provider)

        task = asyncio.create_task(self._run(node_id, content, llm))
        self._in_flight[node_id] = task
        try:
            return await task
        except asyncio.CancelledError:
            # Only the send task was cancelled (cancel/cancel_all), not our caller
            current = asyncio.current_task()
            if task.cancelled() and (current is None or not current.cancelling()):
                logger.info(f"Send on {node_id} cancelled")
                return None
            raise
        finally:
            if self._in_flight.get(node_id) is task:
                del self._in_flight[node_id]

    async def _run(self, node_id: str, content: str, llm) -> Message | None:
        user_message = Message(role=Role.USER, content=content)
        await self.commit(AppendMessage(node_id=node_id, message=user_message))

        node = self.graph.get_node(node_id)
        if node is None:
            return None
        prompt = await self.build_prompt(node, content)

        options = CompletionOptions(
            temperature=self.llm_config.temperature, max_tokens=self.llm_config.max_tokens
        )
        logger.info(
            f"Sending {len(prompt)} messages from {node_id} to "
            f"{node.payload.provider}/{node.payload.model}"
        )

        reply: Message | None = None
        buffer = ""
        async for chunk in llm.stream_chat(prompt, node.payload.model, options):
            if chunk.content:
                if not self.graph.has_node(node_id):
                    logger.info(f"Node {node_id} deleted mid-stream, discarding reply")
                    return None
                buffer += chunk.content
                if reply is None:
                    reply = Message(role=Role.ASSISTANT, content=buffer)
                    await self.commit(AppendMessage(node_id=node_id, message=reply))
                else:
                    reply = reply.with_content(buffer)
                    await self.commit(
                        ReplaceStreamingMessage(
                            node_id=node_id, message_id=reply.id, content=buffer
                        )
                    )
            if chunk.done:
                break

        if not self.graph.has_node(node_id):
            return None
        if reply is None:
            reply = Message(role=Role.ASSISTANT, content="")
            await self.commit(AppendMessage(node_id=node_id, message=reply))

        if self.save_now is not None:
            await self.save_now()
        return reply

    def cancel(self, node_id: str) -> bool:
        """
        Cancel the send in flight on a node.

        Returns:
            True if a running send was cancelled
        """
        task = self._in_flight.get(node_id)
        if task is None or task.done():
            return False
        task.cancel()
        logger.info(f"Cancelled send on {node_id}")
        return True

    async def cancel_all(self) -> None:
        tasks = [task for task in self._in_flight.values() if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._in_flight.clear()
