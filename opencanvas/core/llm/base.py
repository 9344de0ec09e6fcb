"""
Abstract base class for LLM providers.
Handles streamed chat completions.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from pydantic import BaseModel

from opencanvas.models.message import Message


class StreamChunk(BaseModel):
    """One increment of a streamed completion."""

    content: str = ""
    done: bool = False


class CompletionOptions(BaseModel):
    """Sampling options forwarded to the provider."""

    temperature: float = 0.7
    max_tokens: int = 2000


class LLMProvider(ABC):
    """
    Abstract base for LLM chat providers.

    Responsibilities:
    - Streamed chat completion
    - Connectivity check
    """

    provider: str = ""

    @abstractmethod
    def stream_chat(
        self,
        messages: list[Message],
        model: str,
        options: CompletionOptions | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """
        Stream a chat completion.

        Args:
            messages: Prompt messages in order
            model: Model name
            options: Sampling options

        Yields:
            StreamChunk deltas; the last one has done=True

        Raises:
            LLMError: If the provider call fails
        """
        pass

    async def complete(
        self,
        messages: list[Message],
        model: str,
        options: CompletionOptions | None = None,
    ) -> str:
        """Collect a full completion from the stream."""
        parts = []
        async for chunk in self.stream_chat(messages, model, options):
            parts.append(chunk.content)
            if chunk.done:
                break
        return "".join(parts)

    @abstractmethod
    async def check_reachable(self) -> bool:
        """Whether the provider endpoint answers. Never raises."""
        pass

    @abstractmethod
    async def close(self):
        """
        Close any open connections.
        """
        pass
