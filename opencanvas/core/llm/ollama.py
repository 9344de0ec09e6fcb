"""
Ollama LLM provider using native ollama-python SDK.
"""

from collections.abc import AsyncIterator

import ollama

from opencanvas.core.llm.base import CompletionOptions, LLMProvider, StreamChunk
from opencanvas.models.message import Message
from opencanvas.utils.exceptions import LLMError
from opencanvas.utils.logger import get_logger

logger = get_logger(__name__)


class OllamaLLM(LLMProvider):
    """
    Ollama LLM provider for chat completions.

    Streams newline-delimited JSON parts from the /api/chat endpoint.
    """

    provider = "ollama"

    def __init__(
        self,
        host: str = "http://localhost:11434",
        timeout: float = 120.0,
    ):
        """
        Initialize Ollama LLM provider.

        Args:
            host: Ollama server URL
            timeout: Request timeout in seconds
        """
        self.host = host
        self.timeout = timeout

        self.client = ollama.AsyncClient(host=host, timeout=timeout)

    async def stream_chat(
        self,
        messages: list[Message],
        model: str,
        options: CompletionOptions | None = None,
    ) -> AsyncIterator[StreamChunk]:
        options = options or CompletionOptions()
        try:
            stream = await self.client.chat(
                model=model,
                messages=[m.to_provider_dict() for m in messages],
                stream=True,
                options={"temperature": options.temperature, "num_predict": options.max_tokens},
            )
            async for part in stream:
                content = part["message"]["content"] if part.get("message") else ""
                done = bool(part.get("done", False))
                yield StreamChunk(content=content or "", done=done)
                if done:
                    return
        except Exception as e:
            logger.error(
                "Ollama chat error: {}",
                e,
                extra={"model": model, "host": self.host, "error": str(e)},
            )
            raise LLMError(f"Ollama chat error: {e}", context={"model": model}) from e

        yield StreamChunk(done=True)

    async def check_reachable(self) -> bool:
        try:
            await self.client.list()
            return True
        except Exception as e:
            logger.debug(f"Ollama not reachable at {self.host}: {e}")
            return False

    async def close(self):
        """Close client (Ollama SDK handles cleanup internally)."""
        pass
