"""
OpenAI-compatible LLM provider using the official SDK.

Serves both OpenAI and OpenRouter; the latter only differs by base URL.
"""

from collections.abc import AsyncIterator

from openai import AsyncOpenAI

from opencanvas.core.llm.base import CompletionOptions, LLMProvider, StreamChunk
from opencanvas.models.message import Message
from opencanvas.utils.exceptions import LLMError
from opencanvas.utils.logger import get_logger

logger = get_logger(__name__)


class OpenAILLM(LLMProvider):
    """
    OpenAI LLM provider for streamed chat completions.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout: float = 120.0,
        provider: str = "openai",
    ):
        """
        Initialize OpenAI LLM provider.

        Args:
            api_key: API key
            base_url: Optional custom base URL (OpenRouter, proxies)
            timeout: Request timeout in seconds
            provider: Provider name used in logs and errors
        """
        self.provider = provider

        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    async def stream_chat(
        self,
        messages: list[Message],
        model: str,
        options: CompletionOptions | None = None,
    ) -> AsyncIterator[StreamChunk]:
        options = options or CompletionOptions()
        try:
            stream = await self.client.chat.completions.create(
                model=model,
                messages=[m.to_provider_dict() for m in messages],
                temperature=options.temperature,
                max_tokens=options.max_tokens,
                stream=True,
            )
            async for event in stream:
                if not event.choices:
                    continue
                choice = event.choices[0]
                content = choice.delta.content if choice.delta else None
                done = choice.finish_reason is not None
                if content or done:
                    yield StreamChunk(content=content or "", done=done)
                if done:
                    return
        except Exception as e:
            logger.error(
                "{} chat error: {}",
                self.provider,
                e,
                extra={"model": model, "error": str(e), "error_type": type(e).__name__},
            )
            raise LLMError(f"{self.provider} chat error: {e}", context={"model": model}) from e

        yield StreamChunk(done=True)

    async def check_reachable(self) -> bool:
        try:
            await self.client.models.list()
            return True
        except Exception as e:
            logger.debug(f"{self.provider} not reachable: {e}")
            return False

    async def close(self):
        """Close OpenAI client."""
        await self.client.close()
