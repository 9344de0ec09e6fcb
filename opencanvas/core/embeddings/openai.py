"""
OpenAI-compatible embedder using the official SDK.

Serves both OpenAI and OpenRouter; the latter only differs by base URL.
"""

from openai import AsyncOpenAI

from opencanvas.core.embeddings.base import Embedder
from opencanvas.utils.exceptions import EmbeddingError, ValidationError
from opencanvas.utils.logger import get_logger

logger = get_logger(__name__)


class OpenAIEmbedder(Embedder):
    """
    OpenAI embedder for generating text embeddings.

    Supports models like text-embedding-3-small, text-embedding-3-large, etc.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        base_url: str | None = None,
        timeout: float = 120.0,
        provider: str = "openai",
    ):
        """
        Initialize OpenAI embedder.

        Args:
            api_key: API key
            model: Embedding model name
            base_url: Optional custom base URL (OpenRouter, proxies)
            timeout: Request timeout in seconds
            provider: Provider name recorded on memory indices
        """
        self.model = model
        self.provider = provider

        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    async def embed(self, text: str, **kwargs) -> list[float]:
        """
        Generate embedding for text.

        Args:
            text: Text to embed
            **kwargs: Additional parameters (e.g., dimensions, user)

        Returns:
            Embedding vector as list of floats

        Raises:
            ValidationError: If text is empty
            EmbeddingError: If the API call fails
        """
        if not text or not text.strip():
            raise ValidationError("Text cannot be empty")

        try:
            response = await self.client.embeddings.create(model=self.model, input=text, **kwargs)

            if not response.data:
                raise EmbeddingError(f"{self.provider} returned empty embedding response")

            return list(response.data[0].embedding)
        except (ValidationError, EmbeddingError):
            raise
        except Exception as e:
            logger.error(
                "{} embedding error: {}",
                self.provider,
                e,
                extra={"model": self.model, "error": str(e), "error_type": type(e).__name__},
            )
            raise EmbeddingError(
                f"{self.provider} embedding error: {e}", context={"model": self.model}
            ) from e

    async def batch_embed(
        self, texts: list[str], batch_size: int = 2048, **kwargs
    ) -> list[list[float]]:
        """
        Batch embed using the native batch API (up to 2048 inputs per request).

        Args:
            texts: List of texts to embed
            batch_size: Number of texts per request
            **kwargs: Additional parameters

        Returns:
            List of embedding vectors

        Raises:
            EmbeddingError: If batch embedding fails
        """
        if not texts:
            return []

        try:
            embeddings = []
            for i in range(0, len(texts), batch_size):
                batch = texts[i : i + batch_size]
                response = await self.client.embeddings.create(
                    model=self.model, input=batch, **kwargs
                )
                if not response.data:
                    raise EmbeddingError(f"{self.provider} returned empty batch embedding response")
                embeddings.extend(list(item.embedding) for item in response.data)
            return embeddings
        except EmbeddingError:
            raise
        except Exception as e:
            logger.error(
                "{} batch embedding error: {}",
                self.provider,
                e,
                extra={"model": self.model, "num_texts": len(texts), "error": str(e)},
            )
            raise EmbeddingError(f"{self.provider} batch embedding error: {e}") from e

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
