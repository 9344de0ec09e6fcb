"""
Ollama embedder using native ollama-python SDK.
"""

import ollama

from opencanvas.core.embeddings.base import Embedder
from opencanvas.utils.exceptions import EmbeddingError, ValidationError
from opencanvas.utils.logger import get_logger

logger = get_logger(__name__)


class OllamaEmbedder(Embedder):
    """
    Ollama embedder for generating text embeddings.

    Supports models like nomic-embed-text, mxbai-embed-large, etc.
    """

    provider = "ollama"

    def __init__(
        self,
        host: str = "http://localhost:11434",
        model: str = "nomic-embed-text",
        timeout: float = 120.0,
    ):
        """
        Initialize Ollama embedder.

        Args:
            host: Ollama server URL
            model: Embedding model name
            timeout: Request timeout in seconds
        """
        self.host = host
        self.model = model
        self.timeout = timeout

        self.client = ollama.AsyncClient(host=host, timeout=timeout)

    async def embed(self, text: str, **kwargs) -> list[float]:
        """
        Generate embedding for text using Ollama.

        Args:
            text: Text to embed
            **kwargs: Additional options passed to Ollama

        Returns:
            Embedding vector as list of floats

        Raises:
            ValidationError: If text is empty
            EmbeddingError: If Ollama embedding fails
        """
        if not text or not text.strip():
            raise ValidationError("Text cannot be empty")

        try:
            response = await self.client.embeddings(model=self.model, prompt=text, **kwargs)

            if not response or "embedding" not in response:
                raise EmbeddingError("Ollama returned invalid embedding response")

            return list(response["embedding"])
        except (ValidationError, EmbeddingError):
            raise
        except Exception as e:
            logger.error(
                "Ollama embedding error: {}",
                e,
                extra={"model": self.model, "host": self.host, "error": str(e)},
            )
            raise EmbeddingError(
                f"Ollama embedding error: {e}", context={"model": self.model}
            ) from e

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
