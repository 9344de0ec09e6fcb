"""
Abstract base class for embedding providers.
Turns chunk text and chat queries into vectors for similarity search.
"""

from abc import ABC, abstractmethod


class Embedder(ABC):
    """
    Abstract base for embedding providers.

    Responsibilities:
    - Embed document chunks at upload time and queries at send time
    - Report which provider and model produced the vectors, so memory indices
      can be tagged and mismatched queries detected
    """

    provider: str = ""
    model: str = ""

    @abstractmethod
    async def embed(self, text: str, **kwargs) -> list[float]:
        """
        Embed a single chunk or query.

        Args:
            text: Non-empty text
            **kwargs: Passed through to the provider SDK

        Returns:
            The embedding vector

        Raises:
            ValidationError: If text is empty
            EmbeddingError: If the provider call fails or returns no vector
        """
        pass

    async def batch_embed(self, texts: list[str], **kwargs) -> list[list[float]]:
        """
        Embed several texts, one request each.

        Providers with a native batch endpoint override this. Vectors come
        back in input order.
        """
        return [await self.embed(text, **kwargs) for text in texts]

    @abstractmethod
    async def check_reachable(self) -> bool:
        """Whether the provider endpoint answers. Never raises."""
        pass

    @abstractmethod
    async def close(self):
        """Release the underlying SDK client."""
        pass
