"""
Cache of provider clients.

Chat nodes and memory nodes name their own providers, so clients are created
on demand per provider (and per embedding model) and reused until settings
change.
"""

from collections.abc import Callable

from opencanvas.config import ProvidersConfig
from opencanvas.core.embeddings.base import Embedder
from opencanvas.core.factory import EmbedderFactory, LLMFactory
from opencanvas.core.llm.base import LLMProvider
from opencanvas.services.settings import SettingsService
from opencanvas.utils.logger import get_logger

logger = get_logger(__name__)

LLMBuilder = Callable[[str, ProvidersConfig], LLMProvider]
EmbedderBuilder = Callable[[str, str, ProvidersConfig], Embedder]


class ProviderPool:
    """Creates and caches LLM and embedding clients."""

    def __init__(
        self,
        settings: SettingsService,
        llm_builder: LLMBuilder = LLMFactory.create,
        embedder_builder: EmbedderBuilder = EmbedderFactory.create,
    ):
        """
        Initialize provider pool.

        Args:
            settings: Effective provider settings
            llm_builder: Callable creating an LLM provider by name
            embedder_builder: Callable creating an embedder by provider and model
        """
        self.settings = settings
        self._llm_builder = llm_builder
        self._embedder_builder = embedder_builder
        self._llms: dict[str, LLMProvider] = {}
        self._embedders: dict[tuple[str, str], Embedder] = {}

    def llm(self, provider: str) -> LLMProvider:
        """
        Get the LLM client for a provider.

        Raises:
            ConfigurationError: If the provider is unavailable
        """
        if provider not in self._llms:
            self._llms[provider] = self._llm_builder(provider, self.settings.providers)
            logger.debug(f"Created LLM client for {provider}")
        return self._llms[provider]

    def embedder(self, provider: str, model: str) -> Embedder:
        """
        Get the embedder for a provider and model.

        Raises:
            ConfigurationError: If the provider is unavailable
        """
        key = (provider, model)
        if key not in self._embedders:
            self._embedders[key] = self._embedder_builder(provider, model, self.settings.providers)
            logger.debug(f"Created embedder {provider}/{model}")
        return self._embedders[key]

    def default_embedder(self) -> Embedder:
        provider, model = self.settings.default_embedding()
        return self.embedder(provider, model)

    async def reset(self) -> None:
        """Close every cached client so the next call picks up new settings."""
        await self.close()
        self._llms.clear()
        self._embedders.clear()

    async def close(self) -> None:
        for client in [*self._llms.values(), *self._embedders.values()]:
            try:
                await client.close()
            except Exception as e:
                logger.warning(f"Error closing provider client: {e}")
