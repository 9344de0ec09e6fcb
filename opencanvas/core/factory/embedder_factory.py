"""
Factory for creating embedding providers.
"""

from opencanvas.config import ProvidersConfig
from opencanvas.core.embeddings.base import Embedder
from opencanvas.core.embeddings.ollama import OllamaEmbedder
from opencanvas.core.embeddings.openai import OpenAIEmbedder
from opencanvas.core.factory.llm_factory import check_provider_enabled
from opencanvas.utils.exceptions import ConfigurationError


class EmbedderFactory:
    """Factory for creating embedders from provider configuration."""

    @staticmethod
    def create(provider: str, model: str, config: ProvidersConfig) -> Embedder:
        """
        Create embedder by provider name.

        Args:
            provider: Provider name (ollama, openai, openrouter)
            model: Embedding model name
            config: Provider credentials and enablement

        Returns:
            Embedder instance

        Raises:
            ConfigurationError: If the provider is unknown, disabled or lacks an API key
        """
        check_provider_enabled(provider, config)
        if not model:
            raise ConfigurationError(
                f"No embedding model configured for {provider}", context={"provider": provider}
            )

        if provider == "ollama":
            return OllamaEmbedder(
                host=config.ollama.base_url, model=model, timeout=config.ollama.timeout
            )
        elif provider == "openai":
            if not config.openai.api_key:
                raise ConfigurationError(
                    "OpenAI API key is required", context={"provider": provider}
                )
            return OpenAIEmbedder(
                api_key=config.openai.api_key,
                model=model,
                base_url=config.openai.base_url,
                timeout=config.openai.timeout,
                provider="openai",
            )
        else:
            if not config.openrouter.api_key:
                raise ConfigurationError(
                    "OpenRouter API key is required", context={"provider": provider}
                )
            return OpenAIEmbedder(
                api_key=config.openrouter.api_key,
                model=model,
                base_url=config.openrouter.base_url,
                timeout=config.openrouter.timeout,
                provider="openrouter",
            )
