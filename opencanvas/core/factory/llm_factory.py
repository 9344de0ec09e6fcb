"""
Factory for creating LLM providers.
"""

from opencanvas.config import SUPPORTED_PROVIDERS, ProvidersConfig
from opencanvas.core.llm.base import LLMProvider
from opencanvas.core.llm.ollama import OllamaLLM
from opencanvas.core.llm.openai import OpenAILLM
from opencanvas.utils.exceptions import ConfigurationError


class LLMFactory:
    """Factory for creating LLM providers from provider configuration."""

    @staticmethod
    def create(provider: str, config: ProvidersConfig) -> LLMProvider:
        """
        Create LLM provider by name.

        Args:
            provider: Provider name (ollama, openai, openrouter)
            config: Provider credentials and enablement

        Returns:
            LLM provider instance

        Raises:
            ConfigurationError: If the provider is unknown, disabled or lacks an API key
        """
        check_provider_enabled(provider, config)

        if provider == "ollama":
            return OllamaLLM(host=config.ollama.base_url, timeout=config.ollama.timeout)
        elif provider == "openai":
            if not config.openai.api_key:
                raise ConfigurationError(
                    "OpenAI API key is required", context={"provider": provider}
                )
            return OpenAILLM(
                api_key=config.openai.api_key,
                base_url=config.openai.base_url,
                timeout=config.openai.timeout,
                provider="openai",
            )
        else:
            if not config.openrouter.api_key:
                raise ConfigurationError(
                    "OpenRouter API key is required", context={"provider": provider}
                )
            return OpenAILLM(
                api_key=config.openrouter.api_key,
                base_url=config.openrouter.base_url,
                timeout=config.openrouter.timeout,
                provider="openrouter",
            )


def check_provider_enabled(provider: str, config: ProvidersConfig) -> None:
    if provider not in SUPPORTED_PROVIDERS:
        raise ConfigurationError(
            f"Unsupported provider: {provider}", context={"provider": provider}
        )
    if provider not in config.enabled:
        raise ConfigurationError(
            f"Provider {provider} is not enabled",
            context={"provider": provider, "enabled": list(config.enabled)},
        )
