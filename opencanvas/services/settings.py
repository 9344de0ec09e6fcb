"""
Runtime settings layered over the static configuration.

Users change API keys, enabled providers and embedding models while the app
runs; those values are stored in the persistent store's settings table and
override the matching Config fields.
"""

import json

from opencanvas.config import SUPPORTED_PROVIDERS, Config, ProvidersConfig
from opencanvas.core.storage.base import StorageAdapter
from opencanvas.utils.exceptions import ValidationError
from opencanvas.utils.logger import get_logger

logger = get_logger(__name__)

ENABLED_PROVIDERS_KEY = "enabled_providers"
EMBEDDING_PROVIDER_KEY = "embedding_provider"
EMBEDDING_MODELS_KEY = "embedding_models"
OPENAI_API_KEY = "openai_api_key"
OPENROUTER_API_KEY = "openrouter_api_key"
OLLAMA_BASE_URL_KEY = "ollama_base_url"


class SettingsService:
    """
    Stored settings merged with Config.

    Call load() once after the store is initialized; the effective values
    are then kept in memory and written through on every change.
    """

    def __init__(self, storage: StorageAdapter, config: Config):
        self.storage = storage
        self.config = config.model_copy(deep=True)

    async def load(self) -> None:
        """Apply stored settings on top of the configuration."""
        stored = await self.storage.get_all_settings()
        providers = self.config.providers

        if ENABLED_PROVIDERS_KEY in stored:
            providers.enabled = self._decode_list(stored[ENABLED_PROVIDERS_KEY])
        if OPENAI_API_KEY in stored:
            providers.openai.api_key = stored[OPENAI_API_KEY] or None
        if OPENROUTER_API_KEY in stored:
            providers.openrouter.api_key = stored[OPENROUTER_API_KEY] or None
        if OLLAMA_BASE_URL_KEY in stored:
            providers.ollama.base_url = stored[OLLAMA_BASE_URL_KEY]
        if EMBEDDING_PROVIDER_KEY in stored:
            self.config.embedder.provider = stored[EMBEDDING_PROVIDER_KEY]
        if EMBEDDING_MODELS_KEY in stored:
            self.config.embedder.models.update(self._decode_dict(stored[EMBEDDING_MODELS_KEY]))

        logger.info(f"Settings loaded, enabled providers: {', '.join(providers.enabled)}")

    @property
    def providers(self) -> ProvidersConfig:
        return self.config.providers

    def default_embedding(self) -> tuple[str, str]:
        """
        Provider and model used when nothing else decides.

        The configured embedding provider if it is enabled, otherwise Ollama
        if enabled, otherwise the first enabled provider, otherwise Ollama.
        """
        enabled = self.providers.enabled
        configured = self.config.embedder.provider
        if configured in enabled:
            provider = configured
        elif "ollama" in enabled:
            provider = "ollama"
        elif enabled:
            provider = enabled[0]
        else:
            provider = "ollama"
        return provider, self.config.embedder.model_for(provider)

    async def set_enabled_providers(self, providers: list[str]) -> None:
        unknown = [p for p in providers if p not in SUPPORTED_PROVIDERS]
        if unknown:
            raise ValidationError(
                f"Unknown providers: {', '.join(unknown)}", context={"providers": providers}
            )
        self.providers.enabled = list(providers)
        await self.storage.set_setting(ENABLED_PROVIDERS_KEY, json.dumps(providers))

    async def set_api_key(self, provider: str, api_key: str | None) -> None:
        if provider == "openai":
            self.providers.openai.api_key = api_key or None
            key = OPENAI_API_KEY
        elif provider == "openrouter":
            self.providers.openrouter.api_key = api_key or None
            key = OPENROUTER_API_KEY
        else:
            raise ValidationError(f"Provider {provider} does not take an API key")

        if api_key:
            await self.storage.set_setting(key, api_key)
        else:
            await self.storage.delete_setting(key)

    async def set_ollama_base_url(self, base_url: str) -> None:
        self.providers.ollama.base_url = base_url
        await self.storage.set_setting(OLLAMA_BASE_URL_KEY, base_url)

    async def set_embedding_provider(self, provider: str) -> None:
        if provider not in SUPPORTED_PROVIDERS:
            raise ValidationError(f"Unknown embedding provider: {provider}")
        self.config.embedder.provider = provider
        await self.storage.set_setting(EMBEDDING_PROVIDER_KEY, provider)

    async def set_embedding_model(self, provider: str, model: str) -> None:
        if provider not in SUPPORTED_PROVIDERS:
            raise ValidationError(f"Unknown embedding provider: {provider}")
        self.config.embedder.models[provider] = model
        await self.storage.set_setting(
            EMBEDDING_MODELS_KEY, json.dumps(self.config.embedder.models)
        )

    @staticmethod
    def _decode_list(raw: str) -> list[str]:
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Stored enabled_providers is not JSON, ignoring it")
            return ["ollama"]
        return [str(v) for v in value] if isinstance(value, list) else ["ollama"]

    @staticmethod
    def _decode_dict(raw: str) -> dict[str, str]:
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Stored embedding_models is not JSON, ignoring it")
            return {}
        return {str(k): str(v) for k, v in value.items()} if isinstance(value, dict) else {}
