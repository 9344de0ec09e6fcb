"""
Configuration for OpenCanvas.

Supports loading from:
1. Environment variables (highest priority)
2. YAML config file
3. Default values (fallback)

Runtime settings saved by users (API keys, enabled providers, embedding
choices) live in the persistent store and are layered on top of this by
SettingsService.
"""

import json
import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

SUPPORTED_PROVIDERS = ("ollama", "openai", "openrouter")

DEFAULT_EMBEDDING_MODELS = {
    "ollama": "nomic-embed-text",
    "openai": "text-embedding-3-small",
    "openrouter": "text-embedding-3-small",
}


class OllamaConfig(BaseModel):
    """Ollama server connection."""

    base_url: str = "http://localhost:11434"
    timeout: float = 120.0


class OpenAIConfig(BaseModel):
    """OpenAI API connection."""

    api_key: str | None = None
    base_url: str | None = None
    timeout: float = 120.0


class OpenRouterConfig(BaseModel):
    """OpenRouter API connection (OpenAI-compatible endpoint)."""

    api_key: str | None = None
    base_url: str = "https://openrouter.ai/api/v1"
    timeout: float = 120.0


class ProvidersConfig(BaseModel):
    """Credentials and enablement for every model provider."""

    ollama: OllamaConfig = Field(default_factory=OllamaConfig)
    openai: OpenAIConfig = Field(default_factory=OpenAIConfig)
    openrouter: OpenRouterConfig = Field(default_factory=OpenRouterConfig)
    enabled: list[str] = Field(default_factory=lambda: ["ollama"])


class LLMConfig(BaseModel):
    """Defaults for newly created chat nodes and completion options."""

    provider: str = "ollama"  # ollama, openai, openrouter
    model: str = "llama3.1:8b"
    temperature: float = 0.7
    max_tokens: int = 2000


class EmbedderConfig(BaseModel):
    """Default embedding provider and the model used per provider."""

    provider: str = "ollama"  # ollama, openai, openrouter
    models: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_EMBEDDING_MODELS))

    def model_for(self, provider: str) -> str:
        return self.models.get(provider) or DEFAULT_EMBEDDING_MODELS.get(provider, "")


class ChunkingConfig(BaseModel):
    """Document chunking parameters (characters)."""

    chunk_size: int = 1000
    chunk_overlap: int = 200
    max_chunks: int = 10000


class RetrievalConfig(BaseModel):
    """Retrieval-augmented generation parameters."""

    per_index_top_k: int = 3
    total_top_k: int = 5


class PersistenceConfig(BaseModel):
    """Session persistence and storage backend."""

    backend: str = "sqlite"  # sqlite, memory
    db_path: str = "data/opencanvas.db"
    debounce_seconds: float = 0.5
    periodic_save_seconds: float = 10.0


class ServerConfig(BaseModel):
    """HTTP server settings used by main.py."""

    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    log_to_file: bool = True
    log_dir: str = "logs"
    file_rotation: str = "10 MB"
    file_retention: str = "7 days"
    compression: str = "zip"
    serialize: bool = True


class Config(BaseModel):
    """Main configuration."""

    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    embedder: EmbedderConfig = Field(default_factory=EmbedderConfig)
    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    persistence: PersistenceConfig = Field(default_factory=PersistenceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Config":
        """
        Load configuration from environment variables.

        Priority: .env file -> system environment variables -> defaults

        Args:
            env_file: Optional path to .env file (default: .env in project root)

        Returns:
            Config instance

        Environment variables:
            OPENCANVAS_ENABLED_PROVIDERS: Comma separated provider list
            OPENCANVAS_OLLAMA_BASE_URL: Ollama server URL
            OPENCANVAS_OPENAI_API_KEY: OpenAI API key
            OPENCANVAS_OPENAI_BASE_URL: Optional OpenAI-compatible base URL
            OPENCANVAS_OPENROUTER_API_KEY: OpenRouter API key
            OPENCANVAS_LLM_PROVIDER: Default chat provider
            OPENCANVAS_LLM_MODEL: Default chat model
            OPENCANVAS_EMBEDDER_PROVIDER: Default embedding provider
            OPENCANVAS_EMBEDDER_MODELS: JSON object of provider -> model
            OPENCANVAS_CHUNK_SIZE / OPENCANVAS_CHUNK_OVERLAP: Chunking window
            OPENCANVAS_STORAGE_BACKEND: sqlite or memory
            OPENCANVAS_DB_PATH: SQLite database path
            OPENCANVAS_SAVE_DEBOUNCE_SECONDS: Debounce for non-structural saves
            OPENCANVAS_PERIODIC_SAVE_SECONDS: Background save interval
            OPENCANVAS_LOG_LEVEL: Log level
            OPENCANVAS_HOST / OPENCANVAS_PORT: Address the HTTP server binds to
            OPENCANVAS_RELOAD: Restart the server on code changes
        """
        if env_file:
            load_dotenv(env_file)
        elif Path(".env").exists():
            load_dotenv()

        def get_env(key: str, default: Any = None) -> Any:
            """Get environment variable with type conversion."""
            value = os.getenv(key)
            if value is None or value == "":
                return default
            if isinstance(default, bool):
                return str(value).lower() in ("true", "1", "yes")
            if isinstance(default, int):
                return int(value)
            if isinstance(default, float):
                return float(value)
            return value

        enabled = get_env("OPENCANVAS_ENABLED_PROVIDERS", "ollama")
        embedding_models = dict(DEFAULT_EMBEDDING_MODELS)
        models_override = get_env("OPENCANVAS_EMBEDDER_MODELS")
        if models_override:
            embedding_models.update(json.loads(models_override))

        return cls(
            providers=ProvidersConfig(
                ollama=OllamaConfig(
                    base_url=get_env("OPENCANVAS_OLLAMA_BASE_URL", "http://localhost:11434"),
                    timeout=get_env("OPENCANVAS_OLLAMA_TIMEOUT", 120.0),
                ),
                openai=OpenAIConfig(
                    api_key=get_env("OPENCANVAS_OPENAI_API_KEY"),
                    base_url=get_env("OPENCANVAS_OPENAI_BASE_URL"),
                    timeout=get_env("OPENCANVAS_OPENAI_TIMEOUT", 120.0),
                ),
                openrouter=OpenRouterConfig(
                    api_key=get_env("OPENCANVAS_OPENROUTER_API_KEY"),
                    base_url=get_env(
                        "OPENCANVAS_OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1"
                    ),
                    timeout=get_env("OPENCANVAS_OPENROUTER_TIMEOUT", 120.0),
                ),
                enabled=[p.strip() for p in enabled.split(",") if p.strip()],
            ),
            llm=LLMConfig(
                provider=get_env("OPENCANVAS_LLM_PROVIDER", "ollama"),
                model=get_env("OPENCANVAS_LLM_MODEL", "llama3.1:8b"),
                temperature=get_env("OPENCANVAS_LLM_TEMPERATURE", 0.7),
                max_tokens=get_env("OPENCANVAS_LLM_MAX_TOKENS", 2000),
            ),
            embedder=EmbedderConfig(
                provider=get_env("OPENCANVAS_EMBEDDER_PROVIDER", "ollama"),
                models=embedding_models,
            ),
            chunking=ChunkingConfig(
                chunk_size=get_env("OPENCANVAS_CHUNK_SIZE", 1000),
                chunk_overlap=get_env("OPENCANVAS_CHUNK_OVERLAP", 200),
                max_chunks=get_env("OPENCANVAS_MAX_CHUNKS", 10000),
            ),
            retrieval=RetrievalConfig(
                per_index_top_k=get_env("OPENCANVAS_RETRIEVAL_PER_INDEX_TOP_K", 3),
                total_top_k=get_env("OPENCANVAS_RETRIEVAL_TOTAL_TOP_K", 5),
            ),
            persistence=PersistenceConfig(
                backend=get_env("OPENCANVAS_STORAGE_BACKEND", "sqlite"),
                db_path=get_env("OPENCANVAS_DB_PATH", "data/opencanvas.db"),
                debounce_seconds=get_env("OPENCANVAS_SAVE_DEBOUNCE_SECONDS", 0.5),
                periodic_save_seconds=get_env("OPENCANVAS_PERIODIC_SAVE_SECONDS", 10.0),
            ),
            logging=LoggingConfig(
                level=get_env("OPENCANVAS_LOG_LEVEL", "INFO"),
                log_to_file=get_env("OPENCANVAS_LOG_TO_FILE", True),
                log_dir=get_env("OPENCANVAS_LOG_DIR", "logs"),
                file_rotation=get_env("OPENCANVAS_LOG_FILE_ROTATION", "10 MB"),
                file_retention=get_env("OPENCANVAS_LOG_FILE_RETENTION", "7 days"),
                compression=get_env("OPENCANVAS_LOG_COMPRESSION", "zip"),
                serialize=get_env("OPENCANVAS_LOG_SERIALIZE", True),
            ),
            server=ServerConfig(
                host=get_env("OPENCANVAS_HOST", "0.0.0.0"),
                port=get_env("OPENCANVAS_PORT", 8000),
                reload=get_env("OPENCANVAS_RELOAD", False),
            ),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "Config":
        """
        Load configuration from YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            yaml.YAMLError: If YAML is invalid
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(yaml_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    @classmethod
    def from_env_or_yaml(
        cls, yaml_path: str | Path | None = None, env_file: str | Path | None = None
    ) -> "Config":
        """
        Load configuration with priority: env vars > YAML > defaults.

        Only sections whose environment values differ from the defaults
        replace the YAML sections.

        Args:
            yaml_path: Optional path to YAML config
            env_file: Optional path to .env file

        Returns:
            Config instance
        """
        if yaml_path and Path(yaml_path).exists():
            with open(yaml_path) as f:
                config_dict = yaml.safe_load(f) or {}
        else:
            config_dict = {}

        env_config = cls.from_env(env_file)
        default = cls()

        final_dict = {**config_dict}
        for section in cls.model_fields:
            env_value = getattr(env_config, section)
            if env_value != getattr(default, section):
                final_dict[section] = env_value.model_dump()

        return cls(**final_dict) if final_dict else env_config


# Default config instance
default_config = Config()
