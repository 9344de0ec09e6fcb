"""
Tests for configuration management.

Tests config loading from:
1. Environment variables
2. YAML files
3. Combined (env overrides YAML)
"""

import pytest
import yaml

from opencanvas.config import Config, EmbedderConfig, PersistenceConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Run from an empty directory so a local .env is never picked up."""
    monkeypatch.chdir(tmp_path)


@pytest.mark.unit
class TestConfigDefaults:
    """Test default configuration values."""

    def test_default_config_creation(self):
        """Test creating config with defaults."""
        config = Config()

        # Providers
        assert config.providers.enabled == ["ollama"]
        assert config.providers.ollama.base_url == "http://localhost:11434"
        assert config.providers.openai.api_key is None
        assert config.providers.openrouter.base_url == "https://openrouter.ai/api/v1"

        # Chat defaults
        assert config.llm.provider == "ollama"
        assert config.llm.model == "llama3.1:8b"
        assert config.llm.max_tokens == 2000

        # Chunking and retrieval
        assert config.chunking.chunk_size == 1000
        assert config.chunking.chunk_overlap == 200
        assert config.retrieval.per_index_top_k == 3
        assert config.retrieval.total_top_k == 5

        # Persistence
        assert config.persistence.backend == "sqlite"
        assert config.persistence.debounce_seconds == 0.5
        assert config.persistence.periodic_save_seconds == 10.0

    def test_embedding_model_lookup(self):
        embedder = EmbedderConfig(models={"openai": "text-embedding-3-large"})

        assert embedder.model_for("openai") == "text-embedding-3-large"
        # Missing entries fall back to the built-in defaults
        assert embedder.model_for("ollama") == "nomic-embed-text"
        assert embedder.model_for("unknown") == ""


@pytest.mark.unit
class TestConfigFromEnv:
    """Test loading configuration from environment variables."""

    def test_from_env_basic(self, monkeypatch):
        monkeypatch.setenv("OPENCANVAS_ENABLED_PROVIDERS", "ollama, openai")
        monkeypatch.setenv("OPENCANVAS_OPENAI_API_KEY", "sk-test-key")
        monkeypatch.setenv("OPENCANVAS_LLM_PROVIDER", "openai")
        monkeypatch.setenv("OPENCANVAS_LLM_MODEL", "gpt-4o-mini")

        config = Config.from_env()

        assert config.providers.enabled == ["ollama", "openai"]
        assert config.providers.openai.api_key == "sk-test-key"
        assert config.llm.provider == "openai"
        assert config.llm.model == "gpt-4o-mini"

    def test_from_env_with_numbers(self, monkeypatch):
        monkeypatch.setenv("OPENCANVAS_CHUNK_SIZE", "500")
        monkeypatch.setenv("OPENCANVAS_CHUNK_OVERLAP", "50")
        monkeypatch.setenv("OPENCANVAS_SAVE_DEBOUNCE_SECONDS", "0.25")

        config = Config.from_env()

        assert config.chunking.chunk_size == 500
        assert config.chunking.chunk_overlap == 50
        assert config.persistence.debounce_seconds == 0.25

    def test_from_env_with_booleans(self, monkeypatch):
        monkeypatch.setenv("OPENCANVAS_LOG_TO_FILE", "false")
        monkeypatch.setenv("OPENCANVAS_LOG_SERIALIZE", "0")

        config = Config.from_env()

        assert config.logging.log_to_file is False
        assert config.logging.serialize is False

    def test_from_env_server(self, monkeypatch):
        monkeypatch.setenv("OPENCANVAS_HOST", "127.0.0.1")
        monkeypatch.setenv("OPENCANVAS_PORT", "9100")
        monkeypatch.setenv("OPENCANVAS_RELOAD", "true")

        config = Config.from_env()

        assert config.server.host == "127.0.0.1"
        assert config.server.port == 9100
        assert config.server.reload is True

    def test_server_defaults(self):
        config = Config()

        assert (config.server.host, config.server.port) == ("0.0.0.0", 8000)
        assert config.server.reload is False

    def test_from_env_embedding_models_json(self, monkeypatch):
        monkeypatch.setenv("OPENCANVAS_EMBEDDER_MODELS", '{"ollama": "mxbai-embed-large"}')

        config = Config.from_env()

        assert config.embedder.models["ollama"] == "mxbai-embed-large"
        assert config.embedder.models["openai"] == "text-embedding-3-small"

    def test_from_env_storage_backend(self, monkeypatch):
        monkeypatch.setenv("OPENCANVAS_STORAGE_BACKEND", "memory")
        monkeypatch.setenv("OPENCANVAS_DB_PATH", "/tmp/canvas.db")

        config = Config.from_env()

        assert config.persistence == PersistenceConfig(
            backend="memory", db_path="/tmp/canvas.db"
        )

    def test_from_env_with_dotenv_file(self, monkeypatch, tmp_path):
        """Test loading from a .env file."""
        # Registered with monkeypatch so the value loaded from the file is removed afterwards
        monkeypatch.setenv("OPENCANVAS_LLM_MODEL", "placeholder")
        monkeypatch.delenv("OPENCANVAS_LLM_MODEL")
        env_file = tmp_path / ".env.test"
        env_file.write_text("OPENCANVAS_LLM_MODEL=qwen2.5:7b\n")

        config = Config.from_env(env_file)

        assert config.llm.model == "qwen2.5:7b"

    def test_empty_values_use_defaults(self, monkeypatch):
        monkeypatch.setenv("OPENCANVAS_LLM_MODEL", "")

        config = Config.from_env()

        assert config.llm.model == "llama3.1:8b"


@pytest.mark.unit
class TestConfigFromYAML:
    """Test loading configuration from YAML files."""

    def test_from_yaml_partial_config(self, tmp_path):
        yaml_file = tmp_path / "config.yaml"
        yaml_file.write_text(
            yaml.dump(
                {
                    "providers": {"enabled": ["ollama", "openrouter"]},
                    "retrieval": {"per_index_top_k": 4, "total_top_k": 8},
                }
            )
        )

        config = Config.from_yaml(yaml_file)

        assert config.providers.enabled == ["ollama", "openrouter"]
        assert config.retrieval.total_top_k == 8
        # Untouched sections keep their defaults
        assert config.chunking.chunk_size == 1000

    def test_from_yaml_empty_file(self, tmp_path):
        yaml_file = tmp_path / "config.yaml"
        yaml_file.write_text("")

        assert Config.from_yaml(yaml_file) == Config()

    def test_from_yaml_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Config.from_yaml(tmp_path / "missing.yaml")


@pytest.mark.unit
class TestConfigFromEnvOrYAML:
    """Test combined loading."""

    def test_env_overrides_yaml(self, monkeypatch, tmp_path):
        yaml_file = tmp_path / "config.yaml"
        yaml_file.write_text(
            yaml.dump(
                {
                    "llm": {"provider": "ollama", "model": "mistral"},
                    "retrieval": {"total_top_k": 7},
                }
            )
        )
        monkeypatch.setenv("OPENCANVAS_LLM_MODEL", "llama3.2")

        config = Config.from_env_or_yaml(yaml_file)

        assert config.llm.model == "llama3.2"
        assert config.retrieval.total_top_k == 7

    def test_missing_yaml_falls_back_to_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("OPENCANVAS_CHUNK_SIZE", "800")

        config = Config.from_env_or_yaml(tmp_path / "missing.yaml")

        assert config.chunking.chunk_size == 800
