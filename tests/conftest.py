"""
Shared test fixtures for all test modules.

Provider collaborators are replaced by in-process fakes so no test needs a
running Ollama server or an API key.
"""

import asyncio
import hashlib
from collections.abc import AsyncGenerator

import pytest

from opencanvas.config import Config, LoggingConfig, PersistenceConfig
from opencanvas.core.embeddings.base import Embedder
from opencanvas.core.llm.base import CompletionOptions, LLMProvider, StreamChunk
from opencanvas.core.storage.memory_store import InMemoryStorage
from opencanvas.models.message import Message
from opencanvas.services.workspace import CanvasWorkspace
from opencanvas.utils.exceptions import EmbeddingError, LLMError


class FakeEmbedder(Embedder):
    """
    Deterministic embedder.

    Texts listed in `vectors` get that vector; any other text gets a vector
    derived from its hash. Texts in `fail_on` raise EmbeddingError.
    """

    def __init__(
        self,
        provider: str = "ollama",
        model: str = "nomic-embed-text",
        vectors: dict[str, list[float]] | None = None,
        fail_on: set[str] | None = None,
        dimension: int = 4,
    ):
        self.provider = provider
        self.model = model
        self.vectors = dict(vectors or {})
        self.fail_on = set(fail_on or ())
        self.dimension = dimension
        self.calls: list[str] = []
        self.closed = False

    async def embed(self, text: str, **kwargs) -> list[float]:
        self.calls.append(text)
        if text in self.fail_on:
            raise EmbeddingError(f"fake embedding failure for {text!r}")
        if text in self.vectors:
            return list(self.vectors[text])
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [(b + 1) / 256 for b in digest[: self.dimension]]

    async def check_reachable(self) -> bool:
        return True

    async def close(self):
        self.closed = True


class FakeLLM(LLMProvider):
    """
    Scripted streaming LLM.

    Streams `deltas` one by one. With a `gate`, the stream pauses after the
    first delta until the gate is set.
    """

    def __init__(
        self,
        deltas: list[str] | None = None,
        provider: str = "ollama",
        gate: asyncio.Event | None = None,
        error: Exception | None = None,
    ):
        self.provider = provider
        self.deltas = ["Hello", " world"] if deltas is None else list(deltas)
        self.gate = gate
        self.error = error
        self.started = asyncio.Event()
        self.first_delta_sent = asyncio.Event()
        self.prompts: list[list[Message]] = []
        self.models: list[str] = []
        self.closed = False

    async def stream_chat(
        self,
        messages: list[Message],
        model: str,
        options: CompletionOptions | None = None,
    ):
        self.prompts.append(list(messages))
        self.models.append(model)
        self.started.set()
        if self.error is not None:
            raise LLMError(f"fake stream failure: {self.error}")
        for i, delta in enumerate(self.deltas):
            yield StreamChunk(content=delta)
            if i == 0:
                self.first_delta_sent.set()
                if self.gate is not None:
                    await self.gate.wait()
        yield StreamChunk(done=True)

    async def check_reachable(self) -> bool:
        return True

    async def close(self):
        self.closed = True


@pytest.fixture
def test_config() -> Config:
    """Configuration with an in-memory store and short save timers."""
    return Config(
        persistence=PersistenceConfig(
            backend="memory", debounce_seconds=0.01, periodic_save_seconds=60.0
        ),
        logging=LoggingConfig(log_to_file=False),
    )


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


def build_workspace(storage, config, llm, embedder) -> CanvasWorkspace:
    return CanvasWorkspace(
        storage=storage,
        config=config,
        llm_builder=lambda provider, providers_config: llm,
        embedder_builder=lambda provider, model, providers_config: embedder,
    )


@pytest.fixture
async def workspace(
    storage, test_config, fake_llm, fake_embedder
) -> AsyncGenerator[CanvasWorkspace, None]:
    """Initialized workspace wired to the fake providers."""
    ws = build_workspace(storage, test_config, fake_llm, fake_embedder)
    await ws.initialize(start_background_worker=False)
    yield ws
    await ws.close()


@pytest.fixture
async def workspace_factory(storage, test_config, fake_llm, fake_embedder):
    """
    Build more workspaces over the same store, e.g. to simulate a restart.

    Workspaces are initialized on creation and closed at teardown.
    """
    created: list[CanvasWorkspace] = []

    async def factory() -> CanvasWorkspace:
        ws = build_workspace(storage, test_config, fake_llm, fake_embedder)
        await ws.initialize(start_background_worker=False)
        created.append(ws)
        return ws

    yield factory
    for ws in created:
        await ws.close()
