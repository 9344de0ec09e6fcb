"""
Embedder abstraction layer for text embeddings.

Supported providers:
- Ollama (native SDK)
- OpenAI and OpenRouter (official OpenAI SDK)
"""
from opencanvas.core.embeddings.base import Embedder
from opencanvas.core.embeddings.ollama import OllamaEmbedder
from opencanvas.core.embeddings.openai import OpenAIEmbedder

__all__ = [
    "Embedder",
    "OllamaEmbedder",
    "OpenAIEmbedder",
]
