"""
LLM abstraction layer for streamed chat completions.

Supported providers:
- Ollama (native SDK)
- OpenAI and OpenRouter (official OpenAI SDK)
"""

from opencanvas.core.llm.base import CompletionOptions, LLMProvider, StreamChunk
from opencanvas.core.llm.ollama import OllamaLLM
from opencanvas.core.llm.openai import OpenAILLM

__all__ = [
    "LLMProvider",
    "StreamChunk",
    "CompletionOptions",
    "OllamaLLM",
    "OpenAILLM",
]
