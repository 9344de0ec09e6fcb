"""
Factory modules for creating OpenCanvas provider clients.
"""

from opencanvas.core.factory.embedder_factory import EmbedderFactory
from opencanvas.core.factory.llm_factory import LLMFactory

__all__ = [
    "LLMFactory",
    "EmbedderFactory",
]
