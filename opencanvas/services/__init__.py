"""
Services for OpenCanvas.

High-level canvas services:
- CanvasWorkspace: Unified interface for all canvas operations
- SessionPersistenceOrchestrator: When and how the canvas is saved
- ConversationService: Sending messages and streaming replies
- ContextPropagationEngine: Donor transcripts over context edges
- RetrievalEngine: Search across attached memory nodes
- IngestionPipeline: Document parsing, embedding and indexing
- SettingsService / ProviderPool: Runtime provider settings and clients
"""

from opencanvas.services.context_propagation import ContextPropagationEngine
from opencanvas.services.conversation import ConversationService
from opencanvas.services.ingestion import IngestionPipeline, IngestionResult, UploadedFile
from opencanvas.services.persistence import SessionPersistenceOrchestrator, SessionState
from opencanvas.services.providers import ProviderPool
from opencanvas.services.retrieval import RetrievalEngine, RetrievalResult
from opencanvas.services.settings import SettingsService
from opencanvas.services.workspace import CanvasWorkspace

__all__ = [
    "CanvasWorkspace",
    "SessionPersistenceOrchestrator",
    "SessionState",
    "ConversationService",
    "ContextPropagationEngine",
    "RetrievalEngine",
    "RetrievalResult",
    "IngestionPipeline",
    "IngestionResult",
    "UploadedFile",
    "SettingsService",
    "ProviderPool",
]
