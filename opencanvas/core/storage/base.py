"""
Abstract base class for the persistent store.

A key-value store for settings, standalone chats, canvas sessions, the legacy
single-canvas state, and memory node indices.
"""

from abc import ABC, abstractmethod

from opencanvas.models.chat import ChatRecord
from opencanvas.models.chunk import VectorStoreRecord
from opencanvas.models.session import CanvasSession, CanvasSnapshot


class StorageAdapter(ABC):
    """
    Abstract persistent store.

    Responsibilities:
    - Settings (string -> string)
    - Standalone chat records
    - Canvas sessions and the legacy canvas state
    - Vector store records keyed by memory node ID
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables / open connections."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release connections."""
        pass

    # Settings

    @abstractmethod
    async def get_setting(self, key: str) -> str | None:
        pass

    @abstractmethod
    async def set_setting(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    async def delete_setting(self, key: str) -> None:
        pass

    @abstractmethod
    async def get_all_settings(self) -> dict[str, str]:
        pass

    # Chats

    @abstractmethod
    async def save_chat(self, chat: ChatRecord) -> None:
        pass

    @abstractmethod
    async def get_chat(self, chat_id: str) -> ChatRecord | None:
        pass

    @abstractmethod
    async def get_all_chats(self) -> list[ChatRecord]:
        """All chats, most recently updated first."""
        pass

    @abstractmethod
    async def delete_chat(self, chat_id: str) -> None:
        pass

    # Legacy single canvas

    @abstractmethod
    async def save_canvas_state(self, state: CanvasSnapshot) -> None:
        pass

    @abstractmethod
    async def get_canvas_state(self) -> CanvasSnapshot | None:
        pass

    @abstractmethod
    async def delete_canvas_state(self) -> None:
        pass

    # Canvas sessions

    @abstractmethod
    async def save_canvas_session(self, session: CanvasSession) -> None:
        pass

    @abstractmethod
    async def get_canvas_session(self, session_id: str) -> CanvasSession | None:
        pass

    @abstractmethod
    async def get_all_canvas_sessions(self) -> list[CanvasSession]:
        """All sessions, most recently updated first."""
        pass

    @abstractmethod
    async def delete_canvas_session(self, session_id: str) -> None:
        pass

    # Vector stores

    @abstractmethod
    async def save_vector_store(self, store_id: str, record: VectorStoreRecord) -> None:
        pass

    @abstractmethod
    async def get_vector_store(self, store_id: str) -> VectorStoreRecord | None:
        pass

    @abstractmethod
    async def delete_vector_store(self, store_id: str) -> None:
        pass
