"""
In-process persistent store.

Keeps every record in dictionaries. Records are copied on the way in and out
so callers never share state with the store.
"""

from opencanvas.core.storage.base import StorageAdapter
from opencanvas.models.chat import ChatRecord
from opencanvas.models.chunk import VectorStoreRecord
from opencanvas.models.session import CanvasSession, CanvasSnapshot


class InMemoryStorage(StorageAdapter):
    """Dictionary-backed store for tests and throwaway canvases."""

    def __init__(self):
        self.settings: dict[str, str] = {}
        self.chats: dict[str, ChatRecord] = {}
        self.canvas_state: CanvasSnapshot | None = None
        self.sessions: dict[str, CanvasSession] = {}
        self.vector_stores: dict[str, VectorStoreRecord] = {}

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def get_setting(self, key: str) -> str | None:
        return self.settings.get(key)

    async def set_setting(self, key: str, value: str) -> None:
        self.settings[key] = value

    async def delete_setting(self, key: str) -> None:
        self.settings.pop(key, None)

    async def get_all_settings(self) -> dict[str, str]:
        return dict(self.settings)

    async def save_chat(self, chat: ChatRecord) -> None:
        self.chats[chat.id] = chat.model_copy(deep=True)

    async def get_chat(self, chat_id: str) -> ChatRecord | None:
        chat = self.chats.get(chat_id)
        return chat.model_copy(deep=True) if chat else None

    async def get_all_chats(self) -> list[ChatRecord]:
        chats = sorted(self.chats.values(), key=lambda c: c.updated_at, reverse=True)
        return [chat.model_copy(deep=True) for chat in chats]

    async def delete_chat(self, chat_id: str) -> None:
        self.chats.pop(chat_id, None)

    async def save_canvas_state(self, state: CanvasSnapshot) -> None:
        self.canvas_state = state.model_copy(deep=True)

    async def get_canvas_state(self) -> CanvasSnapshot | None:
        return self.canvas_state.model_copy(deep=True) if self.canvas_state else None

    async def delete_canvas_state(self) -> None:
        self.canvas_state = None

    async def save_canvas_session(self, session: CanvasSession) -> None:
        self.sessions[session.id] = session.model_copy(deep=True)

    async def get_canvas_session(self, session_id: str) -> CanvasSession | None:
        session = self.sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    async def get_all_canvas_sessions(self) -> list[CanvasSession]:
        sessions = sorted(self.sessions.values(), key=lambda s: s.updated_at, reverse=True)
        return [session.model_copy(deep=True) for session in sessions]

    async def delete_canvas_session(self, session_id: str) -> None:
        self.sessions.pop(session_id, None)

    async def save_vector_store(self, store_id: str, record: VectorStoreRecord) -> None:
        self.vector_stores[store_id] = record.model_copy(deep=True)

    async def get_vector_store(self, store_id: str) -> VectorStoreRecord | None:
        record = self.vector_stores.get(store_id)
        return record.model_copy(deep=True) if record else None

    async def delete_vector_store(self, store_id: str) -> None:
        self.vector_stores.pop(store_id, None)
