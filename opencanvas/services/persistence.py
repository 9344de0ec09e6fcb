"""
Session persistence for the open canvas.

Decides when the canvas graph is written to the persistent store:
- adding or removing nodes and edges saves immediately
- every other change is debounced
- a background task saves unsaved changes periodically
- flush() saves at once (tab hidden / page unload)

A session is created lazily the first time something is added to an empty,
session-less canvas. Saves are suppressed while a session is being loaded so
the half-restored state never overwrites the stored one.

Writes and session switches share one lock. A save takes its snapshot and
session ID together, and loading, clearing or deleting the open session waits
for a save in flight, so one session's graph is never written under another
session's ID.
"""

import asyncio
import json
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from opencanvas.config import PersistenceConfig
from opencanvas.core.graph.commands import GraphChange
from opencanvas.core.graph.store import CanvasGraph
from opencanvas.core.storage.base import StorageAdapter
from opencanvas.models.session import (
    DEFAULT_SESSION_TITLE,
    MIGRATED_SESSION_TITLE,
    UNTITLED_SESSION_TITLE,
    CanvasSession,
)
from opencanvas.utils.exceptions import ValidationError
from opencanvas.utils.id_generator import generate_session_id
from opencanvas.utils.logger import get_logger

logger = get_logger(__name__)

CURRENT_SESSION_KEY = "current_canvas_session"


class SessionState(str, Enum):
    """Lifecycle of the open canvas session."""

    NO_ACTIVE_SESSION = "no_active_session"
    CREATING_SESSION = "creating_session"
    ACTIVE = "active"
    LOADING = "loading"


class SessionPersistenceOrchestrator:
    """Keeps the canvas graph and the stored session in sync."""

    def __init__(
        self,
        graph: CanvasGraph,
        storage: StorageAdapter,
        config: PersistenceConfig | None = None,
    ):
        """
        Initialize orchestrator.

        Args:
            graph: Canvas graph to persist
            storage: Persistent store
            config: Debounce and periodic save intervals
        """
        self.graph = graph
        self.storage = storage
        self.config = config or PersistenceConfig()

        self.state = SessionState.NO_ACTIVE_SESSION
        self.current_session_id: str | None = None
        self.sessions: list[CanvasSession] = []

        self._dirty = False
        self._save_lock = asyncio.Lock()
        self._debounce_task: asyncio.Task | None = None
        self._worker_task: asyncio.Task | None = None

    # SAVE POLICY

    async def record_change(self, change: GraphChange) -> None:
        """
        React to an applied graph command.

        Structural changes save immediately (creating the session first if
        needed); anything else schedules a debounced save.
        """
        if not change.applied:
            return
        if self.state == SessionState.LOADING:
            logger.debug("Change during load, not saving")
            return

        self._dirty = True
        if change.structural:
            await self.ensure_session()
            await self.save_now()
        else:
            self.schedule_save()

    async def ensure_session(self) -> str | None:
        """
        Create a session for a non-empty canvas that has none.

        An empty canvas never gets a session. Concurrent callers share one
        creation.

        Returns:
            Current session ID, or None if the canvas is empty or loading
        """
        if self.current_session_id is not None:
            return self.current_session_id
        if self.graph.is_empty or self.state == SessionState.LOADING:
            return None

        async with self._save_lock:
            if self.current_session_id is not None:
                return self.current_session_id
            if self.graph.is_empty:
                return None
            self.state = SessionState.CREATING_SESSION
            try:
                session = await self._create_session(DEFAULT_SESSION_TITLE)
            except BaseException:
                self.state = SessionState.NO_ACTIVE_SESSION
                raise
            self.current_session_id = session.id
            self.state = SessionState.ACTIVE
            await self.storage.set_setting(CURRENT_SESSION_KEY, session.id)
            logger.info(f"Created canvas session {session.id}")
            return session.id

    async def _create_session(self, title: str) -> CanvasSession:
        snapshot = self.graph.snapshot()
        self._dirty = False
        session = CanvasSession(
            id=generate_session_id(),
            title=title,
            nodes=snapshot.nodes,
            edges=snapshot.edges,
            viewport=snapshot.viewport,
        )
        try:
            await self.storage.save_canvas_session(session)
        except BaseException:
            self._dirty = True
            raise
        self._upsert_listed(session)
        return session

    def schedule_save(self) -> None:
        """Save after the debounce interval; a newer call restarts the timer."""
        self._cancel_debounce()
        self._debounce_task = asyncio.create_task(self._debounced_save())

    async def _debounced_save(self) -> None:
        await asyncio.sleep(self.config.debounce_seconds)
        self._debounce_task = None
        if self._dirty:
            await self.save_now(only_if_dirty=True)

    async def wait_for_pending_save(self) -> None:
        """Let a scheduled debounced save run to completion."""
        task = self._debounce_task
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def _cancel_debounce(self) -> None:
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = None

    def _saving_suppressed(self) -> bool:
        return (
            self.state in (SessionState.LOADING, SessionState.CREATING_SESSION)
            or self.current_session_id is None
        )

    async def save_now(self, only_if_dirty: bool = False) -> CanvasSession | None:
        """
        Write the canvas to the current session.

        An empty canvas is saved too once it has a session, so deleting the
        last node is persisted.

        Args:
            only_if_dirty: Skip the write if another save got there first

        Returns:
            The saved session, or None when saving is suppressed (loading,
            no session, or nothing left to save)
        """
        async with self._save_lock:
            # A session creation, load, new canvas or delete may have run while we waited
            if self._saving_suppressed() or (only_if_dirty and not self._dirty):
                return None
            return await self._write_current()

    async def _write_current(self) -> CanvasSession:
        """
        Write the graph to the current session. Caller holds the save lock.

        The session ID and the snapshot are taken together before any await,
        so the write always pairs a graph with the session it belongs to.
        """
        session_id = self.current_session_id
        snapshot = self.graph.snapshot()
        self._dirty = False

        try:
            existing = await self.storage.get_canvas_session(session_id)
            now = datetime.now(UTC)
            session = CanvasSession(
                id=session_id,
                title=existing.title if existing else DEFAULT_SESSION_TITLE,
                nodes=snapshot.nodes,
                edges=snapshot.edges,
                viewport=snapshot.viewport,
                created_at=existing.created_at if existing else now,
                updated_at=now,
            )
            await self.storage.save_canvas_session(session)
        except BaseException:
            if session_id == self.current_session_id:
                self._dirty = True
            raise

        self._upsert_listed(session)
        logger.debug(f"Saved session {session_id} ({len(snapshot.nodes)} nodes)")
        return session

    async def flush(self) -> CanvasSession | None:
        """Save pending changes now. Hook for tab-hidden and unload events."""
        self._cancel_debounce()
        if not self._dirty:
            return None
        await self.ensure_session()
        return await self.save_now()

    # BACKGROUND WORKER

    def start_background_worker(self) -> None:
        """Start the periodic save task."""
        if self._worker_task is None or self._worker_task.done():
            self._worker_task = asyncio.create_task(self._periodic_worker())

    def stop_background_worker(self) -> None:
        if self._worker_task and not self._worker_task.done():
            self._worker_task.cancel()

    async def _periodic_worker(self) -> None:
        while True:
            try:
                await asyncio.sleep(self.config.periodic_save_seconds)
                if self._dirty and self.state == SessionState.ACTIVE:
                    await self.save_now(only_if_dirty=True)
            except asyncio.CancelledError:
                logger.info("Periodic save worker stopped")
                break
            except Exception as e:
                logger.error(f"Periodic save failed: {e}")

    async def close(self) -> None:
        """Flush pending changes and stop background tasks."""
        self.stop_background_worker()
        if self._worker_task is not None:
            try:
                await self._worker_task
            except asyncio.CancelledError:
                pass
        await self.flush()

    # SESSION LIFECYCLE

    async def list_sessions(self) -> list[CanvasSession]:
        """All sessions, most recently updated first."""
        self.sessions = await self.storage.get_all_canvas_sessions()
        self.sessions.sort(key=lambda s: s.updated_at, reverse=True)
        return list(self.sessions)

    def _upsert_listed(self, session: CanvasSession) -> None:
        self.sessions = [s for s in self.sessions if s.id != session.id]
        self.sessions.append(session)
        self.sessions.sort(key=lambda s: s.updated_at, reverse=True)

    async def load_session(self, session_id: str) -> CanvasSession | None:
        """
        Switch the canvas to a stored session.

        Pending changes of the previous session are saved first. The graph
        swap holds the save lock, so a save in flight finishes against the
        session it started with. Edge kinds are reconciled after the graph
        is restored.

        Returns:
            The loaded session, or None if it doesn't exist
        """
        session = await self.storage.get_canvas_session(session_id)
        if session is None:
            logger.warning(f"Session {session_id} not found")
            return None

        await self.flush()

        async with self._save_lock:
            self._cancel_debounce()
            if self._dirty and self.current_session_id is not None:
                await self._write_current()

            previous_state = self.state
            self.state = SessionState.LOADING
            try:
                repaired = self.graph.restore(session.snapshot())
            except BaseException:
                self.state = previous_state
                raise

            self.current_session_id = session.id
            self._dirty = False
            self.state = SessionState.ACTIVE
            await self.storage.set_setting(CURRENT_SESSION_KEY, session.id)
            if repaired:
                logger.info(f"Repaired {len(repaired)} edges in session {session.id}")
                await self._write_current()

        logger.info(f"Loaded session {session.id} ({len(session.nodes)} nodes)")
        return session

    async def load_canvas(self) -> CanvasSession | None:
        """
        Open a canvas at start-up.

        Resumes the last open session, else the most recently updated one,
        else migrates a legacy single-canvas state into a new session.

        Returns:
            The opened session, or None when there is nothing stored
        """
        current_id = await self.storage.get_setting(CURRENT_SESSION_KEY)
        if current_id:
            session = await self.load_session(current_id)
            if session is not None:
                return session

        sessions = await self.list_sessions()
        if sessions:
            return await self.load_session(sessions[0].id)

        legacy = await self.storage.get_canvas_state()
        if legacy is not None and not legacy.is_empty:
            session = CanvasSession(
                id=generate_session_id(),
                title=MIGRATED_SESSION_TITLE,
                nodes=legacy.nodes,
                edges=legacy.edges,
                viewport=legacy.viewport,
            )
            await self.storage.save_canvas_session(session)
            logger.info(f"Migrated legacy canvas into session {session.id}")
            return await self.load_session(session.id)

        return None

    async def new_canvas(self) -> None:
        """Save the current canvas and start an empty one without a session."""
        await self.flush()
        async with self._save_lock:
            self._cancel_debounce()
            if self._dirty and self.current_session_id is not None:
                await self._write_current()
            self._close_current()
        await self.storage.delete_setting(CURRENT_SESSION_KEY)

    def _close_current(self) -> None:
        """Empty the canvas and detach it from any session. Caller holds the save lock."""
        self.graph.clear()
        self.current_session_id = None
        self.state = SessionState.NO_ACTIVE_SESSION
        self._dirty = False

    async def rename_session(self, session_id: str, title: str) -> CanvasSession | None:
        async with self._save_lock:
            session = await self.storage.get_canvas_session(session_id)
            if session is None:
                return None
            session.title = title.strip() or UNTITLED_SESSION_TITLE
            session.updated_at = datetime.now(UTC)
            await self.storage.save_canvas_session(session)
        self._upsert_listed(session)
        return session

    async def delete_session(self, session_id: str) -> bool:
        """
        Delete a stored session. Deleting the open session clears the canvas.

        Returns:
            True if a session was deleted
        """
        async with self._save_lock:
            session = await self.storage.get_canvas_session(session_id)
            if session is None:
                return False

            if session_id == self.current_session_id:
                self._cancel_debounce()
                self._close_current()
                await self.storage.delete_setting(CURRENT_SESSION_KEY)

            await self.storage.delete_canvas_session(session_id)
        self.sessions = [s for s in self.sessions if s.id != session_id]
        logger.info(f"Deleted session {session_id}")
        return True

    # EXPORT / IMPORT

    async def export_session(self, session_id: str) -> dict[str, Any] | None:
        """
        Export a session as a JSON-compatible dict.

        The open session is saved first so the export is current.
        """
        if session_id == self.current_session_id:
            await self.flush()
        session = await self.storage.get_canvas_session(session_id)
        if session is None:
            return None
        return session.model_dump(mode="json")

    async def import_session(self, data: dict[str, Any] | str) -> CanvasSession:
        """
        Import an exported session.

        The exported ID is kept unless a stored session already uses it.

        Raises:
            ValidationError: If the payload is not a valid session
        """
        try:
            if isinstance(data, str):
                data = json.loads(data)
            session = CanvasSession.model_validate(data)
        except (json.JSONDecodeError, PydanticValidationError) as e:
            raise ValidationError(f"Invalid session export: {e}") from e

        if await self.storage.get_canvas_session(session.id) is not None:
            session = session.model_copy(update={"id": generate_session_id()})
        session.updated_at = datetime.now(UTC)

        await self.storage.save_canvas_session(session)
        self._upsert_listed(session)
        logger.info(f"Imported session {session.id}")
        return session
