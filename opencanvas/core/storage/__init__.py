"""
Persistent store abstraction.

Supported backends:
- SQLite (aiosqlite)
- In-memory
"""

from opencanvas.core.storage.base import StorageAdapter
from opencanvas.core.storage.factory import StorageFactory
from opencanvas.core.storage.memory_store import InMemoryStorage
from opencanvas.core.storage.sqlite_store import SQLiteStorage

__all__ = [
    "StorageAdapter",
    "StorageFactory",
    "InMemoryStorage",
    "SQLiteStorage",
]
