"""
Factory for creating persistent stores.
"""

from opencanvas.config import PersistenceConfig
from opencanvas.core.storage.base import StorageAdapter
from opencanvas.core.storage.memory_store import InMemoryStorage
from opencanvas.core.storage.sqlite_store import SQLiteStorage
from opencanvas.utils.exceptions import ConfigurationError


class StorageFactory:
    """Factory for creating persistent stores from configuration."""

    @staticmethod
    def create(config: PersistenceConfig) -> StorageAdapter:
        """
        Create persistent store from configuration.

        Args:
            config: Persistence configuration

        Returns:
            Storage adapter instance

        Raises:
            ConfigurationError: If backend is not supported
        """
        if config.backend == "sqlite":
            return SQLiteStorage(db_path=config.db_path)
        elif config.backend == "memory":
            return InMemoryStorage()
        else:
            raise ConfigurationError(f"Unsupported storage backend: {config.backend}")
