"""
Storage Package

This package contains the persistence layer:
- base: storage ports the services depend on
- errors: storage exceptions
- memory: in-memory adapter
- database: SQLAlchemy adapter (PostgreSQL / SQLite)
"""

from pr_reviewer.config import Settings
from pr_reviewer.storage.base import PRStorage, PRTransaction, Storage, TeamStorage, UserStorage
from pr_reviewer.storage.database import create_database_storage
from pr_reviewer.storage.memory import create_memory_storage


async def create_storage(settings: Settings) -> Storage:
    """Build the storage backend selected in settings."""
    if settings.uses_memory_storage:
        return create_memory_storage()
    return await create_database_storage(settings)


__all__ = [
    "PRStorage",
    "PRTransaction",
    "Storage",
    "TeamStorage",
    "UserStorage",
    "create_memory_storage",
    "create_storage",
]
