from __future__ import annotations

from typing import TYPE_CHECKING

from .backup import read_backup, write_backup
from .base import Storage
from .db_store import DBStorage
from .memory_store import MemoryStorage
from .write_behind import WriteBehindStorage

if TYPE_CHECKING:
    from elo_arena.core.config import ArenaConfig


def create_storage(config: ArenaConfig) -> Storage:
    """Create the storage backend named in config."""
    if config.storage.backend == "memory":
        return MemoryStorage()
    return DBStorage.from_path(config.storage.db_path)


__all__ = [
    "DBStorage",
    "MemoryStorage",
    "Storage",
    "WriteBehindStorage",
    "create_storage",
    "read_backup",
    "write_backup",
]
