"""Core configuration and errors for Elo Arena."""

from elo_arena.core.config import (
    DEFAULT_K_FACTOR,
    DEFAULT_RATING,
    ArenaConfig,
    RankingConfig,
    StorageConfig,
    load_config,
    resolve_config,
)
from elo_arena.core.errors import (
    ArenaError,
    BackupFormatError,
    ConfigurationError,
    InvalidPairError,
    NoHistoryError,
    NonFiniteRatingError,
    PersistenceFailureError,
    ReferencedItemMissingError,
    ValidationError,
)

__all__ = [
    "DEFAULT_K_FACTOR",
    "DEFAULT_RATING",
    "ArenaConfig",
    "RankingConfig",
    "StorageConfig",
    "load_config",
    "resolve_config",
    "ArenaError",
    "BackupFormatError",
    "ConfigurationError",
    "InvalidPairError",
    "NoHistoryError",
    "NonFiniteRatingError",
    "PersistenceFailureError",
    "ReferencedItemMissingError",
    "ValidationError",
]
