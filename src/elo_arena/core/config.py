"""Configuration schemas and loading for Elo Arena."""

from __future__ import annotations

import math
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from elo_arena.core.errors import ValidationError

DEFAULT_RATING = 1400.0
DEFAULT_K_FACTOR = 32.0
CONFIG_ENV_VAR = "ELO_ARENA_CONFIG"
DB_ENV_VAR = "ELO_ARENA_DB"


class RankingConfig(BaseModel):
    """Rating algorithm configuration.

    Attributes:
        initial_rating: Rating assigned to newly created items.
        k_factor: Maximum rating points transferred per comparison.
        undo_mode: How undo restores ratings:
            - "reverse": replay a reverse match (lossy under rounding).
            - "snapshot": restore the ratings recorded before the decision.
    """

    initial_rating: float = DEFAULT_RATING
    k_factor: float = Field(default=DEFAULT_K_FACTOR, gt=0)
    undo_mode: Literal["reverse", "snapshot"] = "reverse"

    @field_validator("initial_rating")
    @classmethod
    def validate_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            msg = "initial_rating must be a finite number"
            raise ValueError(msg)
        return v


class StorageConfig(BaseModel):
    """Where items and comparison history are persisted.

    Attributes:
        backend: "duckdb" for a database file, "memory" for a throwaway run.
        db_path: DuckDB file path.
        flush_every: Saves buffered during interactive comparison before they
            are written out.
    """

    backend: Literal["duckdb", "memory"] = "duckdb"
    db_path: str = "./elo_arena.duckdb"
    flush_every: int = Field(default=10, ge=1)


class ArenaConfig(BaseModel):
    """Complete arena configuration."""

    ranking: RankingConfig = Field(default_factory=RankingConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    milestone_every: int = Field(default=10, ge=1)
    seed: int | None = None

    def apply_env_overrides(self) -> None:
        """Apply overrides from environment variables."""
        db_path = os.environ.get(DB_ENV_VAR)
        if db_path:
            self.storage.db_path = db_path


def load_config(path: str | Path) -> ArenaConfig:
    """Load and validate configuration from YAML file.

    Args:
        path: Path to YAML configuration file.

    Returns:
        Validated ArenaConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValidationError: If the file is not a YAML mapping.
        pydantic.ValidationError: If config values are invalid.
    """
    config_path = Path(path)
    if not config_path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    with config_path.open() as f:
        data = yaml.safe_load(f)

    if data is None:
        return ArenaConfig()
    if not isinstance(data, dict):
        raise ValidationError(str(config_path), "Top-level YAML must be a mapping of settings.")

    return ArenaConfig.model_validate(data)


def resolve_config(path: str | Path | None = None) -> ArenaConfig:
    """Load config from an explicit path, the environment, or defaults."""
    path = path or os.environ.get(CONFIG_ENV_VAR)
    config = load_config(path) if path else ArenaConfig()
    config.apply_env_overrides()
    return config
