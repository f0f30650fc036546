"""Database storage for items and comparisons using SQLModel."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import structlog
from sqlalchemy import delete
from sqlalchemy.pool import NullPool
from sqlmodel import Session, SQLModel, col, create_engine, select

from elo_arena.models import ComparisonRecord, Item

logger = structlog.get_logger()

_ITEM_FIELDS = ("name", "display_ref", "rating", "match_count")


class DBStorage:
    """Persist the item set and comparison history in a SQL database.

    Defaults to DuckDB. Saves are full snapshots: rows missing from the
    snapshot are deleted, changed rows are updated in place, new rows are
    inserted, all within one transaction.
    """

    def __init__(self, db_url: str) -> None:
        """Initialize database storage.

        Args:
            db_url: SQLAlchemy URL, e.g. ``duckdb:///arena.duckdb``.
        """
        self.db_url = db_url
        # Use NullPool to avoid connection pooling issues on Windows
        self._engine = create_engine(db_url, poolclass=NullPool)
        SQLModel.metadata.create_all(self._engine)
        logger.debug("db_store_init", url=db_url)

    @classmethod
    def from_path(cls, db_path: str | Path) -> DBStorage:
        """Open (or create) a DuckDB file."""
        path = Path(db_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        return cls(f"duckdb:///{path}")

    def load_items(self) -> list[Item]:
        with Session(self._engine) as session:
            rows = session.exec(select(Item)).all()
            return [row.clone() for row in rows]

    def save_items(self, items: Sequence[Item]) -> None:
        incoming = {item.id: item for item in items}

        with Session(self._engine) as session:
            existing = {row.id: row for row in session.exec(select(Item)).all()}
            for item_id, row in existing.items():
                if item_id not in incoming:
                    session.delete(row)
            for item_id, item in incoming.items():
                row = existing.get(item_id)
                if row is None:
                    session.add(item.clone())
                    continue
                for key in _ITEM_FIELDS:
                    setattr(row, key, getattr(item, key))
                session.add(row)
            session.commit()

        logger.debug("saved_items", count=len(incoming))

    def load_history(self) -> list[ComparisonRecord]:
        with Session(self._engine) as session:
            statement = select(ComparisonRecord).order_by(
                col(ComparisonRecord.sequence), col(ComparisonRecord.timestamp)
            )
            return [row.clone() for row in session.exec(statement).all()]

    def save_history(self, history: Sequence[ComparisonRecord]) -> None:
        incoming = {record.id: record for record in history}

        with Session(self._engine) as session:
            existing = {row.id for row in session.exec(select(ComparisonRecord)).all()}
            stale = existing - incoming.keys()
            if stale:
                session.execute(
                    delete(ComparisonRecord).where(col(ComparisonRecord.id).in_(sorted(stale)))
                )
            for record_id, record in incoming.items():
                # Records are immutable once written
                if record_id not in existing:
                    session.add(record.clone())
            session.commit()

        logger.debug("saved_history", count=len(incoming))

    def clear(self) -> None:
        with Session(self._engine) as session:
            session.execute(delete(ComparisonRecord))
            session.execute(delete(Item))
            session.commit()
        logger.info("storage_cleared", url=self.db_url)

    def close(self) -> None:
        """Release database connections."""
        self._engine.dispose()
