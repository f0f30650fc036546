"""Tests for storage backends."""

import json
from datetime import UTC, datetime

import pytest

from elo_arena.core.config import ArenaConfig, StorageConfig
from elo_arena.core.errors import BackupFormatError
from elo_arena.models import ComparisonRecord, Item
from elo_arena.services.arena import ComparisonSession, create_rng
from elo_arena.services.storage import (
    DBStorage,
    MemoryStorage,
    Storage,
    WriteBehindStorage,
    create_storage,
    read_backup,
    write_backup,
)


def sample_items():
    return [
        Item(id="a", name="a.png", display_ref="/img/a.png", rating=1416, match_count=1),
        Item(id="b", name="b.png", display_ref="/img/b.png", rating=1384, match_count=1),
    ]


def sample_history():
    return [
        ComparisonRecord(
            id="r1",
            sequence=0,
            winner_id="a",
            loser_id="b",
            winner_rating_before=1400,
            loser_rating_before=1400,
            timestamp=datetime(2024, 1, 1, tzinfo=UTC),
        )
    ]


@pytest.fixture
def db_storage(tmp_path):
    storage = DBStorage.from_path(tmp_path / "arena" / "arena.duckdb")
    yield storage
    storage.close()


class TestMemoryStorage:
    """Tests for MemoryStorage."""

    def test_round_trip(self):
        storage = MemoryStorage()
        storage.save_items(sample_items())
        storage.save_history(sample_history())

        assert [item.id for item in storage.load_items()] == ["a", "b"]
        assert [record.id for record in storage.load_history()] == ["r1"]

    def test_returns_copies(self):
        storage = MemoryStorage(sample_items())
        storage.load_items()[0].rating = 0
        assert storage.load_items()[0].rating == 1416

    def test_clear(self):
        storage = MemoryStorage(sample_items(), sample_history())
        storage.clear()
        assert storage.load_items() == []
        assert storage.load_history() == []

    def test_satisfies_protocol(self):
        assert isinstance(MemoryStorage(), Storage)


class TestDBStorage:
    """Tests for SQLModel-backed storage on DuckDB."""

    def test_empty(self, db_storage):
        assert db_storage.load_items() == []
        assert db_storage.load_history() == []

    def test_items_round_trip(self, db_storage):
        db_storage.save_items(sample_items())
        loaded = {item.id: item for item in db_storage.load_items()}

        assert set(loaded) == {"a", "b"}
        assert loaded["a"].rating == 1416
        assert loaded["a"].match_count == 1
        assert loaded["b"].display_ref == "/img/b.png"

    def test_items_updated_and_removed(self, db_storage):
        db_storage.save_items(sample_items())

        updated = sample_items()[:1]
        updated[0].rating = 1430
        updated[0].match_count = 2
        updated.append(Item(id="c", name="c.png", rating=1400))
        db_storage.save_items(updated)

        loaded = {item.id: item for item in db_storage.load_items()}
        assert set(loaded) == {"a", "c"}
        assert loaded["a"].rating == 1430
        assert loaded["a"].match_count == 2

    def test_history_ordered_and_popped(self, db_storage):
        history = sample_history()
        history.append(ComparisonRecord(id="r2", sequence=1, winner_id="b", loser_id="a"))
        db_storage.save_history(history)
        assert [r.id for r in db_storage.load_history()] == ["r1", "r2"]

        db_storage.save_history(history[:1])
        loaded = db_storage.load_history()
        assert [r.id for r in loaded] == ["r1"]
        assert loaded[0].winner_rating_before == 1400

    def test_fractional_ratings_exact(self, db_storage):
        """Test ratings are stored at double precision."""
        db_storage.save_items([Item(id="a", name="a", rating=1400.3)])
        db_storage.save_history(
            [
                ComparisonRecord(
                    id="r1",
                    winner_id="a",
                    loser_id="b",
                    winner_rating_before=1387.65,
                    loser_rating_before=1412.35,
                )
            ]
        )

        assert db_storage.load_items()[0].rating == 1400.3
        record = db_storage.load_history()[0]
        assert record.winner_rating_before == 1387.65
        assert record.loser_rating_before == 1412.35

    def test_clear(self, db_storage):
        db_storage.save_items(sample_items())
        db_storage.save_history(sample_history())
        db_storage.clear()
        assert db_storage.load_items() == []
        assert db_storage.load_history() == []

    def test_persists_across_connections(self, tmp_path):
        path = tmp_path / "arena.duckdb"
        first = DBStorage.from_path(path)
        first.save_items(sample_items())
        first.close()

        second = DBStorage.from_path(path)
        assert len(second.load_items()) == 2
        second.close()

    def test_session_resumes(self, db_storage):
        """Test a session's decisions are visible to a new session."""
        session = ComparisonSession(
            db_storage,
            [Item(id="a", name="a"), Item(id="b", name="b")],
            rng=create_rng(1),
        )
        session.decide("a", "b")

        resumed = ComparisonSession.from_storage(db_storage)
        assert {item.id: item.rating for item in resumed.items} == {"a": 1416, "b": 1384}
        assert resumed.total_comparisons == 1
        resumed.undo()
        assert db_storage.load_history() == []


class TestWriteBehindStorage:
    """Tests for deferred, ordered writes."""

    def test_writes_deferred_until_flush(self):
        inner = MemoryStorage()
        storage = WriteBehindStorage(inner)
        storage.save_items(sample_items())
        storage.save_history(sample_history())

        assert inner.save_count == 0
        assert storage.pending_count == 2

        storage.flush()
        assert inner.save_count == 2
        assert storage.pending_count == 0
        assert len(inner.load_items()) == 2

    def test_coalesces_to_latest_snapshot(self):
        inner = MemoryStorage()
        storage = WriteBehindStorage(inner)
        storage.save_items(sample_items())
        storage.save_items(sample_items()[:1])
        storage.flush()

        assert inner.save_count == 1
        assert [item.id for item in inner.load_items()] == ["a"]

    def test_snapshot_taken_at_save_time(self):
        inner = MemoryStorage()
        storage = WriteBehindStorage(inner)
        items = sample_items()
        storage.save_items(items)
        items[0].rating = 0
        storage.flush()
        assert inner.load_items()[0].rating == 1416

    def test_flush_order(self):
        order = []

        class OrderedStorage(MemoryStorage):
            def save_items(self, items):
                order.append("items")

            def save_history(self, history):
                order.append("history")

        storage = WriteBehindStorage(OrderedStorage())
        storage.save_history(sample_history())
        storage.save_items(sample_items())
        storage.save_history(sample_history())
        storage.flush()
        assert order == ["history", "items"]

    def test_autoflush(self):
        inner = MemoryStorage()
        storage = WriteBehindStorage(inner, autoflush_after=2)
        storage.save_items(sample_items())
        assert inner.save_count == 0
        storage.save_history(sample_history())
        assert inner.save_count == 2

    def test_failed_flush_keeps_pending(self):
        class BrokenHistory(MemoryStorage):
            def save_history(self, history):
                raise OSError("locked")

        inner = BrokenHistory()
        storage = WriteBehindStorage(inner)
        storage.save_items(sample_items())
        storage.save_history(sample_history())

        with pytest.raises(OSError, match="locked"):
            storage.flush()
        assert storage.pending_count == 1
        assert len(inner.load_items()) == 2

    def test_clear_discards_pending(self):
        inner = MemoryStorage(sample_items())
        storage = WriteBehindStorage(inner)
        storage.save_items(sample_items())
        storage.clear()
        storage.flush()

        assert storage.pending_count == 0
        assert inner.load_items() == []

    def test_load_flushes_first(self):
        storage = WriteBehindStorage(MemoryStorage())
        storage.save_items(sample_items())
        assert len(storage.load_items()) == 2


class TestCreateStorage:
    """Tests for the storage factory."""

    def test_memory(self):
        config = ArenaConfig(storage=StorageConfig(backend="memory"))
        assert isinstance(create_storage(config), MemoryStorage)

    def test_duckdb(self, tmp_path):
        config = ArenaConfig(storage=StorageConfig(db_path=str(tmp_path / "a.duckdb")))
        storage = create_storage(config)
        assert isinstance(storage, DBStorage)
        storage.close()


class TestBackup:
    """Tests for JSON backups."""

    def test_round_trip(self, tmp_path):
        path = write_backup(tmp_path / "backups" / "arena.json", sample_items(), sample_history())
        items, history = read_backup(path)

        assert [(i.id, i.rating, i.match_count, i.display_ref) for i in items] == [
            ("a", 1416, 1, "/img/a.png"),
            ("b", 1384, 1, "/img/b.png"),
        ]
        assert history[0].id == "r1"
        assert history[0].winner_rating_before == 1400
        assert history[0].timestamp == datetime(2024, 1, 1, tzinfo=UTC)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_backup(tmp_path / "missing.json")

    def test_not_json(self, tmp_path):
        path = tmp_path / "arena.json"
        path.write_text("not json")
        with pytest.raises(BackupFormatError, match="not valid JSON"):
            read_backup(path)

    def test_wrong_version(self, tmp_path):
        path = tmp_path / "arena.json"
        path.write_text(json.dumps({"version": 99, "items": [], "comparisons": []}))
        with pytest.raises(BackupFormatError, match="unsupported version"):
            read_backup(path)

    def test_invalid_item(self, tmp_path):
        path = tmp_path / "arena.json"
        data = {"version": 1, "items": [{"id": "a", "match_count": -1}], "comparisons": []}
        path.write_text(json.dumps(data))
        with pytest.raises(BackupFormatError):
            read_backup(path)
