"""Tests for item collection helpers."""

from elo_arena.models import Item
from elo_arena.services.library import (
    attach_display_refs,
    create_items,
    missing_display_refs,
    ranked,
)


class TestCreateItems:
    """Tests for create_items."""

    def test_defaults(self, tmp_path):
        items = create_items([tmp_path / "cat.png", "https://example.com/dog.jpg"])

        assert [item.name for item in items] == ["cat.png", "dog.jpg"]
        assert items[0].display_ref == str(tmp_path / "cat.png")
        assert all(item.rating == 1400 for item in items)
        assert all(item.match_count == 0 for item in items)

    def test_unique_ids(self):
        items = create_items(["a.png", "a.png", "b.png"])
        assert len({item.id for item in items}) == 3

    def test_initial_rating(self):
        assert create_items(["a.png"], initial_rating=1500)[0].rating == 1500


class TestAttachDisplayRefs:
    """Tests for re-linking items to files."""

    def test_matches_by_file_name(self, tmp_path):
        items = [
            Item(id="1", name="a.png", display_ref="/old/a.png", rating=1450, match_count=3),
            Item(id="2", name="b.png", display_ref="/old/b.png"),
        ]
        updated = attach_display_refs(items, [tmp_path / "a.png"])

        assert updated[0].display_ref == str(tmp_path / "a.png")
        assert updated[0].rating == 1450
        assert updated[0].match_count == 3
        assert updated[1].display_ref == "/old/b.png"

    def test_does_not_mutate_input(self, tmp_path):
        items = [Item(id="1", name="a.png", display_ref="/old/a.png")]
        attach_display_refs(items, [tmp_path / "a.png"])
        assert items[0].display_ref == "/old/a.png"


class TestMissingDisplayRefs:
    """Tests for the readiness check."""

    def test_reports_unresolved(self, tmp_path):
        present = tmp_path / "a.png"
        present.write_bytes(b"png")
        items = [
            Item(id="1", name="a.png", display_ref=str(present)),
            Item(id="2", name="b.png", display_ref=str(tmp_path / "b.png")),
            Item(id="3", name="c.png"),
        ]
        assert [item.id for item in missing_display_refs(items)] == ["2", "3"]


class TestRanked:
    def test_rating_then_name(self):
        items = [
            Item(id="1", name="b", rating=1400),
            Item(id="2", name="a", rating=1400),
            Item(id="3", name="c", rating=1500),
        ]
        assert [item.id for item in ranked(items)] == ["3", "2", "1"]
