"""Tests for IndexedCollection."""

import typing as _typing

import strata.collections as collections


def _names(coll: _typing.Iterable[dict[str, str]]) -> list[str]:
    return [item["name"] for item in coll]


def _make(*names: str) -> collections.IndexedCollection[dict[str, str]]:
    return collections.IndexedCollection.from_iterable([{"name": name} for name in names])


class TestInsertion:
    """Positional add()."""

    def test_insert_at_index(self) -> None:
        """Items are inserted before the item at index."""
        coll = _make("a", "c")
        assert coll.add({"name": "b"}, 1) == 1
        assert _names(coll) == ["a", "b", "c"]

    def test_index_past_end_appends(self) -> None:
        """Out of range indices append."""
        coll = _make("a")
        assert coll.add({"name": "b"}, 10) == 1
        assert _names(coll) == ["a", "b"]

    def test_negative_index_inserts_at_front(self) -> None:
        """Negative indices are clamped to the front."""
        coll = _make("a", "b")
        assert coll.add({"name": "z"}, -3) == 0
        assert _names(coll) == ["z", "a", "b"]

    def test_duplicate_rejected(self) -> None:
        """Uniqueness still applies."""
        coll = _make("a")
        assert coll.add({"name": "a"}, 0) is None
        assert len(coll) == 1


class TestLookup:
    """Index lookups."""

    def test_get(self) -> None:
        """get() returns None outside the bounds."""
        coll = _make("a", "b")
        assert coll.get(1)["name"] == "b"  # type: ignore[index]
        assert coll.get(2) is None
        assert coll.get(-1) is None

    def test_index_of(self) -> None:
        """index_of() and index_of_key() return None for non-members."""
        coll = _make("a", "b")
        item = coll.get(1)

        assert coll.index_of(item) == 1
        assert coll.index_of({"name": "b"}) is None
        assert coll.index_of_key("b") == 1
        assert coll.index_of_key("x") is None


class TestReordering:
    """raise_item(), lower_item() and move_to()."""

    def test_raise_moves_towards_end(self) -> None:
        """Raising swaps with the next item and fires moved."""
        coll = _make("a", "b", "c")
        moved: list[object] = []
        coll.moved.add_listener(moved.append)
        item = coll.get(0)

        assert coll.raise_item(item) == 1  # type: ignore[arg-type]
        assert _names(coll) == ["b", "a", "c"]
        assert moved == [item]

    def test_lower_moves_towards_front(self) -> None:
        """Lowering by two steps."""
        coll = _make("a", "b", "c")
        item = coll.get(2)

        assert coll.lower_item(item, 2) == 0  # type: ignore[arg-type]
        assert _names(coll) == ["c", "a", "b"]

    def test_raise_top_item_is_clamped(self) -> None:
        """Raising the top item stays put and fires nothing."""
        coll = _make("a", "b")
        moved: list[object] = []
        coll.moved.add_listener(moved.append)
        item = coll.get(1)

        assert coll.raise_item(item, 5) == 1  # type: ignore[arg-type]
        assert moved == []
        assert _names(coll) == ["a", "b"]

    def test_lower_bottom_item_is_clamped(self) -> None:
        """Lowering the bottom item stays put."""
        coll = _make("a", "b")
        assert coll.lower_item(coll.get(0)) == 0  # type: ignore[arg-type]

    def test_negative_steps_invert_direction(self) -> None:
        """raise_item with negative steps lowers."""
        coll = _make("a", "b", "c")
        coll.raise_item(coll.get(2), -1)  # type: ignore[arg-type]
        assert _names(coll) == ["a", "c", "b"]

    def test_move_to(self) -> None:
        """move_to() clamps the target index."""
        coll = _make("a", "b", "c")
        item = coll.get(0)

        assert coll.move_to(item, 99) == 2  # type: ignore[arg-type]
        assert _names(coll) == ["b", "c", "a"]

    def test_non_member_returns_none(self) -> None:
        """Reordering an unknown item does nothing."""
        coll = _make("a")
        assert coll.raise_item({"name": "a"}) is None
        assert coll.move_to({"name": "a"}, 0) is None


class TestPreviousIndex:
    """previous_index() during removal."""

    def test_available_during_removed_dispatch(self) -> None:
        """Listeners of removed can read the old index."""
        coll = _make("a", "b", "c")
        item = coll.get(1)
        seen: list[int | None] = []
        coll.removed.add_listener(lambda removed: seen.append(coll.previous_index(removed)))

        coll.remove(item)  # type: ignore[arg-type]

        assert seen == [1]
        assert coll.previous_index(item) is None

    def test_destroy_also_destroys_moved(self) -> None:
        """destroy() disables the moved event."""
        coll = _make("a")
        coll.destroy()
        assert coll.moved.destroyed
