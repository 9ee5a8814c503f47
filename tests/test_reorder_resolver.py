"""
Unit tests for move resolution.
"""

import pytest

from src.ordering.collection import is_dense, siblings, sort_by_order
from src.ordering.errors import ValidationError
from src.ordering.models import BoardState, EntityKind, Folder, Item
from src.ordering.resolver import (
    FolderMove,
    ItemMove,
    resolve_folder_move,
    resolve_item_move,
    resolve_move,
)


def layout(state, container_id):
    """Return [(id, order), ...] of a container in display order."""
    return [(item.id, item.order) for item in siblings(state.items, container_id)]


class TestFolderMove:
    """Test reordering of the folder list."""

    def setup_method(self):
        self.state = BoardState(
            items=(Item("i", "I", container_id="f2", order=0),),
            folders=(
                Folder("f1", "One", order=0),
                Folder("f2", "Two", order=1),
                Folder("f3", "Three", order=2),
            ),
        )

    def test_same_index_is_noop(self):
        assert resolve_folder_move(self.state, FolderMove(1, 1)) is None

    def test_move_down(self):
        result = resolve_folder_move(self.state, FolderMove(0, 2))

        folders = sort_by_order(result.folders)
        assert [(f.id, f.order) for f in folders] == [("f2", 0), ("f3", 1), ("f1", 2)]

    def test_move_up(self):
        result = resolve_folder_move(self.state, FolderMove(2, 0))

        folders = sort_by_order(result.folders)
        assert [f.id for f in folders] == ["f3", "f1", "f2"]
        assert is_dense(folders)

    def test_items_untouched(self):
        result = resolve_folder_move(self.state, FolderMove(0, 1))
        assert result.items == self.state.items

    def test_destination_clamps(self):
        result = resolve_folder_move(self.state, FolderMove(0, 99))
        assert [f.id for f in sort_by_order(result.folders)] == ["f2", "f3", "f1"]

    def test_clamped_destination_on_source_is_noop(self):
        """The last folder dropped past the end stays where it is."""
        assert resolve_folder_move(self.state, FolderMove(2, 10)) is None

    def test_source_out_of_range(self):
        with pytest.raises(ValidationError):
            resolve_folder_move(self.state, FolderMove(3, 0))


class TestItemMove:
    """Test moving items within and across containers."""

    def setup_method(self):
        self.state = BoardState(
            items=(
                Item("a", "A", order=0),
                Item("b", "B", order=1),
                Item("c", "C", order=2),
                Item("x", "X", container_id="F", order=0),
                Item("y", "Y", container_id="F", order=1),
                Item("z", "Z", container_id="G", order=0),
            ),
            folders=(Folder("F", "F", order=0), Folder("G", "G", order=1)),
        )

    def test_reorder_within_root(self):
        """Root [a, b, c]; moving b to index 0 gives [b, a, c]."""
        result = resolve_item_move(self.state, ItemMove("b", None, None, 0))

        assert layout(result, None) == [("b", 0), ("a", 1), ("c", 2)]

    def test_move_folder_item_to_root(self):
        """F [x, y], root [a, b, c]; moving x to root index 0."""
        result = resolve_item_move(self.state, ItemMove("x", "F", None, 0))

        assert layout(result, "F") == [("y", 0)]
        assert layout(result, None) == [("x", 0), ("a", 1), ("b", 2), ("c", 3)]
        assert result.find_item("x").container_id is None

    def test_other_containers_untouched(self):
        result = resolve_item_move(self.state, ItemMove("a", None, "F", 1))

        assert result.find_item("z") == self.state.find_item("z")
        assert layout(result, "F") == [("x", 0), ("a", 1), ("y", 2)]
        assert layout(result, None) == [("b", 0), ("c", 1)]

    def test_same_position_is_noop(self):
        assert resolve_item_move(self.state, ItemMove("b", None, None, 1)) is None

    def test_clamped_same_position_is_noop(self):
        """Index past the end of its own container lands where c already is."""
        assert resolve_item_move(self.state, ItemMove("c", None, None, 10)) is None

    def test_index_beyond_length_appends(self):
        result = resolve_item_move(self.state, ItemMove("a", None, "G", 50))
        assert layout(result, "G") == [("z", 0), ("a", 1)]

    def test_move_into_empty_folder(self):
        state = BoardState(
            items=self.state.items,
            folders=self.state.folders + (Folder("E", "Empty", order=2),),
        )
        result = resolve_item_move(state, ItemMove("y", "F", "E", 0))

        assert layout(result, "E") == [("y", 0)]
        assert layout(result, "F") == [("x", 0)]

    def test_every_sibling_set_stays_dense(self):
        result = resolve_item_move(self.state, ItemMove("c", None, "F", 0))

        for container_id in (None, "F", "G"):
            assert is_dense(siblings(result.items, container_id))
        assert len(result.items) == len(self.state.items)

    def test_actual_container_wins_over_reported_source(self):
        """A wrong source container must not leave a gap behind."""
        result = resolve_item_move(self.state, ItemMove("x", None, "G", 0))

        assert layout(result, "F") == [("y", 0)]
        assert layout(result, "G") == [("x", 0), ("z", 1)]

    def test_unknown_item(self):
        with pytest.raises(ValidationError):
            resolve_item_move(self.state, ItemMove("nope", None, None, 0))

    def test_unknown_destination_folder(self):
        with pytest.raises(ValidationError):
            resolve_item_move(self.state, ItemMove("a", None, "missing", 0))

    def test_negative_index(self):
        with pytest.raises(ValidationError):
            resolve_item_move(self.state, ItemMove("a", None, None, -1))

    def test_input_state_unchanged(self):
        before = self.state
        resolve_item_move(self.state, ItemMove("a", None, "F", 0))
        assert self.state is before
        assert layout(self.state, None) == [("a", 0), ("b", 1), ("c", 2)]


class TestResolveMove:
    """Test routing on the kind tag."""

    def test_routes_on_kind(self):
        state = BoardState(
            items=(Item("a", "A", order=0), Item("b", "B", order=1)),
            folders=(Folder("f1", "1", order=0), Folder("f2", "2", order=1)),
        )

        item_result = resolve_move(state, ItemMove("b", None, None, 0))
        folder_result = resolve_move(state, FolderMove(1, 0))

        assert item_result.folders == state.folders
        assert folder_result.items == state.items
        assert FolderMove(0, 1).kind == EntityKind.FOLDER
        assert ItemMove("a", None, None, 0).kind == EntityKind.ITEM
