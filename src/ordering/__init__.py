"""
Ordering module: data model, dense reindexing and move resolution.
"""

from .models import EntityKind, Item, Folder, BoardState
from .errors import OrganizerError, ValidationError, PersistenceFailure, LoadFailure
from .collection import reindex, sort_by_order, siblings, next_order, is_dense
from .resolver import FolderMove, ItemMove, resolve_move, resolve_folder_move, resolve_item_move

__all__ = [
    "EntityKind",
    "Item",
    "Folder",
    "BoardState",
    "OrganizerError",
    "ValidationError",
    "PersistenceFailure",
    "LoadFailure",
    "reindex",
    "sort_by_order",
    "siblings",
    "next_order",
    "is_dense",
    "FolderMove",
    "ItemMove",
    "resolve_move",
    "resolve_folder_move",
    "resolve_item_move",
]
