"""
Move resolution for items and folders.

A move request carries an explicit kind tag. Resolution is pure: it takes a
BoardState and returns the new BoardState, or None when the move would not
change anything.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional, Union

from .collection import reindex, siblings, sort_by_order
from .errors import ValidationError
from .models import BoardState, EntityKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FolderMove:
    """Move a folder within the single flat folder list."""

    source_index: int
    destination_index: int
    kind: EntityKind = EntityKind.FOLDER


@dataclass(frozen=True)
class ItemMove:
    """Move an item to a position in a container (None is root)."""

    entity_id: str
    source_container_id: Optional[str]
    destination_container_id: Optional[str]
    destination_index: int
    kind: EntityKind = EntityKind.ITEM


MoveRequest = Union[FolderMove, ItemMove]


def resolve_move(state: BoardState, request: MoveRequest) -> Optional[BoardState]:
    """Route a move request on its kind tag."""
    if request.kind == EntityKind.FOLDER:
        return resolve_folder_move(state, request)
    if request.kind == EntityKind.ITEM:
        return resolve_item_move(state, request)
    raise ValidationError(f"Unknown move kind: {request.kind}")


def resolve_folder_move(state: BoardState, request: FolderMove) -> Optional[BoardState]:
    """Reorder the folder list.

    Returns:
        The new state, or None if the (clamped) destination is the source index
    """
    if request.source_index == request.destination_index:
        logger.debug("Folder move to its own index ignored")
        return None

    folders = sort_by_order(state.folders)
    if not 0 <= request.source_index < len(folders):
        raise ValidationError(
            f"Folder source index {request.source_index} out of range (0..{len(folders) - 1})"
        )
    if request.destination_index < 0:
        raise ValidationError(
            f"Folder destination index must be >= 0, got {request.destination_index}"
        )

    destination = min(request.destination_index, len(folders) - 1)
    if destination == request.source_index:
        logger.debug("Folder move clamps back onto its own index; ignored")
        return None

    moved = folders.pop(request.source_index)
    folders.insert(destination, moved)

    logger.debug(
        f"Folder {moved.id} moved from {request.source_index} to {destination}"
    )
    return state.with_collection(EntityKind.FOLDER, reindex(folders))


def resolve_item_move(state: BoardState, request: ItemMove) -> Optional[BoardState]:
    """Move an item within its container or into another one.

    Only the source and destination sibling sets are reindexed; items in any
    other container are carried over untouched.

    Returns:
        The new state, or None if the item would land where it already is
    """
    moved = state.find_item(request.entity_id)
    if moved is None:
        raise ValidationError(f"Unknown item: {request.entity_id}")
    if request.destination_index < 0:
        raise ValidationError(
            f"Item destination index must be >= 0, got {request.destination_index}"
        )

    destination_id = request.destination_container_id
    if destination_id is not None and state.find_folder(destination_id) is None:
        raise ValidationError(f"Destination folder does not exist: {destination_id}")

    source_id = moved.container_id
    if request.source_container_id != source_id:
        logger.warning(
            f"Move of {moved.id} reported source {request.source_container_id!r} "
            f"but item lives in {source_id!r}; using the item's container"
        )

    remaining = [item for item in state.items if item.id != moved.id]
    destination_siblings = siblings(remaining, destination_id)
    destination_index = min(request.destination_index, len(destination_siblings))

    if source_id == destination_id:
        current_index = [item.id for item in siblings(state.items, source_id)].index(
            moved.id
        )
        if current_index == destination_index:
            logger.debug(f"Item {moved.id} already at index {current_index}")
            return None

    destination_siblings.insert(
        destination_index, replace(moved, container_id=destination_id)
    )
    new_destination = reindex(destination_siblings)

    new_source = []
    if source_id != destination_id:
        new_source = reindex(siblings(remaining, source_id))

    untouched = [
        item
        for item in remaining
        if item.container_id != source_id and item.container_id != destination_id
    ]

    logger.debug(
        f"Item {moved.id} moved from {source_id!r} to {destination_id!r} "
        f"at index {destination_index}"
    )
    return state.with_collection(
        EntityKind.ITEM, untouched + new_source + new_destination
    )
