"""
Drag session tracker.

Turns drag updates into a hover indicator and auto-expands a closed folder
while an item hovers over it. The expansion only touches the live folder
list; it is never written to the gateway.
"""

import logging
from dataclasses import replace
from typing import Optional, Tuple

from src.ordering.models import BoardState, EntityKind

from .events import (
    FOLDER_LIST_DROPPABLE_ID,
    DragEnd,
    DragEvent,
    DragUpdate,
    Hovering,
    Idle,
    TrackerState,
)

logger = logging.getLogger(__name__)


def transition(
    tracker: TrackerState,
    board: BoardState,
    event: DragEvent,
    folder_list_id: str = FOLDER_LIST_DROPPABLE_ID,
) -> Tuple[TrackerState, BoardState]:
    """Pure state transition.

    Returns:
        Tuple of (next tracker state, board state with any auto-expansion)
    """
    if isinstance(event, DragEnd):
        return Idle(), board

    if not isinstance(event, DragUpdate):
        raise TypeError(f"Unsupported drag event: {event!r}")

    destination = event.destination_container_id
    if (
        event.kind != EntityKind.ITEM
        or destination is None
        or destination == folder_list_id
    ):
        return Idle(), board

    return Hovering(destination), expand_folder(board, destination)


def expand_folder(board: BoardState, folder_id: str) -> BoardState:
    """Open a closed folder in the live state only."""
    folder = board.find_folder(folder_id)
    if folder is None or folder.is_open:
        return board

    logger.debug(f"Auto-expanding folder {folder_id} under drag")
    folders = [
        replace(other, is_open=True) if other.id == folder_id else other
        for other in board.folders
    ]
    return board.with_collection(EntityKind.FOLDER, folders)


class DragSessionTracker:
    """Holds the tracker state between events."""

    def __init__(self, folder_list_id: str = FOLDER_LIST_DROPPABLE_ID):
        self.folder_list_id = folder_list_id
        self.state: TrackerState = Idle()

    @property
    def hovered_container(self) -> Optional[str]:
        if isinstance(self.state, Hovering):
            return self.state.container_id
        return None

    def handle(self, event: DragEvent, board: BoardState) -> BoardState:
        """Advance on ``event`` and return the (possibly expanded) board state."""
        previous = self.state
        self.state, board = transition(previous, board, event, self.folder_list_id)
        if self.state != previous:
            logger.debug(f"Drag tracker {previous} -> {self.state}")
        return board
