"""
Drag module: tagged drag events and the session tracker state machine.
"""

from .events import (
    ROOT_DROPPABLE_ID,
    FOLDER_LIST_DROPPABLE_ID,
    container_from_droppable,
    DragUpdate,
    DragEnd,
    Idle,
    Hovering,
)
from .session_tracker import DragSessionTracker, transition, expand_folder

__all__ = [
    "ROOT_DROPPABLE_ID",
    "FOLDER_LIST_DROPPABLE_ID",
    "container_from_droppable",
    "DragUpdate",
    "DragEnd",
    "Idle",
    "Hovering",
    "DragSessionTracker",
    "transition",
    "expand_folder",
]
