"""
Drag events and tracker states.
"""

from dataclasses import dataclass
from typing import Optional, Union

from src.ordering.models import EntityKind

# Droppable ids reported by the drag provider for the two top-level lists
ROOT_DROPPABLE_ID = "main"
FOLDER_LIST_DROPPABLE_ID = "folders"


def container_from_droppable(
    droppable_id: Optional[str], root_droppable_id: str = ROOT_DROPPABLE_ID
) -> Optional[str]:
    """Translate a droppable id to a container id (None is root)."""
    if droppable_id is None or droppable_id == root_droppable_id:
        return None
    return droppable_id


@dataclass(frozen=True)
class DragUpdate:
    """The pointer moved over a new destination while dragging."""

    moving_id: str
    destination_container_id: Optional[str]
    kind: EntityKind


@dataclass(frozen=True)
class DragEnd:
    """The gesture finished. ``cancelled`` means there is no valid drop."""

    moving_id: str
    source_container_id: Optional[str]
    destination_container_id: Optional[str]
    source_index: int
    destination_index: Optional[int]
    kind: EntityKind
    cancelled: bool = False


DragEvent = Union[DragUpdate, DragEnd]


@dataclass(frozen=True)
class Idle:
    """No folder is being hovered."""


@dataclass(frozen=True)
class Hovering:
    """An item is being dragged over a folder's drop region."""

    container_id: str


TrackerState = Union[Idle, Hovering]
