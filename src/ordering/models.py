"""
Data model for items, folders and the board state that holds them.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Any, Optional, Tuple

logger = logging.getLogger(__name__)


class EntityKind(Enum):
    """Kinds of orderable entities."""

    ITEM = "ITEM"
    FOLDER = "FOLDER"


@dataclass(frozen=True)
class Item:
    """An orderable item, living at the root or inside one folder."""

    id: str
    title: str
    icon: str = "file"
    container_id: Optional[str] = None  # None means root
    order: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted field layout."""
        return {
            "id": self.id,
            "title": self.title,
            "icon": self.icon,
            "containerId": self.container_id,
            "order": self.order,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Item":
        # Older documents stored the container under "folderId"
        container_id = data.get("containerId", data.get("folderId"))
        return Item(
            id=data["id"],
            title=data.get("title", ""),
            icon=data.get("icon", "file"),
            container_id=container_id,
            order=int(data.get("order") or 0),
        )


@dataclass(frozen=True)
class Folder:
    """A user-orderable folder. Folders never nest."""

    id: str
    name: str
    is_open: bool = False
    order: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted field layout."""
        return {
            "id": self.id,
            "name": self.name,
            "isOpen": self.is_open,
            "order": self.order,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Folder":
        return Folder(
            id=data["id"],
            name=data.get("name", ""),
            is_open=bool(data.get("isOpen", False)),
            order=int(data.get("order") or 0),
        )


ENTITY_TYPES = {EntityKind.ITEM: Item, EntityKind.FOLDER: Folder}


@dataclass(frozen=True)
class BoardState:
    """Immutable snapshot of both collections.

    Every operation receives a BoardState and returns a new one, so taking a
    snapshot is keeping a reference and reverting is assigning it back.
    """

    items: Tuple[Item, ...] = field(default_factory=tuple)
    folders: Tuple[Folder, ...] = field(default_factory=tuple)

    def collection(self, kind: EntityKind) -> Tuple[Any, ...]:
        """Return the collection holding entities of ``kind``."""
        if kind == EntityKind.ITEM:
            return self.items
        return self.folders

    def with_collection(self, kind: EntityKind, entities) -> "BoardState":
        """Return a copy of this state with one collection replaced."""
        if kind == EntityKind.ITEM:
            return replace(self, items=tuple(entities))
        return replace(self, folders=tuple(entities))

    def find_item(self, item_id: str) -> Optional[Item]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def find_folder(self, folder_id: str) -> Optional[Folder]:
        for folder in self.folders:
            if folder.id == folder_id:
                return folder
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self.items],
            "folders": [folder.to_dict() for folder in self.folders],
        }
