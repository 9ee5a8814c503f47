"""
Public operations on items and folders.

Board wires the pure resolver to the MutationCoordinator. Moves, removals
and open/close toggles are applied locally first and rolled back if the
write fails; inserts are written first and only then shown.
"""

import logging
import uuid
from collections import Counter, defaultdict
from dataclasses import replace
from typing import Callable, List, Optional

from src.ordering.collection import (
    is_dense,
    next_order,
    reindex,
    siblings,
    sort_by_order,
)
from src.ordering.errors import LoadFailure, PersistenceFailure, ValidationError
from src.ordering.models import ENTITY_TYPES, BoardState, EntityKind, Folder, Item
from src.ordering.resolver import FolderMove, ItemMove, MoveRequest, resolve_move
from src.persistence.gateway import BatchOperation, OpType, PersistenceGateway
from src.utils.error_handler import ErrorHandler

from .coordinator import MutationCoordinator

logger = logging.getLogger(__name__)


def new_id() -> str:
    return uuid.uuid4().hex


class Board:
    """Items, folders and every operation that changes them."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        state: Optional[BoardState] = None,
        error_handler: Optional[ErrorHandler] = None,
        default_icon: str = "file",
        on_failure: Optional[Callable[[PersistenceFailure], None]] = None,
    ):
        """
        Initialize the board.

        Args:
            gateway: Persistence backend
            state: Initial state, normally filled by load()
            error_handler: Shared error recorder
            default_icon: Icon tag given to new items
            on_failure: Called for every background write that was reverted
        """
        self.gateway = gateway
        self.error_handler = error_handler or ErrorHandler()
        self.default_icon = default_icon
        # Folder id -> inserts still waiting on the gateway
        self._pending_inserts: Counter = Counter()
        self.coordinator = MutationCoordinator(
            gateway,
            state=state,
            error_handler=self.error_handler,
            on_failure=on_failure,
        )

    @property
    def state(self) -> BoardState:
        return self.coordinator.state

    def sorted_items(self, container_id: Optional[str] = None) -> List[Item]:
        """Items of one container (None is root) in display order."""
        return siblings(self.state.items, container_id)

    def sorted_folders(self) -> List[Folder]:
        return sort_by_order(self.state.folders)

    async def drain(self) -> List[PersistenceFailure]:
        """Wait for background writes; see MutationCoordinator.drain."""
        return await self.coordinator.drain()

    # Loading

    async def load(self) -> BoardState:
        """
        Read both collections from the gateway.

        A collection that cannot be read is left empty; the other one still
        loads. The stored orders become the live state first; sibling sets
        that are not dense are then reindexed through the coordinator, so the
        repaired orders are written back as one batch before load returns. If
        that write fails the live state falls back to the stored orders.
        """
        folders = await self._load_collection(EntityKind.FOLDER)
        items = await self._load_collection(EntityKind.ITEM)

        folder_ids = {folder.id for folder in folders}
        orphans = [
            item.id
            for item in items
            if item.container_id is not None and item.container_id not in folder_ids
        ]
        if orphans:
            logger.warning(f"Items reference missing folders: {orphans}")

        stored = BoardState(items=tuple(items), folders=tuple(folders))
        self.coordinator.replace_state(stored)
        logger.info(f"Loaded {len(items)} items and {len(folders)} folders")

        normalized = stored
        kinds = []
        if not is_dense(folders):
            logger.warning("Reindexing non-dense folder list")
            normalized = normalized.with_collection(EntityKind.FOLDER, reindex(folders))
            kinds.append(EntityKind.FOLDER)
        normalized_items = self._normalize_items(items)
        if set(normalized_items) != set(items):
            normalized = normalized.with_collection(EntityKind.ITEM, normalized_items)
            kinds.append(EntityKind.ITEM)

        if kinds:
            self.coordinator.apply("normalize orders", normalized, kinds)
            await self.coordinator.drain()
        return self.state

    async def _load_collection(self, kind: EntityKind) -> list:
        entity_type = ENTITY_TYPES[kind]
        try:
            documents = await self.gateway.read_all(kind)
            entities = [entity_type.from_dict(doc) for doc in documents]
        except LoadFailure as e:
            self.error_handler.handle_error(e, f"load {kind.value}")
            return []
        except (KeyError, TypeError, ValueError) as e:
            failure = LoadFailure(kind.value, f"Malformed document: {e}")
            self.error_handler.handle_error(failure, f"load {kind.value}")
            return []

        return sort_by_order(entities)

    def _normalize_items(self, items: List[Item]) -> List[Item]:
        groups = defaultdict(list)
        for item in items:
            groups[item.container_id].append(item)

        normalized = []
        for container_id, group in groups.items():
            if not is_dense(group):
                logger.warning(f"Reindexing non-dense container {container_id!r}")
                group = reindex(group)
            normalized.extend(group)
        return normalized

    # Moves

    def move(self, request: MoveRequest) -> BoardState:
        """Resolve and apply a tagged move request."""
        label = f"move {request.kind.value.lower()}"
        try:
            new_state = resolve_move(self.state, request)
        except ValidationError as e:
            self.error_handler.handle_error(e, label)
            raise

        if new_state is None:
            return self.state
        return self.coordinator.apply(label, new_state, [request.kind])

    def move_item(
        self,
        item_id: str,
        source_container_id: Optional[str],
        destination_container_id: Optional[str],
        destination_index: int,
    ) -> BoardState:
        return self.move(
            ItemMove(
                entity_id=item_id,
                source_container_id=source_container_id,
                destination_container_id=destination_container_id,
                destination_index=destination_index,
            )
        )

    def move_folder(self, source_index: int, destination_index: int) -> BoardState:
        return self.move(FolderMove(source_index, destination_index))

    # Creation

    async def insert_item(
        self,
        title: str,
        container_id: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> BoardState:
        """
        Create an item at the end of a container.

        Raises:
            ValidationError: blank title or unknown folder
            PersistenceFailure: the write was rejected; nothing changed locally
        """
        if not title or not title.strip():
            self._reject("insert item", "Item title must not be blank")
        if container_id is not None and self.state.find_folder(container_id) is None:
            self._reject("insert item", f"Folder does not exist: {container_id}")

        item = Item(
            id=new_id(),
            title=title,
            icon=icon or self.default_icon,
            container_id=container_id,
            order=next_order(siblings(self.state.items, container_id)),
        )
        self._pending_inserts[container_id] += 1
        try:
            await self.coordinator.commit(
                "insert item",
                [BatchOperation(OpType.UPSERT, EntityKind.ITEM, item.id, item.to_dict())],
            )
        finally:
            self._pending_inserts[container_id] -= 1
            if not self._pending_inserts[container_id]:
                del self._pending_inserts[container_id]

        # Read the live state after the write; other operations may have landed
        self.coordinator.replace_state(
            self.state.with_collection(EntityKind.ITEM, self.state.items + (item,))
        )
        logger.info(f"Inserted item {item.id} into {container_id!r}")
        return self.state

    async def insert_folder(self, name: str) -> BoardState:
        """
        Create a closed folder at the end of the folder list.

        Raises:
            ValidationError: blank name
            PersistenceFailure: the write was rejected; nothing changed locally
        """
        if not name or not name.strip():
            self._reject("insert folder", "Folder name must not be blank")

        folder = Folder(
            id=new_id(),
            name=name,
            is_open=False,
            order=next_order(self.state.folders),
        )
        await self.coordinator.commit(
            "insert folder",
            [
                BatchOperation(
                    OpType.UPSERT, EntityKind.FOLDER, folder.id, folder.to_dict()
                )
            ],
        )

        self.coordinator.replace_state(
            self.state.with_collection(
                EntityKind.FOLDER, self.state.folders + (folder,)
            )
        )
        logger.info(f"Inserted folder {folder.id}")
        return self.state

    # Removal

    def remove_item(self, item_id: str) -> BoardState:
        """Delete an item and close the gap among its former siblings."""
        item = self.state.find_item(item_id)
        if item is None:
            self._reject("remove item", f"Unknown item: {item_id}")

        remaining = [other for other in self.state.items if other.id != item_id]
        others = [other for other in remaining if other.container_id != item.container_id]
        reordered = reindex(siblings(remaining, item.container_id))

        new_state = self.state.with_collection(EntityKind.ITEM, others + reordered)
        return self.coordinator.apply("remove item", new_state, [EntityKind.ITEM])

    def remove_folder(self, folder_id: str) -> BoardState:
        """Delete an empty folder and close the gap in the folder list.

        Raises:
            ValidationError: the folder is unknown, still holds items, or is
                the target of an insert that has not finished
        """
        if self.state.find_folder(folder_id) is None:
            self._reject("remove folder", f"Unknown folder: {folder_id}")

        owned = [item.id for item in self.state.items if item.container_id == folder_id]
        if owned:
            self._reject(
                "remove folder",
                f"Folder {folder_id} still holds {len(owned)} item(s); "
                "move or delete them first",
            )
        if self._pending_inserts[folder_id]:
            self._reject(
                "remove folder",
                f"Folder {folder_id} has an item insert in flight",
            )

        reordered = reindex(
            folder for folder in self.sorted_folders() if folder.id != folder_id
        )
        new_state = self.state.with_collection(EntityKind.FOLDER, reordered)
        return self.coordinator.apply("remove folder", new_state, [EntityKind.FOLDER])

    # Open/close

    def toggle_folder_open(self, folder_id: str) -> BoardState:
        """Flip a folder's open flag and persist it."""
        folder = self.state.find_folder(folder_id)
        if folder is None:
            self._reject("toggle folder", f"Unknown folder: {folder_id}")

        folders = [
            replace(other, is_open=not other.is_open) if other.id == folder_id else other
            for other in self.state.folders
        ]
        new_state = self.state.with_collection(EntityKind.FOLDER, folders)
        return self.coordinator.apply("toggle folder", new_state, [EntityKind.FOLDER])

    def _reject(self, context: str, message: str):
        error = ValidationError(message)
        self.error_handler.handle_error(error, context)
        raise error
