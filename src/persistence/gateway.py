"""
Persistence gateway contract: bulk reader plus atomic multi-entity batch writer.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional, Sequence

from src.ordering.models import EntityKind

logger = logging.getLogger(__name__)

COLLECTION_NAMES = {
    EntityKind.ITEM: "items",
    EntityKind.FOLDER: "folders",
}


class OpType(Enum):
    """Kinds of batch operations."""

    UPSERT = "upsert"
    DELETE = "delete"


@dataclass(frozen=True)
class BatchOperation:
    """A single write inside an atomic batch.

    For upserts, ``fields`` holds only the persisted fields to set; they are
    merged into an existing document or form a new one.
    """

    op: OpType
    kind: EntityKind
    id: str
    fields: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "op": self.op.value,
            "kind": self.kind.value,
            "id": self.id,
            "fields": dict(self.fields),
        }


@dataclass(frozen=True)
class BatchResult:
    """Outcome of an atomic batch. Gateways report rejection here, never by raising."""

    success: bool
    error: Optional[str] = None
    applied: int = 0

    @classmethod
    def ok(cls, applied: int) -> "BatchResult":
        return cls(success=True, applied=applied)

    @classmethod
    def failed(cls, error: str) -> "BatchResult":
        return cls(success=False, error=error)


class PersistenceGateway(ABC):
    """Storage backend seen by the mutation coordinator."""

    @abstractmethod
    async def read_all(self, kind: EntityKind) -> List[Dict[str, Any]]:
        """Return every stored document of ``kind`` in no particular order.

        Raises:
            LoadFailure: if the backend cannot be read
        """

    @abstractmethod
    async def atomic_batch(self, operations: Sequence[BatchOperation]) -> BatchResult:
        """Apply all operations or none of them."""


def merge_document(
    existing: Optional[Dict[str, Any]], operation: BatchOperation
) -> Dict[str, Any]:
    """Merge an upsert's fields into a stored document (set-with-merge semantics)."""
    document = dict(existing or {})
    document.update(operation.fields)
    document["id"] = operation.id
    return document
