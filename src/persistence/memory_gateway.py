"""
In-memory persistence gateway with failure injection.
"""

import asyncio
import logging
from copy import deepcopy
from typing import Dict, Any, List, Optional, Sequence, Set

from src.ordering.errors import LoadFailure
from src.ordering.models import EntityKind

from .gateway import (
    BatchOperation,
    BatchResult,
    OpType,
    PersistenceGateway,
    merge_document,
)

logger = logging.getLogger(__name__)


class InMemoryGateway(PersistenceGateway):
    """Dictionary-backed gateway.

    Used as the default backend and by the tests, which can make the next
    batches fail, make reads fail, or hold writes in flight with ``delay``.
    """

    def __init__(self, delay: float = 0.0):
        """
        Initialize the gateway.

        Args:
            delay: Seconds each batch waits before being applied
        """
        self.delay = delay
        self.documents: Dict[EntityKind, Dict[str, Dict[str, Any]]] = {
            kind: {} for kind in EntityKind
        }
        self.committed_batches: List[List[BatchOperation]] = []
        self.attempted_batches: List[List[BatchOperation]] = []
        self.fail_reads: Set[EntityKind] = set()
        self._failures_pending = 0
        self._failure_reason = "Injected failure"

    def seed(self, kind: EntityKind, documents: Sequence[Dict[str, Any]]):
        """Store documents directly, bypassing batch bookkeeping."""
        for document in documents:
            self.documents[kind][document["id"]] = dict(document)

    def fail_next_batch(self, count: int = 1, reason: Optional[str] = None):
        """Reject the next ``count`` batches."""
        self._failures_pending += count
        if reason:
            self._failure_reason = reason

    async def read_all(self, kind: EntityKind) -> List[Dict[str, Any]]:
        if kind in self.fail_reads:
            raise LoadFailure(kind.value, "Injected read failure")
        return [deepcopy(doc) for doc in self.documents[kind].values()]

    async def atomic_batch(self, operations: Sequence[BatchOperation]) -> BatchResult:
        operations = list(operations)
        self.attempted_batches.append(operations)

        if self.delay:
            await asyncio.sleep(self.delay)

        if self._failures_pending:
            self._failures_pending -= 1
            logger.debug(f"Rejecting batch of {len(operations)} operations")
            return BatchResult.failed(self._failure_reason)

        # Stage on a copy so a bad operation leaves nothing applied
        staged = deepcopy(self.documents)
        for operation in operations:
            collection = staged[operation.kind]
            if operation.op == OpType.DELETE:
                collection.pop(operation.id, None)
            else:
                collection[operation.id] = merge_document(
                    collection.get(operation.id), operation
                )

        self.documents = staged
        self.committed_batches.append(operations)
        return BatchResult.ok(len(operations))
