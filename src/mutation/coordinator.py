"""
Optimistic commit protocol.

Every structural change goes through MutationCoordinator.apply: snapshot the
affected collections, swap the new state in, send the minimal diff to the
gateway in the background and put the snapshot back if the gateway rejects
it. Creation uses commit instead, which writes first and changes nothing
locally.
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from src.ordering.errors import PersistenceFailure
from src.ordering.models import BoardState, EntityKind
from src.persistence.gateway import BatchOperation, BatchResult, PersistenceGateway
from src.utils.error_handler import ErrorHandler

from .diff import diff_collections

logger = logging.getLogger(__name__)

Snapshot = Dict[EntityKind, Tuple]


class MutationCoordinator:
    """Own the live BoardState and the commit/revert protocol around it."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        state: Optional[BoardState] = None,
        error_handler: Optional[ErrorHandler] = None,
        on_failure: Optional[Callable[[PersistenceFailure], None]] = None,
    ):
        """
        Initialize the coordinator.

        Args:
            gateway: Persistence backend
            state: Initial live state
            error_handler: Where persistence failures are recorded
            on_failure: Called with each PersistenceFailure after its revert
        """
        self.gateway = gateway
        self.state = state or BoardState()
        self.error_handler = error_handler or ErrorHandler()
        self.on_failure = on_failure
        self._in_flight: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """Number of batches still in flight."""
        return len(self._in_flight)

    def apply(
        self, label: str, new_state: BoardState, kinds: Sequence[EntityKind]
    ) -> BoardState:
        """
        Apply a change optimistically and persist it in the background.

        Must be called from a running event loop. Only the collections named
        in ``kinds`` are taken from ``new_state`` and snapshotted.

        Args:
            label: Operation name used in logs and failures
            new_state: State holding the new collections
            kinds: Collections affected by the operation

        Returns:
            The new live state
        """
        snapshot: Snapshot = {kind: self.state.collection(kind) for kind in kinds}

        operations: List[BatchOperation] = []
        state = self.state
        for kind in kinds:
            collection = new_state.collection(kind)
            operations.extend(diff_collections(kind, snapshot[kind], collection))
            state = state.with_collection(kind, collection)
        self.state = state

        if not operations:
            logger.debug(f"{label}: nothing to persist")
            return self.state

        if self._in_flight:
            # Not serialized: a revert of the older batch restores its own
            # snapshot and discards this operation too.
            logger.warning(
                f"{label} started with {len(self._in_flight)} batch(es) in flight"
            )

        task = asyncio.get_running_loop().create_task(
            self._commit_or_revert(label, snapshot, operations)
        )
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

        logger.info(f"{label}: applied locally, {len(operations)} write(s) queued")
        return self.state

    async def commit(self, label: str, operations: Sequence[BatchOperation]):
        """
        Write first, without touching local state.

        Raises:
            PersistenceFailure: if the gateway rejects the batch
        """
        result = await self._submit(operations)
        if not result.success:
            failure = PersistenceFailure(label, result.error)
            self.error_handler.handle_error(failure, label)
            raise failure

        logger.info(f"{label}: committed {result.applied} write(s)")

    def replace_state(self, state: BoardState):
        """Install a state that needs no persistence (load, transient UI changes)."""
        self.state = state

    async def drain(self) -> List[PersistenceFailure]:
        """Wait for every in-flight batch, including ones started meanwhile.

        Returns:
            Failures reported by the awaited batches
        """
        failures = []
        while self._in_flight:
            results = await asyncio.gather(*list(self._in_flight))
            failures.extend(result for result in results if result is not None)
        return failures

    async def _commit_or_revert(
        self, label: str, snapshot: Snapshot, operations: Sequence[BatchOperation]
    ) -> Optional[PersistenceFailure]:
        result = await self._submit(operations)
        if result.success:
            logger.info(f"{label}: committed {result.applied} write(s)")
            return None

        self._revert(label, snapshot)
        failure = PersistenceFailure(label, result.error)
        self.error_handler.handle_error(failure, label)
        if self.on_failure:
            self.on_failure(failure)
        return failure

    async def _submit(self, operations: Sequence[BatchOperation]) -> BatchResult:
        try:
            return await self.gateway.atomic_batch(operations)
        except Exception as e:
            # Gateways should report failure through BatchResult; treat a raise the same way
            logger.error(f"Gateway raised during batch: {e}")
            return BatchResult.failed(str(e))

    def _revert(self, label: str, snapshot: Snapshot):
        """Put the pre-operation collections back, in full."""
        state = self.state
        for kind, collection in snapshot.items():
            state = state.with_collection(kind, collection)
        self.state = state

        kinds = ", ".join(kind.value for kind in snapshot)
        logger.warning(f"{label}: reverted {kinds} to pre-operation snapshot")
