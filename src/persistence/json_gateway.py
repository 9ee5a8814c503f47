"""
JSON file persistence gateway.

The whole store is a single JSON document rewritten on every batch, the same
shape a browser would keep in local storage.
"""

import asyncio
import json
import logging
import os
import tempfile
import threading
from copy import deepcopy
from pathlib import Path
from typing import Dict, Any, List, Sequence

from src.ordering.errors import LoadFailure
from src.ordering.models import EntityKind

from .gateway import (
    COLLECTION_NAMES,
    BatchOperation,
    BatchResult,
    OpType,
    PersistenceGateway,
    merge_document,
)

logger = logging.getLogger(__name__)


class JsonFileGateway(PersistenceGateway):
    """Persist both collections to one JSON file.

    File I/O runs in a worker thread; the event loop keeps running while a
    batch is written.
    """

    def __init__(self, json_path: str):
        self.json_path = Path(json_path)
        self._batch_lock = threading.Lock()
        self.json_path.parent.mkdir(parents=True, exist_ok=True)
        if not self.json_path.exists():
            self._save_store(self._empty_store())

        logger.info(f"JSON gateway initialized at {self.json_path}")

    def _empty_store(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        return {name: {} for name in COLLECTION_NAMES.values()}

    def _load_store(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        with open(self.json_path, "r") as f:
            store = json.load(f)
        for name in COLLECTION_NAMES.values():
            store.setdefault(name, {})
        return store

    def _save_store(self, store: Dict[str, Any]):
        """Write the store atomically: temp file in the same directory, then replace."""
        payload = json.dumps(store, indent=2)
        fd, temp_path = tempfile.mkstemp(
            dir=self.json_path.parent, prefix=".store_", suffix=".json"
        )
        try:
            with os.fdopen(fd, "w") as f:
                f.write(payload)
            os.replace(temp_path, self.json_path)
        except OSError:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    async def read_all(self, kind: EntityKind) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self._read_all, kind)

    async def atomic_batch(self, operations: Sequence[BatchOperation]) -> BatchResult:
        return await asyncio.to_thread(self._serialized_batch, list(operations))

    def _serialized_batch(self, operations: List[BatchOperation]) -> BatchResult:
        # One batch at a time; each is a read-modify-write of existing documents
        with self._batch_lock:
            return self._atomic_batch(operations)

    def _read_all(self, kind: EntityKind) -> List[Dict[str, Any]]:
        try:
            store = self._load_store()
        except (OSError, ValueError) as e:
            logger.error(f"Error loading JSON store: {e}")
            raise LoadFailure(kind.value, str(e)) from e

        return list(store[COLLECTION_NAMES[kind]].values())

    def _atomic_batch(self, operations: List[BatchOperation]) -> BatchResult:
        try:
            store = deepcopy(self._load_store())

            for operation in operations:
                collection = store[COLLECTION_NAMES[operation.kind]]
                if operation.op == OpType.DELETE:
                    collection.pop(operation.id, None)
                else:
                    collection[operation.id] = merge_document(
                        collection.get(operation.id), operation
                    )

            self._save_store(store)
            return BatchResult.ok(len(operations))

        except (OSError, ValueError, TypeError) as e:
            logger.error(f"JSON storage error: {e}")
            return BatchResult.failed(str(e))
