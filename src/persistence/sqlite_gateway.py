"""
SQLite persistence gateway for local storage.
"""

import asyncio
import json
import logging
import sqlite3
import threading
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


class SQLiteGateway(PersistenceGateway):
    """Store items and folders as JSON documents in a SQLite database.

    Each call opens its own connection in a worker thread, so reads and
    batches do not block the event loop.
    """

    def __init__(self, db_path: str):
        """Initialize SQLite storage.

        Args:
            db_path: Path to the database file
        """
        self.db_path = Path(db_path)
        self._batch_lock = threading.Lock()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

        logger.info(f"SQLite gateway initialized at {self.db_path}")

    def _init_database(self):
        """Create the documents table."""
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS documents (
                collection TEXT NOT NULL,
                id TEXT NOT NULL,
                data TEXT NOT NULL,  -- Complete JSON document
                PRIMARY KEY (collection, id)
            )
        """
        )

        conn.commit()
        conn.close()

    async def read_all(self, kind: EntityKind) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self._read_all, kind)

    async def atomic_batch(self, operations: Sequence[BatchOperation]) -> BatchResult:
        return await asyncio.to_thread(self._serialized_batch, list(operations))

    def _serialized_batch(self, operations: List[BatchOperation]) -> BatchResult:
        # One batch at a time; each is a read-modify-write of existing documents
        with self._batch_lock:
            return self._atomic_batch(operations)

    def _read_all(self, kind: EntityKind) -> List[Dict[str, Any]]:
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        try:
            cursor.execute(
                "SELECT data FROM documents WHERE collection = ?",
                (COLLECTION_NAMES[kind],),
            )
            return [json.loads(row[0]) for row in cursor.fetchall()]

        except (sqlite3.Error, ValueError) as e:
            logger.error(f"Database read error: {e}")
            raise LoadFailure(kind.value, str(e)) from e
        finally:
            conn.close()

    def _atomic_batch(self, operations: List[BatchOperation]) -> BatchResult:
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        try:
            for operation in operations:
                self._apply(cursor, operation)

            conn.commit()
            return BatchResult.ok(len(operations))

        except (sqlite3.Error, ValueError, TypeError) as e:
            logger.error(f"Database error: {e}")
            conn.rollback()
            return BatchResult.failed(str(e))
        finally:
            conn.close()

    def _apply(self, cursor: sqlite3.Cursor, operation: BatchOperation):
        """Apply one operation inside the open transaction."""
        collection = COLLECTION_NAMES[operation.kind]

        if operation.op == OpType.DELETE:
            cursor.execute(
                "DELETE FROM documents WHERE collection = ? AND id = ?",
                (collection, operation.id),
            )
            return

        cursor.execute(
            "SELECT data FROM documents WHERE collection = ? AND id = ?",
            (collection, operation.id),
        )
        row = cursor.fetchone()
        existing = json.loads(row[0]) if row else None

        cursor.execute(
            """
            INSERT OR REPLACE INTO documents (collection, id, data)
            VALUES (?, ?, ?)
        """,
            (
                collection,
                operation.id,
                json.dumps(merge_document(existing, operation)),
            ),
        )
