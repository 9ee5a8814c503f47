"""
Persistence module: gateway contract and storage backends.
"""

import logging
from typing import Any

from .gateway import (
    COLLECTION_NAMES,
    BatchOperation,
    BatchResult,
    OpType,
    PersistenceGateway,
)
from .memory_gateway import InMemoryGateway
from .sqlite_gateway import SQLiteGateway
from .json_gateway import JsonFileGateway

logger = logging.getLogger(__name__)

BACKENDS = ("memory", "sqlite", "json")


def create_gateway(config: Any) -> PersistenceGateway:
    """Build the gateway named by ``storage.backend``.

    Args:
        config: A ConfigManager (anything with a dot-path ``get``)
    """
    backend = config.get("storage.backend", "memory")
    logger.info(f"Using '{backend}' storage backend")

    if backend == "sqlite":
        return SQLiteGateway(config.get("storage.db_path", "./organizer.db"))
    elif backend == "json":
        return JsonFileGateway(config.get("storage.json_path", "./organizer.json"))
    elif backend == "memory":
        return InMemoryGateway()
    else:
        raise ValueError(f"Unsupported storage backend: {backend}")


__all__ = [
    "COLLECTION_NAMES",
    "BatchOperation",
    "BatchResult",
    "OpType",
    "PersistenceGateway",
    "InMemoryGateway",
    "SQLiteGateway",
    "JsonFileGateway",
    "create_gateway",
]
