"""
Minimal diff between two versions of a collection, expressed as batch operations.
"""

import logging
from typing import List, Sequence

from src.ordering.models import EntityKind
from src.persistence.gateway import BatchOperation, OpType

logger = logging.getLogger(__name__)


def diff_collections(
    kind: EntityKind, before: Sequence, after: Sequence
) -> List[BatchOperation]:
    """Return the writes that turn ``before`` into ``after``.

    Removed entities become deletes, new entities become full upserts, and
    entities whose persisted fields changed become upserts carrying only the
    changed fields. Unchanged entities produce nothing.
    """
    before_by_id = {entity.id: entity for entity in before}
    after_ids = {entity.id for entity in after}

    operations = [
        BatchOperation(OpType.DELETE, kind, entity.id)
        for entity in before
        if entity.id not in after_ids
    ]

    for entity in after:
        previous = before_by_id.get(entity.id)
        if previous is None:
            operations.append(
                BatchOperation(OpType.UPSERT, kind, entity.id, entity.to_dict())
            )
        elif previous != entity:
            old_fields = previous.to_dict()
            changed = {
                key: value
                for key, value in entity.to_dict().items()
                if old_fields.get(key) != value
            }
            operations.append(BatchOperation(OpType.UPSERT, kind, entity.id, changed))

    logger.debug(f"{kind.value} diff: {[op.to_dict() for op in operations]}")
    return operations
