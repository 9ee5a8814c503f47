"""
Pure helpers for dense, zero-based ordering of sibling sets.
"""

from dataclasses import replace
from typing import Iterable, List, Optional, Sequence, TypeVar

from .models import Item

E = TypeVar("E")


def reindex(sequence: Iterable[E]) -> List[E]:
    """Return a new list in the same relative order with ``order`` set to position.

    This is the only place order values are assigned after a structural
    change, which is what keeps every sibling set dense.
    """
    return [replace(entity, order=index) for index, entity in enumerate(sequence)]


def sort_by_order(sequence: Iterable[E]) -> List[E]:
    """Stable sort by ``order``; ties keep their incoming relative order."""
    return sorted(sequence, key=lambda entity: entity.order or 0)


def siblings(items: Iterable[Item], container_id: Optional[str]) -> List[Item]:
    """Items sharing ``container_id`` (None is root), sorted by order."""
    return sort_by_order(item for item in items if item.container_id == container_id)


def next_order(sequence: Sequence[E]) -> int:
    """Order for an entity appended to ``sequence``: max + 1, or 0 when empty."""
    if not sequence:
        return 0
    return max(entity.order or 0 for entity in sequence) + 1


def is_dense(sequence: Iterable[E]) -> bool:
    """True when the order values are exactly 0..n-1."""
    orders = sorted(entity.order for entity in sequence)
    return orders == list(range(len(orders)))
