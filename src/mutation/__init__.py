"""
Mutation module: optimistic commit protocol and the public board operations.
"""

from .diff import diff_collections
from .coordinator import MutationCoordinator
from .board import Board

__all__ = ["diff_collections", "MutationCoordinator", "Board"]
