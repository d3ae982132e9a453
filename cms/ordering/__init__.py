"""
Drag-and-drop reordering of ordered collections: a local optimistic view,
the reorder computation, and atomic persistence of the result.
"""

from cms.ordering.engine import (
    OrderUpdate,
    ReorderResult,
    array_move,
    compute_reorder,
    next_order,
    reindex,
)
from cms.ordering.persistence import BatchPersistence
from cms.ordering.session import ReorderSession
from cms.ordering.view import LocalOrderedView

__all__ = [
    "BatchPersistence",
    "LocalOrderedView",
    "OrderUpdate",
    "ReorderResult",
    "ReorderSession",
    "array_move",
    "compute_reorder",
    "next_order",
    "reindex",
]
