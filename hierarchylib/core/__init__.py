"""Core abstractions for hierarchylib.

This package contains the store contract and the pure, I/O-free
algorithms: nested-set numbering and tree reconstruction.
"""

from .node import NestedSetValues, TreeNode
from .adapter import StoreAdapter
from .traverser import (
    NestedSetNumbering,
    NumberingResult,
    VisitEvent,
    build_children_map,
    number_pairs,
)
from .reconstruct import (
    build_forest,
    flatten,
    forest_to_nest,
    leaf_ids,
    lister,
    nestify,
    tree_stats,
)

__all__ = [
    "NestedSetValues",
    "TreeNode",
    "StoreAdapter",
    "NestedSetNumbering",
    "NumberingResult",
    "VisitEvent",
    "build_children_map",
    "number_pairs",
    "build_forest",
    "flatten",
    "forest_to_nest",
    "leaf_ids",
    "lister",
    "nestify",
    "tree_stats",
]
