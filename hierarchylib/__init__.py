"""hierarchylib - Nested sets over adjacency-list tables.

hierarchylib keeps ``level``/``lft``/``rgt`` nested-set columns in sync with
a plain ``parent`` column, so rows can be inserted and deleted by parent id
while subtrees, paths, levels and counts are read with range queries.

Quick start:
━━━━━━━━━━━━━━━━━━━━━━━━━━
    from hierarchylib import Hierarchy

    hier = Hierarchy(engine, "category")
    hier.refresh()
    hier.tree("name", "id", 6)
━━━━━━━━━━━━━━━━━━━━━━━━━━
"""

import logging

__version__ = "0.1.0"

from .config import DepthFilter, HierarchyConfig, StoreConfig
from .errors import HierarchyError, StoreError, StructureError
from .core import (
    NestedSetNumbering,
    NestedSetValues,
    StoreAdapter,
    TreeNode,
    build_forest,
    flatten,
    leaf_ids,
    lister,
    nestify,
    tree_stats,
)
from .adapters import SQLAlchemyStore
from .policies import (
    CollectOrphansPolicy,
    FailOnOrphansPolicy,
    IgnoreOrphansPolicy,
    OrphanPolicy,
)
from .hierarchy import Hierarchy, RefreshResult
from .caching import CachingHierarchy
from .api import (
    get_tree,
    get_tree_paths,
    get_tree_stats,
    open_hierarchy,
    refresh_hierarchy,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    # Core
    "Hierarchy",
    "RefreshResult",
    "NestedSetNumbering",
    "NestedSetValues",
    "TreeNode",
    "StoreAdapter",
    "build_forest",
    "flatten",
    "leaf_ids",
    "lister",
    "nestify",
    "tree_stats",
    # Adapters
    "SQLAlchemyStore",
    "CachingHierarchy",
    # Config
    "DepthFilter",
    "HierarchyConfig",
    "StoreConfig",
    # Errors and policies
    "HierarchyError",
    "StoreError",
    "StructureError",
    "OrphanPolicy",
    "IgnoreOrphansPolicy",
    "CollectOrphansPolicy",
    "FailOnOrphansPolicy",
    # API
    "open_hierarchy",
    "refresh_hierarchy",
    "get_tree",
    "get_tree_paths",
    "get_tree_stats",
]
