"""High-level API for hierarchylib.

This module provides simple, functional interfaces for common hierarchy
operations. These functions wrap the Hierarchy class for one-off calls
where keeping an instance around is not worth it.
"""

from typing import Any, Dict, List, Optional

from .core.reconstruct import flatten, nestify, tree_stats
from .hierarchy import Hierarchy, RefreshResult
from .queries import Columns


def open_hierarchy(bind: Any, table: str, id_column: str = "id", **options) -> Hierarchy:
    """Create a Hierarchy over ``table``.

    Args:
        bind: StoreAdapter, Engine, Connection, or database URL
        table: Name of the hierarchical table
        id_column: The table's id column
        **options: Passed to Hierarchy (``config``, ``orphan_policy``)

    Example:
        >>> hier = open_hierarchy("sqlite:///catalog.db", "category")
        >>> hier.children(6, "name")
        {7: 'MP3 Players', 9: 'CD Players', 10: '2 Way Radios'}
    """
    return Hierarchy(bind, table, id_column, **options)


def refresh_hierarchy(bind: Any, table: str, order: Optional[str] = None, **options) -> RefreshResult:
    """Recompute the nested-set columns of ``table``.

    Example:
        >>> result = refresh_hierarchy(engine, "category")
        >>> result.updated
        15
    """
    return open_hierarchy(bind, table, **options).refresh(order)


def get_tree(bind: Any, table: str, columns: Columns, field: Optional[str] = None,
             value: Any = None, having: Any = None, **options) -> Dict[Any, Dict[str, Any]]:
    """Read a tree slice of ``table`` (see Hierarchy.tree)."""
    return open_hierarchy(bind, table, **options).tree(columns, field, value, having)


def get_tree_paths(bind: Any, table: str, field: Optional[str] = None, value: Any = None,
                   **options) -> List[List[Any]]:
    """Get root-to-leaf id paths of the whole tree or of one subtree.

    Example:
        >>> get_tree_paths(engine, "category", "id", 6)
        [[6, 7, 8], [6, 9], [6, 10]]
    """
    hier = open_hierarchy(bind, table, **options)
    tree = hier.tree(hier.config.id_column, field, value)
    return flatten(nestify(tree))


def get_tree_stats(bind: Any, table: str, field: Optional[str] = None, value: Any = None,
                   **options) -> Dict[str, Any]:
    """Get statistics about the whole tree or one subtree.

    Example:
        >>> stats = get_tree_stats(engine, "category")
        >>> print(f"Total nodes: {stats['total_nodes']}")
        >>> print(f"Leaf nodes: {stats['leaf_nodes']}")
    """
    hier = open_hierarchy(bind, table, **options)
    return tree_stats(hier.tree(hier.config.id_column, field, value))
