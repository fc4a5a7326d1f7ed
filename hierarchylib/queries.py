"""Statement builders for hierarchylib.

Every read or delete is composed from aliased copies of the hierarchy
table. Ancestor/descendant relations are nested-set containment:

    node.lft BETWEEN parent.lft AND parent.rgt

Values are always bound parameters. Column names are checked against the
table, so a typo raises ValueError instead of reaching the database.
"""

from typing import Any, List, Optional, Sequence, Union

from sqlalchemy import and_, func, select
from sqlalchemy.sql import ColumnElement, Select

from .config import DepthFilter, HierarchyConfig

# Result labels. KEY_LABEL must not collide with user column names.
KEY_LABEL = "hierarchylib_key"
PARENT_LABEL = "parent"
DEPTH_LABEL = "depth"
COUNT_LABEL = "count"

Columns = Union[str, Sequence[str]]


def column(table, name: str):
    """Look up a column, raising ValueError for unknown names."""
    try:
        return table.c[name]
    except KeyError:
        raise ValueError(f"Unknown column {name!r} in table {table.name!r}") from None


def column_names(columns: Columns) -> List[str]:
    """Normalize a single column name or a sequence of names to a list."""
    names = [columns] if isinstance(columns, str) else list(columns)
    if not names:
        raise ValueError("At least one column is required")
    return names


def contains(inner, outer, config: HierarchyConfig) -> ColumnElement:
    """Containment predicate: ``inner`` is ``outer`` or one of its descendants."""
    return column(inner, config.lft_column).between(
        column(outer, config.lft_column), column(outer, config.rgt_column)
    )


def adjacency_query(table, config: HierarchyConfig, order: Optional[str] = None) -> Select:
    """All ``(id, parent)`` pairs, ordered by ``order`` (the id by default)."""
    return (
        select(column(table, config.id_column).label(KEY_LABEL),
               column(table, config.parent_column).label(PARENT_LABEL))
        .order_by(column(table, order or config.id_column))
    )


def subtree_ids_query(table, config: HierarchyConfig, node_id: Any) -> Select:
    """Ids of a node and all of its descendants, in preorder."""
    node = table.alias("node")
    parent = table.alias("parent")
    return (
        select(column(node, config.id_column).label(KEY_LABEL))
        .select_from(node.join(parent, contains(node, parent, config)))
        .where(column(parent, config.id_column) == node_id)
        .order_by(column(node, config.lft_column))
    )


def resolve_query(table, config: HierarchyConfig, field: str, values: Sequence[Any]) -> Select:
    """Id of the node reached by matching ``values`` level by level.

    ``values[i]`` must match ``field`` of a node at level ``i`` whose
    parent matched ``values[i - 1]``.
    """
    if not values:
        raise ValueError("resolve_query needs at least one value")

    steps = [table.alias(f"t{num}") for num in range(1, len(values) + 1)]
    joined = steps[0]
    where = []
    for level, (step, value) in enumerate(zip(steps, values)):
        if level:
            previous = steps[level - 1]
            joined = joined.join(
                step,
                column(step, config.parent_column) == column(previous, config.id_column),
            )
        where.append(column(step, config.level_column) == level)
        where.append(column(step, field) == value)

    last = steps[-1]
    return (
        select(column(last, config.id_column))
        .select_from(joined)
        .where(and_(*where))
        .order_by(column(last, config.lft_column))
        .limit(1)
    )


def path_query(table, config: HierarchyConfig, field: str, value: Any, columns: Sequence[str]) -> Select:
    """Every ancestor of the node(s) matching ``field = value``, root first."""
    node = table.alias("node")
    parent = table.alias("parent")
    return (
        select(column(parent, config.id_column).label(KEY_LABEL),
               *[column(parent, name) for name in columns])
        .select_from(node.join(parent, contains(node, parent, config)))
        .where(column(node, field) == value)
        .order_by(column(parent, config.lft_column))
    )


def children_query(table, config: HierarchyConfig, node_id: Any, columns: Sequence[str]) -> Select:
    """Immediate children of ``node_id``, in preorder."""
    return (
        select(column(table, config.id_column).label(KEY_LABEL),
               *[column(table, name) for name in columns])
        .where(column(table, config.parent_column) == node_id)
        .order_by(column(table, config.lft_column))
    )


def level_query(table, config: HierarchyConfig, depth: int, columns: Sequence[str]) -> Select:
    """All nodes at ``depth``, in preorder."""
    return (
        select(column(table, config.id_column).label(KEY_LABEL),
               *[column(table, name) for name in columns])
        .where(column(table, config.level_column) == depth)
        .order_by(column(table, config.lft_column))
    )


def tree_columns(config: HierarchyConfig, columns: Columns) -> List[str]:
    """Requested tree columns minus the ones every tree record carries."""
    reserved = {config.parent_column, PARENT_LABEL, DEPTH_LABEL}
    return [name for name in dict.fromkeys(column_names(columns)) if name not in reserved]


def tree_query(table, config: HierarchyConfig, columns: Sequence[str],
               having: Optional[DepthFilter] = None) -> Select:
    """The whole tree with absolute depths (count of ancestors - 1)."""
    node = table.alias("node")
    parent = table.alias("parent")
    selected = [column(node, name) for name in columns]
    depth = func.count(column(parent, config.id_column)) - 1

    statement = (
        select(column(node, config.id_column).label(KEY_LABEL),
               *selected,
               column(node, config.parent_column).label(PARENT_LABEL),
               depth.label(DEPTH_LABEL))
        .select_from(node.join(parent, contains(node, parent, config)))
        .group_by(column(node, config.id_column), column(node, config.lft_column),
                  column(node, config.parent_column), *selected)
        .order_by(column(node, config.lft_column))
    )
    return _apply_having(statement, depth, having)


def subtree_query(table, config: HierarchyConfig, columns: Sequence[str], field: str, value: Any,
                  having: Optional[DepthFilter] = None) -> Select:
    """The subtree under ``field = value`` with depths relative to its top."""
    # Absolute depth of the matched node(s)
    sub_node = table.alias("sub_node")
    sub_ancestor = table.alias("sub_ancestor")
    sub_tree = (
        select(column(sub_node, config.id_column).label("sub_id"),
               (func.count(column(sub_ancestor, config.id_column)) - 1).label("sub_depth"))
        .select_from(sub_node.join(sub_ancestor, contains(sub_node, sub_ancestor, config)))
        .where(column(sub_node, field) == value)
        .group_by(column(sub_node, config.id_column))
        .subquery("sub_tree")
    )

    node = table.alias("node")
    parent = table.alias("parent")
    sub_parent = table.alias("sub_parent")
    selected = [column(node, name) for name in columns]
    depth = func.count(column(parent, config.id_column)) - (sub_tree.c.sub_depth + 1)

    statement = (
        select(column(node, config.id_column).label(KEY_LABEL),
               *selected,
               column(node, config.parent_column).label(PARENT_LABEL),
               depth.label(DEPTH_LABEL))
        .select_from(
            node.join(parent, contains(node, parent, config))
            .join(sub_parent, contains(node, sub_parent, config))
            .join(sub_tree, column(sub_parent, config.id_column) == sub_tree.c.sub_id)
        )
        .group_by(column(node, config.id_column), column(node, config.lft_column),
                  column(node, config.parent_column), sub_tree.c.sub_depth, *selected)
        .order_by(column(node, config.lft_column))
    )
    return _apply_having(statement, depth, having)


def _apply_having(statement: Select, depth, having: Optional[DepthFilter]) -> Select:
    if having is None:
        return statement
    conditions = having.conditions(depth)
    if not conditions:
        return statement
    return statement.having(and_(*conditions))


def counts_query(table, config: HierarchyConfig, related, match: str, node_id: Any = None) -> Select:
    """Rows of ``related`` attributable to each node's subtree.

    With ``node_id`` the statement yields a single count for that node;
    otherwise one ``(id, count)`` row per node with at least one match.
    """
    node = table.alias("node")
    parent = table.alias("parent")
    matched = column(related, match)
    joined = (
        node.join(parent, contains(node, parent, config))
        .join(related, column(node, config.id_column) == matched)
    )

    if node_id is not None:
        return (
            select(func.count(matched))
            .select_from(joined)
            .where(column(parent, config.id_column) == node_id)
        )

    return (
        select(column(parent, config.id_column).label(KEY_LABEL),
               func.count(matched).label(COUNT_LABEL))
        .select_from(joined)
        .group_by(column(parent, config.id_column), column(parent, config.lft_column))
        .order_by(column(parent, config.lft_column))
    )
