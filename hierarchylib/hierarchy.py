"""The Hierarchy facade.

A Hierarchy binds one adjacency-list table to a store. Callers insert and
delete rows by parent id as usual, call ``refresh()`` after structural
changes, and then read subtrees, paths, levels and counts through
nested-set range queries.

The table needs, besides its own columns:

- ``id``     unique key
- ``parent`` id of the parent, ``0`` for root-level nodes
- ``level``, ``lft``, ``rgt`` integers, overwritten by ``refresh()``

Example:
    hier = Hierarchy(engine, "category")
    hier.refresh()
    hier.path("name", "Flash")
    # {1: 'Electronics', 6: 'Portable Electronics', 7: 'MP3 Players', 8: 'Flash'}
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from . import queries
from .config import DepthFilter, HierarchyConfig, coerce_depth_filter
from .core.adapter import StoreAdapter
from .core.node import NestedSetValues
from .core.reconstruct import flatten, lister, nestify
from .core.traverser import NestedSetNumbering, build_children_map
from .policies import IgnoreOrphansPolicy, OrphanPolicy
from .queries import COUNT_LABEL, DEPTH_LABEL, KEY_LABEL, PARENT_LABEL, Columns

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefreshResult:
    """What one refresh computed and wrote.

    Attributes:
        numbering: level/lft/rgt per id, in ascending id order
        orphans: Ids that could not be reached from the root
        updated: Number of rows submitted to the store
    """

    numbering: Mapping[Any, NestedSetValues]
    orphans: Tuple[Any, ...] = ()
    updated: int = 0


def make_store(bind: Any) -> StoreAdapter:
    """Wrap an Engine, Connection or URL in the default store adapter."""
    if isinstance(bind, StoreAdapter):
        return bind
    from .adapters.sqlalchemy_store import SQLAlchemyStore

    return SQLAlchemyStore(bind)


class Hierarchy:
    """Nested-set operations over one adjacency-list table."""

    def __init__(self, store: Any, table: Optional[str] = None, id_column: str = "id",
                 config: Optional[HierarchyConfig] = None,
                 orphan_policy: Optional[OrphanPolicy] = None):
        """Initialize the hierarchy.

        Args:
            store: StoreAdapter, or an Engine/Connection/URL for the
                default SQLAlchemy adapter
            table: Name of the hierarchical table
            id_column: The table's id column
            config: Full table description; overrides ``table`` and ``id_column``
            orphan_policy: What refresh does with unreachable rows
                (default: skip them silently)

        Raises:
            ValueError: If the configuration is invalid
        """
        if config is None:
            if not table:
                raise ValueError("Either table or config is required")
            config = HierarchyConfig(table=table, id_column=id_column)

        problems = config.validate()
        if problems:
            raise ValueError(f"Invalid hierarchy configuration: {'; '.join(problems)}")

        self.store = make_store(store)
        self.config = config
        self.orphan_policy = orphan_policy or IgnoreOrphansPolicy()

    @property
    def table(self):
        """The hierarchy table handle from the store."""
        return self.store.table(self.config.table)

    # Synchronizer

    def refresh(self, order: Optional[str] = None) -> RefreshResult:
        """Recompute level, lft and rgt for every row from the parent column.

        Call this after any insert, delete or parent change. The read and
        the writes are separate steps; wrap the call in a transaction
        (see SQLAlchemyStore) if concurrent writers are possible.

        Args:
            order: Column that orders siblings (default: the id column)

        Returns:
            RefreshResult with the numbering, orphans and update count

        Raises:
            StoreError: If the store fails; remaining writes are skipped
            StructureError: If the orphan policy rejects the data
        """
        config = self.config
        table = self.table

        pairs = [
            (row[KEY_LABEL], row[PARENT_LABEL])
            for row in self.store.fetch(queries.adjacency_query(table, config, order))
        ]
        numbering = NestedSetNumbering(config.root_value).number(
            build_children_map(pairs), [node_id for node_id, _ in pairs]
        )

        if numbering.orphans:
            self.orphan_policy.handle(config.table, numbering.orphans)

        rows = [
            dict({config.id_column: node_id},
                 **values.as_row(config.level_column, config.lft_column, config.rgt_column))
            for node_id, values in numbering.values.items()
        ]
        updated = self._write_numbering(table, rows)

        logger.info("Refreshed %r: %d node(s) numbered, %d orphan(s)",
                    config.table, updated, len(numbering.orphans))
        return RefreshResult(numbering.values, numbering.orphans, updated)

    def _write_numbering(self, table, rows: List[Dict[str, Any]]) -> int:
        """Submit refresh writes the way the store can take them.

        Stores without batch updates get one call per row, so a failure
        stops the remaining writes at that row.
        """
        config = self.config
        if not self.store.supports_transactions():
            logger.warning("%s writes are not transactional; a failed refresh of %r "
                           "leaves a partial numbering", self.store.describe(), config.table)

        if self.store.supports_batch_update():
            return self.store.update_rows(table, config.id_column, config.nested_set_columns, rows)

        updated = 0
        for row in rows:
            updated += self.store.update_rows(table, config.id_column, config.nested_set_columns, [row])
        return updated

    # Subtree deleter

    def delete(self, node_id: Any) -> List[Any]:
        """Delete a node and all of its descendants.

        Nested-set values of the remaining rows are left stale; call
        ``refresh()`` afterwards.

        Returns:
            Deleted ids, the node first and then its descendants in
            preorder. Empty if the node does not exist.

        Example:
            >>> hier.delete(11)
            [11, 12, 13, 14, 15]
        """
        table = self.table
        ids = [row[KEY_LABEL] for row in
               self.store.fetch(queries.subtree_ids_query(table, self.config, node_id))]
        if not ids:
            logger.debug("delete(%r): no such node in %r", node_id, self.config.table)
            return []

        self.store.delete_ids(table, self.config.id_column, ids)
        logger.info("Deleted %d row(s) from %r under %r", len(ids), self.config.table, node_id)
        return ids

    # Resolver

    def resolve_id(self, field: str, values: Sequence[Any]) -> Optional[Any]:
        """Get the id at the end of a root-first chain of ``field`` values.

        Example:
            >>> hier.resolve_id('name', ['Electronics', 'Portable Electronics', 'CD Players'])
            9
            >>> hier.resolve_id('name', ['Electronics', 'CD Players']) is None
            True
        """
        values = list(values)
        if not values:
            return None
        return self.store.scalar(queries.resolve_query(self.table, self.config, field, values))

    def path(self, field: str, value: Any, columns: Optional[Columns] = None) -> Dict[Any, Any]:
        """Retrieve the path from the root down to the node where ``field = value``.

        Args:
            field: Column to match
            value: Value to match
            columns: Column(s) to return; defaults to ``field``. A single
                name maps ids to values, a list maps ids to dicts.

        Returns:
            Ordered {id: value-or-dict}, root first; empty if no match
        """
        if columns is None:
            columns = field
        names = self._names(columns)
        statement = queries.path_query(self.table, self.config, field, value, names)
        return self._keyed(statement, names, isinstance(columns, str))

    # Tree reader

    def children(self, node_id: Any, columns: Columns) -> Dict[Any, Any]:
        """Find the immediate children of a node (no grandchildren)."""
        names = self._names(columns)
        statement = queries.children_query(self.table, self.config, node_id, names)
        return self._keyed(statement, names, isinstance(columns, str))

    def level(self, depth: int, columns: Columns) -> Dict[Any, Any]:
        """Find all the nodes at a given level, starting at 0."""
        names = self._names(columns)
        statement = queries.level_query(self.table, self.config, depth, names)
        return self._keyed(statement, names, isinstance(columns, str))

    def tree(self, columns: Columns, field: Optional[str] = None, value: Any = None,
             having: Any = None) -> Dict[Any, Dict[str, Any]]:
        """Retrieve the whole tree, or the subtree under ``field = value``.

        Args:
            columns: Column(s) to include in each record
            field: Column identifying the subtree root. A depth expression
                here (``tree('name', 'depth > 2')``) is taken as ``having``.
                Ignored without ``value``.
            value: Value of ``field``; depths become relative to that node
            having: DepthFilter or ``"depth <op> N"`` string

        Returns:
            Ordered {id: {columns..., 'parent': ..., 'depth': ...}} in preorder
        """
        if field is not None and value is None and having is None and DepthFilter.is_expression(field):
            field, having = None, field
        depth_filter = coerce_depth_filter(having)
        names = queries.tree_columns(self.config, columns)

        if field is None or value is None:
            statement = queries.tree_query(self.table, self.config, names, depth_filter)
        else:
            statement = queries.subtree_query(self.table, self.config, names, field, value, depth_filter)

        tree: Dict[Any, Dict[str, Any]] = {}
        for row in self.store.fetch(statement):
            record = {name: row[name] for name in names}
            record["parent"] = row[PARENT_LABEL]
            record["depth"] = int(row[DEPTH_LABEL])
            tree[row[KEY_LABEL]] = record
        return tree

    def counts(self, table: str, match: str, node_id: Any = None) -> Any:
        """Aggregate the rows of ``table`` attributable to each node's subtree.

        Args:
            table: Table whose ``match`` column references this hierarchy's ids
            match: The referencing column
            node_id: A specific node

        Returns:
            The count for ``node_id`` (0 if none), or an ordered
            {id: count} for every node with at least one matching row

        Example:
            >>> hier.counts('products', 'category_id', 2)
            5
        """
        related = self.store.table(table)
        statement = queries.counts_query(self.table, self.config, related, match, node_id)
        if node_id is not None:
            return int(self.store.scalar(statement) or 0)
        return {row[KEY_LABEL]: int(row[COUNT_LABEL]) for row in self.store.fetch(statement)}

    # Tree reconstructor

    nestify = staticmethod(nestify)
    lister = staticmethod(lister)
    flatten = staticmethod(flatten)

    # Helpers

    @staticmethod
    def _names(columns: Columns) -> List[str]:
        return list(dict.fromkeys(queries.column_names(columns)))

    def _keyed(self, statement, names: List[str], single: bool) -> Dict[Any, Any]:
        keyed: Dict[Any, Any] = {}
        for row in self.store.fetch(statement):
            if single:
                keyed[row[KEY_LABEL]] = row[names[0]]
            else:
                keyed[row[KEY_LABEL]] = {name: row[name] for name in names}
        return keyed

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(table={self.config.table!r}, store={self.store.describe()})"
