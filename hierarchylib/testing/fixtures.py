"""Test fixtures for hierarchylib consumers.

These helpers build the "Electronics" category table used throughout the
documentation, and check nested-set invariants on rows read back from a
store. They are meant for test suites, not production code.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import Column, Integer, MetaData, String, Table, insert
from sqlalchemy.engine import Engine

# (id, name, parent)
ELECTRONICS: List[Tuple[int, str, int]] = [
    (1, 'Electronics', 0),
    (2, 'Televisions', 1),
    (3, 'Tube', 2),
    (4, 'LCD', 2),
    (5, 'Plasma', 2),
    (6, 'Portable Electronics', 1),
    (7, 'MP3 Players', 6),
    (8, 'Flash', 7),
    (9, 'CD Players', 6),
    (10, '2 Way Radios', 6),
    (11, 'Apple in California', 1),
    (12, 'Made in USA', 11),
    (13, 'Assembled in China', 11),
    (14, 'iPad', 13),
    (15, 'iPhone', 13),
]

# (category_id, name)
PRODUCTS: List[Tuple[int, str]] = [
    (3, '20" TV'),
    (3, '36" TV'),
    (4, 'Super-LCD 42"'),
    (5, 'Ultra-Plasma 62"'),
    (5, 'Value Plasma 38"'),
    (7, 'Power-MP3 128mb'),
    (8, 'Super-Shuffle 1gb'),
    (9, 'Porta CD'),
    (9, 'CD To go!'),
    (10, 'Family Talk 360'),
]


def category_table(metadata: MetaData, name: str = "category") -> Table:
    """Define a hierarchy table with a ``name`` column."""
    return Table(
        name, metadata,
        Column("id", Integer, primary_key=True),
        Column("name", String(100), nullable=False, default=""),
        Column("parent", Integer, nullable=False, default=0),
        Column("level", Integer, nullable=False, default=0),
        Column("lft", Integer, nullable=False, default=0),
        Column("rgt", Integer, nullable=False, default=0),
    )


def products_table(metadata: MetaData, name: str = "products") -> Table:
    """Define a table whose ``category_id`` references category ids."""
    return Table(
        name, metadata,
        Column("id", Integer, primary_key=True),
        Column("category_id", Integer, nullable=False, default=0),
        Column("name", String(100), nullable=False, default=""),
    )


def create_category_tables(bind, metadata: Optional[MetaData] = None) -> Dict[str, Table]:
    """Create empty ``category`` and ``products`` tables.

    Args:
        bind: Engine or Connection
        metadata: MetaData to define the tables on

    Returns:
        Dict with the ``category`` and ``products`` Table objects
    """
    metadata = metadata if metadata is not None else MetaData()
    tables = {
        "category": category_table(metadata),
        "products": products_table(metadata),
    }
    metadata.create_all(bind)
    return tables


def load_electronics(bind, with_products: bool = True) -> Dict[str, Table]:
    """Create the tables and insert the Electronics dataset.

    Nested-set columns are left at 0; call ``Hierarchy.refresh()``.
    """
    tables = create_category_tables(bind)
    categories = [{"id": i, "name": n, "parent": p} for i, n, p in ELECTRONICS]
    products = [{"category_id": c, "name": n} for c, n in PRODUCTS]

    def _load(conn):
        conn.execute(insert(tables["category"]), categories)
        if with_products:
            conn.execute(insert(tables["products"]), products)

    if isinstance(bind, Engine):
        with bind.begin() as conn:
            _load(conn)
    else:
        _load(bind)
    return tables


def find_numbering_violations(rows: Iterable[Mapping[str, Any]], root_value: Any = 0) -> List[str]:
    """Check nested-set invariants over refreshed rows.

    Each row needs ``id``, ``parent``, ``level``, ``lft`` and ``rgt``.

    Returns:
        Human-readable violations (empty if the numbering is consistent)
    """
    nodes = {row["id"]: dict(row) for row in rows}
    problems: List[str] = []

    children: Dict[Any, List[Any]] = {}
    for node_id, node in nodes.items():
        children.setdefault(node["parent"], []).append(node_id)

    def descendants(node_id: Any) -> int:
        count, stack, seen = 0, list(children.get(node_id, ())), set()
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            count += 1
            stack.extend(children.get(current, ()))
        return count

    for node_id, node in nodes.items():
        lft, rgt = node["lft"], node["rgt"]
        if not lft < rgt:
            problems.append(f"{node_id}: lft {lft} is not below rgt {rgt}")

        expected_width = 1 + 2 * descendants(node_id)
        if rgt - lft != expected_width:
            problems.append(f"{node_id}: width {rgt - lft}, expected {expected_width}")

        parent = nodes.get(node["parent"])
        if node["parent"] != root_value and parent is None:
            problems.append(f"{node_id}: parent {node['parent']!r} does not exist")
        elif parent is not None and not (parent["lft"] < lft and rgt < parent["rgt"]):
            problems.append(f"{node_id}: range not inside parent {node['parent']!r}")

        ancestors, current, seen = 0, node["parent"], set()
        while current != root_value and current in nodes and current not in seen:
            seen.add(current)
            ancestors += 1
            current = nodes[current]["parent"]
        if node["level"] != ancestors:
            problems.append(f"{node_id}: level {node['level']}, expected {ancestors}")

    for parent_id, kids in children.items():
        ranges = sorted((nodes[k]["lft"], nodes[k]["rgt"], k) for k in kids)
        for (_, prev_rgt, prev_id), (next_lft, _, next_id) in zip(ranges, ranges[1:]):
            if prev_rgt >= next_lft:
                problems.append(f"{prev_id} and {next_id}: sibling ranges overlap")

    return problems
