#!/usr/bin/env python3
"""
Electronics catalog example for hierarchylib.

This example demonstrates:
- Refreshing nested-set columns after loading adjacency rows
- Path, children and subtree reads
- Product counts rolled up through the category tree
- Rebuilding nesting from a flat subtree

Pass a database URL to run against a real database; the default is an
in-memory SQLite database.
"""

import logging
import sys
from pathlib import Path

# Add parent directory to path for development
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import create_engine

from hierarchylib import CachingHierarchy, Hierarchy
from hierarchylib.testing import load_electronics


def main():
    """Walk through the catalog operations."""
    url = sys.argv[1] if len(sys.argv) > 1 else "sqlite://"
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    engine = create_engine(url)
    load_electronics(engine)

    hier = Hierarchy(engine, "category")
    result = hier.refresh()
    print(f"Numbered {result.updated} categories ({len(result.orphans)} orphans)")
    print("-" * 50)

    print("Path to Flash:")
    for node_id, name in hier.path("name", "Flash").items():
        print(f"  {node_id:>3}  {name}")

    cd_players = hier.resolve_id("name", ["Electronics", "Portable Electronics", "CD Players"])
    print(f"\nCD Players has id {cd_players}")

    print("\nPortable Electronics:")
    tree = hier.tree("name", "id", 6)
    for node_id, record in tree.items():
        print(f"  {'  ' * record['depth']}{record['name']} ({node_id})")

    print(f"\nNested:  {hier.nestify(tree)}")
    print(f"Listing: {hier.lister(tree)}")
    print(f"Paths:   {hier.flatten(hier.nestify(tree))}")

    print("\nProducts per category:")
    names = hier.tree("name")
    for node_id, count in hier.counts("products", "category_id").items():
        print(f"  {names[node_id]['name']:<22} {count}")

    cached = CachingHierarchy(hier)
    for _ in range(3):
        cached.children(1, "name")
    stats = cached.get_cache_stats()
    print(f"\nCache: {stats['cache_hits']} hits, {stats['cache_misses']} misses")

    print(f"\nDeleted {cached.delete(11)} and refreshed {cached.refresh().updated} rows")


if __name__ == "__main__":
    main()
