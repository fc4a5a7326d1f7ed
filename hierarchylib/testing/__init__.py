"""Testing utilities for hierarchylib consumers."""

from .fixtures import (
    ELECTRONICS,
    PRODUCTS,
    category_table,
    create_category_tables,
    find_numbering_violations,
    load_electronics,
    products_table,
)

__all__ = [
    'ELECTRONICS',
    'PRODUCTS',
    'category_table',
    'create_category_tables',
    'find_numbering_violations',
    'load_electronics',
    'products_table',
]
