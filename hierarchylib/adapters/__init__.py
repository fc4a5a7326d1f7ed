"""Store adapters for specific databases.

Adapters implement the StoreAdapter interface, enabling hierarchylib to
keep nested-set columns in any store they support.
"""

from .sqlalchemy_store import SQLAlchemyStore

__all__ = [
    "SQLAlchemyStore",
]
