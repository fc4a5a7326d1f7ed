"""Exceptions raised by hierarchylib.

Expected absence (an unknown id, an unmatched path) is never an exception;
read operations return empty results instead. These classes cover the
conditions that abort an operation.
"""

from typing import Any, Iterable, Optional, Tuple


class HierarchyError(Exception):
    """Base class for all hierarchylib errors."""
    pass


class StoreError(HierarchyError):
    """Raised when the underlying store fails to execute a statement.

    The driver exception is always chained as ``__cause__``.
    """

    def __init__(self, operation: str, message: str, table: Optional[str] = None):
        self.operation = operation
        self.table = table
        where = f" on {table!r}" if table else ""
        super().__init__(f"{operation}{where} failed: {message}")


class StructureError(HierarchyError):
    """Raised when the adjacency data cannot be numbered completely.

    Only raised under a strict orphan policy; by default unreachable
    rows are skipped silently.
    """

    def __init__(self, orphans: Iterable[Any]):
        self.orphans: Tuple[Any, ...] = tuple(orphans)
        preview = ", ".join(repr(o) for o in self.orphans[:10])
        if len(self.orphans) > 10:
            preview += ", ..."
        super().__init__(
            f"{len(self.orphans)} node(s) unreachable from the root: {preview}"
        )
