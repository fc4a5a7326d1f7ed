"""StoreAdapter abstraction for hierarchylib.

The StoreAdapter is the seam between the nested-set algorithms and the
database holding the rows. hierarchylib never opens connections, picks a
dialect or manages transactions itself; it composes statements and hands
them to an adapter.
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence


class StoreAdapter(ABC):
    """Abstract adapter for the store that persists hierarchical rows.

    An adapter must provide four capability groups:

    - ordered row iteration over a query (``fetch``)
    - scalar lookup (``scalar``)
    - batched keyed update of a subset of columns (``update_rows``)
    - set-based delete by an explicit id list (``delete_ids``)

    Statements are whatever the adapter's ``table`` handles can build; the
    shipped SQLAlchemy adapter works with SQLAlchemy Core constructs.
    """

    @abstractmethod
    def table(self, name: str) -> Any:
        """Resolve a table handle by name.

        Args:
            name: Table name

        Returns:
            Table object used to compose statements
        """
        pass

    @abstractmethod
    def fetch(self, statement: Any) -> Iterator[Mapping[str, Any]]:
        """Execute a query and yield its rows in order.

        Rows are fetched sequentially and the underlying cursor is closed
        once the iterator is exhausted.

        Args:
            statement: Query to execute

        Returns:
            Iterator yielding one mapping per row
        """
        pass

    @abstractmethod
    def scalar(self, statement: Any) -> Optional[Any]:
        """Execute a query and return the first column of the first row.

        Returns:
            The value, or None when the query matched nothing
        """
        pass

    @abstractmethod
    def update_rows(self, table: Any, key: str, columns: Sequence[str],
                    rows: Iterable[Mapping[str, Any]]) -> int:
        """Apply a batch of keyed updates.

        Each row maps ``key`` to the row id and every name in ``columns``
        to its new value. Only ``columns`` are written.

        Returns:
            Number of rows submitted
        """
        pass

    @abstractmethod
    def delete_ids(self, table: Any, key: str, ids: Sequence[Any]) -> int:
        """Delete every row whose ``key`` is in ``ids``.

        Returns:
            Number of ids submitted
        """
        pass

    # Capability flags - adapters declare what they support

    def supports_transactions(self) -> bool:
        """Check if writes issued through this adapter run inside a transaction.

        Returns:
            True if each write batch is atomic
        """
        return False

    def supports_batch_update(self) -> bool:
        """Check if ``update_rows`` sends the batch in a single round trip.

        Returns:
            True if batched updates are native
        """
        return False

    def describe(self) -> str:
        """Short description for logging."""
        return self.__class__.__name__
