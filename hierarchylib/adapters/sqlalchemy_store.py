"""SQLAlchemy store adapter for hierarchylib.

This adapter runs hierarchylib's statements through SQLAlchemy Core, so
any database SQLAlchemy supports can hold a hierarchical table.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Sequence, Union

from sqlalchemy import MetaData, Table, bindparam, create_engine
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError

from ..config import StoreConfig
from ..core.adapter import StoreAdapter
from ..errors import StoreError

logger = logging.getLogger(__name__)

# Keeps IN (...) lists below the bound-parameter limits of common drivers
DELETE_CHUNK_SIZE = 500


class SQLAlchemyStore(StoreAdapter):
    """Store adapter backed by a SQLAlchemy Engine or Connection.

    With an Engine, every read checks out its own connection and every
    write batch runs in its own ``engine.begin()`` block. With a
    Connection, statements run on it directly and the caller owns the
    transaction, which is how a whole refresh is made atomic:

        with engine.begin() as conn:
            Hierarchy(SQLAlchemyStore(conn), "category").refresh()

    Example:
        store = SQLAlchemyStore("sqlite:///catalog.db")
        hier = Hierarchy(store, "category")
    """

    def __init__(self, bind: Union[Engine, Connection, str], metadata: Optional[MetaData] = None):
        """Initialize the store.

        Args:
            bind: Engine, Connection, or database URL
            metadata: MetaData holding predefined tables. Tables missing
                from it are reflected on first use.
        """
        if isinstance(bind, str):
            bind = create_engine(bind)
        if not isinstance(bind, (Engine, Connection)):
            raise TypeError(
                f"SQLAlchemyStore needs an Engine, Connection or URL, not {type(bind).__name__}"
            )
        self.bind = bind
        self.metadata = metadata if metadata is not None else MetaData()
        self._tables: Dict[str, Table] = {}

    @classmethod
    def from_config(cls, config: Optional[StoreConfig] = None) -> "SQLAlchemyStore":
        """Create a store from a StoreConfig (environment by default)."""
        config = config or StoreConfig.from_env()
        return cls(config.create_engine())

    @property
    def owns_transactions(self) -> bool:
        """True when this store commits its own writes."""
        return isinstance(self.bind, Engine)

    @contextmanager
    def _reading(self) -> Iterator[Connection]:
        if isinstance(self.bind, Engine):
            with self.bind.connect() as conn:
                yield conn
        else:
            yield self.bind

    @contextmanager
    def _writing(self) -> Iterator[Connection]:
        if isinstance(self.bind, Engine):
            with self.bind.begin() as conn:
                yield conn
        else:
            yield self.bind

    def table(self, name: str) -> Table:
        """Return the named table, reflecting it on first use."""
        table = self._tables.get(name)
        if table is not None:
            return table

        if name in self.metadata.tables:
            table = self.metadata.tables[name]
        else:
            try:
                with self._reading() as conn:
                    table = Table(name, self.metadata, autoload_with=conn)
            except NoSuchTableError as e:
                raise StoreError("reflect", "no such table", table=name) from e
            except SQLAlchemyError as e:
                raise StoreError("reflect", str(e), table=name) from e
            logger.debug("Reflected table %r with columns %s", name, list(table.c.keys()))

        self._tables[name] = table
        return table

    def fetch(self, statement: Any) -> Iterator[Mapping[str, Any]]:
        """Execute a query and yield row mappings in order."""
        logger.debug("fetch: %s", statement)
        try:
            with self._reading() as conn:
                result = conn.execute(statement)
                for row in result.mappings():
                    yield row
        except SQLAlchemyError as e:
            raise StoreError("fetch", str(e)) from e

    def scalar(self, statement: Any) -> Optional[Any]:
        """Execute a query and return its first scalar, or None."""
        logger.debug("scalar: %s", statement)
        try:
            with self._reading() as conn:
                return conn.execute(statement).scalar()
        except SQLAlchemyError as e:
            raise StoreError("scalar", str(e)) from e

    def update_rows(self, table: Table, key: str, columns: Sequence[str],
                    rows: Iterable[Mapping[str, Any]]) -> int:
        """Update ``columns`` of each row matched by ``key`` in one executemany."""
        # Bind names must not collide with column names in UPDATE ... VALUES
        statement = (
            table.update()
            .where(table.c[key] == bindparam("b_key"))
            .values({column: bindparam(f"b_{column}") for column in columns})
        )
        params = [
            dict({"b_key": row[key]}, **{f"b_{column}": row[column] for column in columns})
            for row in rows
        ]
        if not params:
            return 0

        logger.debug("update_rows: %d row(s) of %r", len(params), table.name)
        try:
            with self._writing() as conn:
                conn.execute(statement, params)
        except SQLAlchemyError as e:
            raise StoreError("update", str(e), table=table.name) from e
        return len(params)

    def delete_ids(self, table: Table, key: str, ids: Sequence[Any]) -> int:
        """Delete rows whose ``key`` is in ``ids``."""
        ids = list(ids)
        if not ids:
            return 0

        logger.debug("delete_ids: %d id(s) from %r", len(ids), table.name)
        try:
            with self._writing() as conn:
                for start in range(0, len(ids), DELETE_CHUNK_SIZE):
                    chunk = ids[start:start + DELETE_CHUNK_SIZE]
                    conn.execute(table.delete().where(table.c[key].in_(chunk)))
        except SQLAlchemyError as e:
            raise StoreError("delete", str(e), table=table.name) from e
        return len(ids)

    def supports_transactions(self) -> bool:
        """Writes always run inside a transaction (ours or the caller's)."""
        return True

    def supports_batch_update(self) -> bool:
        """Updates are sent as a single executemany."""
        return True

    def describe(self) -> str:
        return f"{self.__class__.__name__}({self.bind.dialect.name})"
