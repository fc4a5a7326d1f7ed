"""Configuration system for hierarchylib.

This module defines how users describe their hierarchical table, which
store to connect to, and how tree reads filter on depth.
"""

import operator
import os
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set


@dataclass
class HierarchyConfig:
    """Describes the hierarchical table and its bookkeeping columns.

    Only ``id_column`` and ``parent_column`` are ever read from user data.
    ``level``, ``lft`` and ``rgt`` are owned by hierarchylib and overwritten
    on every refresh.
    """

    table: str
    id_column: str = "id"
    parent_column: str = "parent"
    level_column: str = "level"
    lft_column: str = "lft"
    rgt_column: str = "rgt"
    root_value: Any = 0  # parent value of root-level nodes

    @property
    def nested_set_columns(self) -> List[str]:
        """Columns written by refresh, in write order."""
        return [self.level_column, self.lft_column, self.rgt_column]

    def validate(self) -> List[str]:
        """Validate configuration for consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not self.table:
            errors.append("table name cannot be empty")

        names = {
            "id_column": self.id_column,
            "parent_column": self.parent_column,
            "level_column": self.level_column,
            "lft_column": self.lft_column,
            "rgt_column": self.rgt_column,
        }
        for label, name in names.items():
            if not name:
                errors.append(f"{label} cannot be empty")

        seen: Dict[str, str] = {}
        for label, name in names.items():
            if name and name in seen:
                errors.append(f"{label} duplicates {seen[name]} ({name!r})")
            seen.setdefault(name, label)

        return errors


@dataclass
class StoreConfig:
    """Connection settings for the default SQLAlchemy store."""

    url: str = "sqlite://"
    echo: bool = False

    @classmethod
    def from_env(cls) -> "StoreConfig":
        """Load store configuration from environment variables.

        Reads ``HIERARCHY_DATABASE_URL`` and ``HIERARCHY_SQL_ECHO``.
        """
        echo = os.environ.get("HIERARCHY_SQL_ECHO", "").strip().lower()
        return cls(
            url=os.environ.get("HIERARCHY_DATABASE_URL", cls.url),
            echo=echo in ("1", "true", "yes", "on"),
        )

    def create_engine(self, **kwargs):
        """Create a SQLAlchemy engine from this configuration."""
        from sqlalchemy import create_engine

        return create_engine(self.url, echo=self.echo, **kwargs)


_DEPTH_EXPRESSION = re.compile(r"^\s*depth\s*(<=|>=|<>|!=|==|=|<|>)\s*(-?\d+)\s*$", re.I)

_OPERATORS: Dict[str, Callable[[Any, Any], Any]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "=": operator.eq,
    "==": operator.eq,
    "!=": operator.ne,
    "<>": operator.ne,
}


@dataclass
class DepthFilter:
    """Depth restriction applied to tree reads after grouping.

    Works on any depth value that supports comparison operators, so the
    same filter compiles to a SQL clause or evaluates on plain ints.
    """

    min_depth: int = 0                          # Minimum depth to keep
    max_depth: Optional[int] = None             # Maximum depth to keep
    specific_depths: Optional[Set[int]] = None  # Only these specific depths
    exclude_depths: Optional[Set[int]] = None   # Never these depths

    @classmethod
    def parse(cls, expression: str) -> "DepthFilter":
        """Parse a ``"depth <op> N"`` expression such as ``"depth > 1"``.

        Raises:
            ValueError: If the expression is not a simple depth comparison
        """
        match = _DEPTH_EXPRESSION.match(expression or "")
        if not match:
            raise ValueError(f"Unsupported depth filter: {expression!r}")
        op, number = match.group(1), int(match.group(2))

        if op == "<":
            return cls(max_depth=number - 1)
        if op == "<=":
            return cls(max_depth=number)
        if op == ">":
            return cls(min_depth=number + 1)
        if op == ">=":
            return cls(min_depth=number)
        if op in ("=", "=="):
            return cls(specific_depths={number})
        return cls(exclude_depths={number})

    @staticmethod
    def is_expression(value: Any) -> bool:
        """Check whether ``value`` looks like a depth expression string."""
        return isinstance(value, str) and bool(_DEPTH_EXPRESSION.match(value))

    def conditions(self, depth) -> List[Any]:
        """Build comparison expressions against a depth expression.

        Args:
            depth: Depth value or SQL expression

        Returns:
            List of comparison results, all of which must hold
        """
        if self.specific_depths is not None:
            values = sorted(self.specific_depths)
            if len(values) == 1:
                return [depth == values[0]]
            return [depth.in_(values)]

        clauses = []
        if self.min_depth > 0:
            clauses.append(depth >= self.min_depth)
        if self.max_depth is not None:
            clauses.append(depth <= self.max_depth)
        for excluded in sorted(self.exclude_depths or ()):
            clauses.append(depth != excluded)
        return clauses

    def validate(self) -> List[str]:
        """Validate filter for consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []
        if self.min_depth < 0:
            errors.append("min_depth cannot be negative")
        if self.max_depth is not None:
            if self.max_depth < 0:
                errors.append("max_depth cannot be negative")
            if self.max_depth < self.min_depth:
                errors.append("max_depth cannot be less than min_depth")
        return errors


def coerce_depth_filter(having: Any) -> Optional[DepthFilter]:
    """Turn the ``having`` argument of a tree read into a DepthFilter.

    Accepts ``None``, a DepthFilter, or a ``"depth <op> N"`` string.
    """
    if having is None:
        return None
    if isinstance(having, DepthFilter):
        problems = having.validate()
        if problems:
            raise ValueError(f"Invalid depth filter: {'; '.join(problems)}")
        return having
    if isinstance(having, str):
        return DepthFilter.parse(having)
    raise ValueError(f"Unsupported depth filter type: {type(having).__name__}")
