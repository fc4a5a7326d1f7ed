"""Value types shared by the numbering and reconstruction code.

``NestedSetValues`` is what refresh computes for one row. ``TreeNode`` is
the owned, in-memory form of a tree slice: every node holds its own list
of children, so nothing in a reconstructed tree is shared between parents.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, NamedTuple


class NestedSetValues(NamedTuple):
    """Nested-set bookkeeping for a single row."""

    level: int
    lft: int
    rgt: int

    @property
    def descendant_count(self) -> int:
        """Number of descendants implied by the range width."""
        return (self.rgt - self.lft - 1) // 2

    def contains(self, other: "NestedSetValues") -> bool:
        """Check whether ``other`` lies strictly inside this range."""
        return self.lft < other.lft and other.rgt < self.rgt

    def as_row(self, level_column: str = "level", lft_column: str = "lft",
               rgt_column: str = "rgt") -> Dict[str, int]:
        """Map the values onto column names for an update."""
        return {level_column: self.level, lft_column: self.lft, rgt_column: self.rgt}


@dataclass
class TreeNode:
    """A node of a reconstructed tree.

    Attributes:
        key: Node id (or any key the caller chose)
        record: The tree-slice record for the node (columns, parent, depth)
        children: Owned, ordered list of child nodes
    """

    key: Any
    record: Dict[str, Any] = field(default_factory=dict)
    children: List["TreeNode"] = field(default_factory=list)

    @property
    def depth(self) -> int:
        return self.record.get("depth", 0)

    def is_leaf(self) -> bool:
        """Check if this node has no children."""
        return not self.children

    def label(self) -> Any:
        """Return the first value of the record, or the key if it is empty."""
        for value in self.record.values():
            return value
        return self.key

    def walk(self) -> Iterator["TreeNode"]:
        """Yield this node and its descendants in preorder."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(key={self.key!r}, children={len(self.children)})"
