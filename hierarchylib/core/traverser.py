"""Nested-set numbering for hierarchylib.

The traverser walks an adjacency map (parent id -> ordered child ids)
depth-first from the sentinel root and assigns ``lft`` on entry and
``rgt`` on exit from a single increasing counter. The walk uses an
explicit stack, so deep hierarchies never hit the recursion limit.
"""

from enum import Enum
from typing import Any, Dict, Hashable, Iterable, Iterator, List, NamedTuple, Optional, Tuple

from .node import NestedSetValues


class VisitEvent(Enum):
    """Traversal events emitted by the numbering walk."""
    ENTER = "enter"   # Pre-visit, assigns lft
    EXIT = "exit"     # Post-visit, assigns rgt


class NumberingResult(NamedTuple):
    """Outcome of numbering an adjacency map.

    Attributes:
        values: Nested-set values per node id, in ascending id order
        orphans: Ids that were never reached from the root
    """

    values: Dict[Any, NestedSetValues]
    orphans: Tuple[Any, ...]


_DONE = object()


def build_children_map(pairs: Iterable[Tuple[Hashable, Hashable]]) -> Dict[Any, List[Any]]:
    """Group ``(id, parent)`` pairs into a parent -> children mapping.

    Children keep the order in which the pairs were produced, which is
    what makes the caller's ordering column control sibling order.

    Args:
        pairs: Iterable of (id, parent) tuples

    Returns:
        Dict mapping each parent id to its ordered list of child ids
    """
    children: Dict[Any, List[Any]] = {}
    for node_id, parent in pairs:
        children.setdefault(parent, []).append(node_id)
    return children


def _sort_key(node_id: Any) -> Tuple[int, Any]:
    # Numbers first, then everything else by string form, so mixed id
    # types still produce a stable write order.
    if isinstance(node_id, (int, float)) and not isinstance(node_id, bool):
        return (0, node_id)
    return (1, str(node_id))


class NestedSetNumbering:
    """Depth-first nested-set numbering over an adjacency map.

    Example:
        children = build_children_map([(1, 0), (2, 1), (3, 1)])
        result = NestedSetNumbering().number(children)
        result.values[1]   # NestedSetValues(level=0, lft=1, rgt=6)
    """

    def __init__(self, root_value: Any = 0):
        """Initialize the numbering.

        Args:
            root_value: Sentinel parent value of root-level nodes
        """
        self.root_value = root_value

    def events(self, children: Dict[Any, List[Any]]) -> Iterator[Tuple[VisitEvent, Any, int]]:
        """Walk the adjacency map and yield ENTER/EXIT events.

        The sentinel root is entered first at level -1 and exited last.
        A node reached twice (duplicate ids in the input) is only
        visited the first time.

        Yields:
            Tuples of (event, node_id, level)
        """
        visited = {self.root_value}
        stack = [(self.root_value, -1, iter(children.get(self.root_value, ())))]
        yield (VisitEvent.ENTER, self.root_value, -1)

        while stack:
            node_id, level, pending = stack[-1]
            child = next(pending, _DONE)

            if child is _DONE:
                stack.pop()
                yield (VisitEvent.EXIT, node_id, level)
                continue

            if child in visited:
                continue
            visited.add(child)

            yield (VisitEvent.ENTER, child, level + 1)
            stack.append((child, level + 1, iter(children.get(child, ()))))

    def number(self, children: Dict[Any, List[Any]],
               known_ids: Optional[Iterable[Any]] = None) -> NumberingResult:
        """Compute level/lft/rgt for every node reachable from the root.

        Args:
            children: Parent -> ordered children mapping
            known_ids: Every id present in the store. Defaults to all ids
                appearing as children in ``children``.

        Returns:
            NumberingResult with values sorted by id and the unreachable ids
        """
        if known_ids is None:
            known_ids = [node_id for kids in children.values() for node_id in kids]
        known = list(dict.fromkeys(known_ids))

        # Arena: one slot per known id, plus one for the sentinel.
        index: Dict[Any, int] = {self.root_value: 0}
        for node_id in known:
            index.setdefault(node_id, len(index))
        slots = len(index)
        levels: List[Optional[int]] = [None] * slots
        lfts: List[Optional[int]] = [None] * slots
        rgts: List[Optional[int]] = [None] * slots

        counter = 0
        for event, node_id, level in self.events(children):
            slot = index.get(node_id)
            if slot is None:
                # Child listed under a parent but absent from known_ids
                slot = index[node_id] = len(levels)
                levels.append(None)
                lfts.append(None)
                rgts.append(None)

            if event is VisitEvent.ENTER:
                levels[slot] = level
                lfts[slot] = counter
            else:
                rgts[slot] = counter
            counter += 1

        values: Dict[Any, NestedSetValues] = {}
        orphans: List[Any] = []
        for node_id in sorted(index, key=_sort_key):
            if node_id == self.root_value:
                continue
            slot = index[node_id]
            if lfts[slot] is None:
                orphans.append(node_id)
                continue
            values[node_id] = NestedSetValues(levels[slot], lfts[slot], rgts[slot])

        return NumberingResult(values, tuple(orphans))


def number_pairs(pairs: Iterable[Tuple[Hashable, Hashable]], root_value: Any = 0) -> NumberingResult:
    """Convenience wrapper: number ``(id, parent)`` pairs directly."""
    pairs = list(pairs)
    children = build_children_map(pairs)
    return NestedSetNumbering(root_value).number(children, [node_id for node_id, _ in pairs])
