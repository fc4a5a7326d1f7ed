"""Rebuild nesting from flat, depth-annotated tree slices.

A tree slice (as returned by ``Hierarchy.tree``) is an ordered mapping
``{id: {..., 'depth': n}}`` in preorder. Nesting is recovered with a stack
holding the current ancestor at each depth: a node at depth ``d`` belongs
to the nearest preceding node whose depth is smaller than ``d``.

The input must be in preorder. Any other order yields undefined nesting.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .node import TreeNode


def build_forest(tree: Mapping[Any, Mapping[str, Any]]) -> List[TreeNode]:
    """Build owned TreeNode objects from a preorder tree slice.

    Args:
        tree: Ordered mapping of id -> record with a ``depth`` entry

    Returns:
        Top-level nodes, each owning its children
    """
    roots: List[TreeNode] = []
    ancestors: List[TreeNode] = []

    for key, record in tree.items():
        node = TreeNode(key, dict(record))
        while ancestors and ancestors[-1].depth >= node.depth:
            ancestors.pop()
        if ancestors:
            ancestors[-1].children.append(node)
        else:
            roots.append(node)
        ancestors.append(node)

    return roots


def _forest_from_nest(nest: Mapping[Any, Mapping], tree: Mapping[Any, Mapping[str, Any]]) -> List[TreeNode]:
    roots: List[TreeNode] = []
    work = [(nest, roots)]
    while work:
        level, target = work.pop()
        for key, kids in level.items():
            node = TreeNode(key, dict(tree[key]))
            target.append(node)
            if kids:
                work.append((kids, node.children))
    return roots


def forest_to_nest(forest: Iterable[TreeNode]) -> Dict[Any, Dict]:
    """Render TreeNodes as nested ``{key: {child_key: {...}}}`` dicts."""
    nest: Dict[Any, Dict] = {}
    work = [(list(forest), nest)]
    while work:
        nodes, target = work.pop()
        for node in nodes:
            branch: Dict[Any, Dict] = {}
            target[node.key] = branch
            if node.children:
                work.append((node.children, branch))
    return nest


def nestify(tree: Mapping[Any, Mapping[str, Any]]) -> Dict[Any, Dict]:
    """Create a nested dict of ids from a preorder tree slice.

    Example:
        >>> nestify(hier.tree('name', 'id', 6))
        {6: {7: {8: {}}, 9: {}, 10: {}}}
    """
    return forest_to_nest(build_forest(tree))


def lister(tree: Mapping[Any, Mapping[str, Any]], nest: Optional[Mapping[Any, Mapping]] = None) -> List[Any]:
    """Create a nested listing keyed by each node's first column value.

    Leaves are emitted as plain values, branches as one-entry dicts
    mapping the value to the listing of its children.

    Args:
        tree: Preorder tree slice
        nest: Nesting to follow instead of the one implied by ``tree``

    Example:
        >>> lister(hier.tree('name', 'id', 6))
        [{'Portable Electronics': [{'MP3 Players': ['Flash']}, 'CD Players', '2 Way Radios']}]
    """
    forest = build_forest(tree) if nest is None else _forest_from_nest(nest, tree)

    listing: List[Any] = []
    work = [(forest, listing)]
    while work:
        nodes, target = work.pop()
        for node in nodes:
            if node.children:
                branch: List[Any] = []
                target.append({node.label(): branch})
                work.append((node.children, branch))
            else:
                target.append(node.label())
    return listing


def flatten(nest: Mapping[Any, Mapping], prefix: Sequence[Any] = ()) -> List[List[Any]]:
    """Flatten a nested dict into one root-to-leaf id list per leaf.

    Args:
        nest: As returned by ``nestify``
        prefix: Ancestors to prepend to every path

    Example:
        >>> flatten({6: {7: {8: {}}, 9: {}, 10: {}}})
        [[6, 7, 8], [6, 9], [6, 10]]
    """
    paths: List[List[Any]] = []
    stack = [(key, kids, list(prefix)) for key, kids in reversed(list(nest.items()))]

    while stack:
        key, kids, path = stack.pop()
        path = path + [key]
        if kids:
            stack.extend((k, v, path) for k, v in reversed(list(kids.items())))
        else:
            paths.append(path)

    return paths


def leaf_ids(tree: Mapping[Any, Mapping[str, Any]]) -> List[Any]:
    """Ids of the nodes that have no children within the slice, in preorder."""
    return [node.key for root in build_forest(tree) for node in root.walk() if node.is_leaf()]


def tree_stats(tree: Mapping[Any, Mapping[str, Any]]) -> Dict[str, Any]:
    """Get statistics about a tree slice.

    Returns:
        Dictionary with total/leaf/internal node counts, max depth,
        a per-depth histogram and the average branching factor
    """
    stats: Dict[str, Any] = {
        'total_nodes': 0,
        'leaf_nodes': 0,
        'max_depth': 0,
        'depths': {}
    }

    forest = build_forest(tree)
    for root in forest:
        for node in root.walk():
            stats['total_nodes'] += 1
            if node.is_leaf():
                stats['leaf_nodes'] += 1
            stats['max_depth'] = max(stats['max_depth'], node.depth)
            stats['depths'][node.depth] = stats['depths'].get(node.depth, 0) + 1

    stats['internal_nodes'] = stats['total_nodes'] - stats['leaf_nodes']
    stats['average_branching'] = (
        (stats['total_nodes'] - len(forest)) / stats['internal_nodes']
        if stats['internal_nodes'] > 0 else 0
    )

    return stats
