from __future__ import annotations

"""Static structure checks for a DAG declaration (no side effects).

``analyze_dag(nodes)`` returns the root and leaf node names, raising
:class:`UnknownParentError` or :class:`CycleError` when the declaration is
not a well-formed DAG.
"""

from dataclasses import dataclass
from logging import getLogger
from typing import Dict, Iterator, List, Mapping, Set, Tuple

from .errors import CycleError, UnknownParentError
from .node import DagNode

__all__ = ["DagInfo", "analyze_dag"]

log = getLogger(__name__)


@dataclass(frozen=True)
class DagInfo:  # noqa: D101
    root_nodes: Tuple[str, ...]
    leaf_nodes: Tuple[str, ...]


def analyze_dag(nodes: Mapping[str, DagNode]) -> DagInfo:
    """Return the roots and leaves of *nodes*, validating every parent edge.

    Each node's parent chain is walked depth-first while carrying the path
    from the starting node. A parent that reappears on the current path is a
    cycle; one reached again through a sibling path (diamond) is not.
    """
    # every node is a leaf until something lists it as a parent
    leaves: Dict[str, None] = dict.fromkeys(nodes)
    walked: Set[str] = set()  # nodes whose whole ancestry has been checked
    roots: List[str] = []

    for name, node in nodes.items():
        if not node.parents:
            roots.append(name)
        _walk(name, nodes, leaves, walked)

    info = DagInfo(root_nodes=tuple(roots), leaf_nodes=tuple(leaves))
    log.debug(
        "analyzed %d nodes: %d root(s), %d leaf node(s)",
        len(nodes),
        len(info.root_nodes),
        len(info.leaf_nodes),
    )
    return info


def _walk(
    start: str,
    nodes: Mapping[str, DagNode],
    leaves: Dict[str, None],
    walked: Set[str],
) -> None:
    if start in walked:
        return

    # (name, remaining parents, path from *start*)
    stack: List[Tuple[str, Iterator[str], Tuple[str, ...]]] = [
        (start, iter(nodes[start].parents), (start,))
    ]
    while stack:
        name, parents, path = stack[-1]
        parent = next(parents, None)
        if parent is None:
            walked.add(name)
            stack.pop()
            continue

        leaves.pop(parent, None)

        if parent not in nodes:
            raise UnknownParentError(name, parent)
        if parent in path:
            raise CycleError(path + (parent,))
        if parent in walked:
            continue

        stack.append((parent, iter(nodes[parent].parents), path + (parent,)))
