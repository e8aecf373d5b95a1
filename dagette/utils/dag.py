from __future__ import annotations

"""DAG helpers (no side-effects).

children_of(nodes) maps each node to the nodes that list it as a parent.
iter_nodes(dag) yields (depth, name) depth-first from the roots.
build_rich_tree(dag) returns a Rich *Tree* ready for printing.
"""
from dataclasses import dataclass
from typing import Dict, Iterator, List, Mapping, Optional, Set, Tuple

from dagette.core.compile import CompiledDag
from dagette.core.node import OUTPUT_NODE_NAME, DagNode

__all__ = [
    "RenderOptions",
    "children_of",
    "iter_nodes",
    "build_rich_tree",
]


@dataclass
class RenderOptions:  # noqa: D101
    icons_on: bool = True
    max_branches: Optional[int] = None  # children shown per node before "+N more"
    show_output: bool = True


# --------------------------------------------------------------------------- #
# Traversal
# --------------------------------------------------------------------------- #

def children_of(nodes: Mapping[str, DagNode]) -> Dict[str, List[str]]:  # noqa: D401
    """Return ``{name: [child, ...]}`` in declaration order."""
    children: Dict[str, List[str]] = {name: [] for name in nodes}
    for name, node in nodes.items():
        for parent in node.parents:
            children[parent].append(name)
    return children


def iter_nodes(dag: CompiledDag) -> Iterator[Tuple[int, str]]:  # noqa: D401
    """Yield *(depth, name)* for every node reachable from the roots (DFS).

    A node shared by several parents is yielded once, under the first one.
    """
    children = children_of(dag.config.nodes)
    seen: Set[str] = set()

    def _walk(name: str, depth: int):
        if name in seen:
            return
        seen.add(name)
        yield depth, name
        for child in children[name]:
            yield from _walk(child, depth + 1)

    for root in dag.root_nodes:
        yield from _walk(root, 0)


# --------------------------------------------------------------------------- #
# Rich-aware tree builder (import lazily to avoid hard dep at import time)
# --------------------------------------------------------------------------- #

def build_rich_tree(dag: CompiledDag, opts: RenderOptions | None = None):  # noqa: D401
    """Return a *rich.tree.Tree* visualisation of *dag* (side-effect-free)."""
    from rich.tree import Tree  # local import keeps this module lightweight

    opts = opts or RenderOptions()
    nodes = dag.config.nodes
    children = children_of(nodes)
    leaves = set(dag.leaf_nodes)
    seen: Set[str] = set()

    tree = Tree(f"[bold]Execution DAG[/] [dim]{dag.name}[/]")

    def _label(name: str) -> str:
        node = nodes[name]
        icon = ""
        if opts.icons_on:
            icon = "🌱 " if not node.parents else ("🍂 " if name in leaves else "• ")
        label = f"{icon}[cyan]{name}[/]"
        if node.description:
            label += f" [dim]– {node.description}[/]"
        if node.cache:
            label += " [magenta](cached)[/]"
        return label

    def _add(parent: "Tree", name: str):
        if name in seen:
            parent.add(f"[dim]{name} (see above)[/]")
            return
        seen.add(name)
        branch = parent.add(_label(name))
        kids = children[name]
        shown = kids if opts.max_branches is None else kids[: opts.max_branches]
        for child in shown:
            _add(branch, child)
        if len(kids) > len(shown):
            branch.add(f"[dim]+{len(kids) - len(shown)} more…[/]")

    for root in dag.root_nodes:
        _add(tree, root)

    if opts.show_output:
        tree.add(f"[bold green]{OUTPUT_NODE_NAME}[/] [dim]← {', '.join(dag.leaf_nodes)}[/]")
    return tree
