from __future__ import annotations

"""Errors raised while compiling or running a DAG.

Construction errors derive from :class:`DagError` (itself a ``ValueError``)
and are always raised before any runner exists.
"""

from typing import Sequence, Tuple

__all__ = [
    "DagError",
    "EmptyDagError",
    "UnknownParentError",
    "CycleError",
    "ReservedNodeNameError",
    "ParentFailedError",
]


class DagError(ValueError):  # noqa: D101
    pass


class EmptyDagError(DagError):  # noqa: D101
    def __init__(self, message: str = "DAG has no nodes"):
        super().__init__(message)


class UnknownParentError(DagError):
    """A node lists a parent that is not declared in the same DAG."""

    def __init__(self, node: str, parent: str):
        super().__init__(f"Node '{node}' has unknown parent '{parent}'")
        self.node = node
        self.parent = parent


class CycleError(DagError):
    """The parent relation loops back on itself.

    *path* ends with the repeated name, e.g. ``("a", "b", "a")``.
    """

    def __init__(self, path: Sequence[str]):
        self.path: Tuple[str, ...] = tuple(path)
        super().__init__(f"Cycle detected: {' -> '.join(self.path)}")


class ReservedNodeNameError(DagError):  # noqa: D101
    def __init__(self, name: str):
        super().__init__(f"Node name '{name}' is reserved")
        self.name = name


class ParentFailedError(RuntimeError):
    """Runtime error stored on a runner skipped because a parent failed."""

    def __init__(self, node: str, parents: Sequence[str]):
        self.node = node
        self.parents = tuple(parents)
        super().__init__(
            f"Node '{node}' cancelled: parent(s) {', '.join(self.parents)} did not finish"
        )
