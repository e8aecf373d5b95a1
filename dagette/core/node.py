from __future__ import annotations

"""Node and DAG declarations.

A :class:`DagNode` is the static, user-authored description of one step.
A :class:`Dag` groups named nodes with a factory for the per-run context.
Neither is mutated by the compiler.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Type

from pydantic import BaseModel

__all__ = ["OUTPUT_NODE_NAME", "DagNode", "Dag", "NamedDagNode", "NodeInput"]

# Reserved for the synthetic node that collects leaf outputs.
OUTPUT_NODE_NAME = "__output"


@dataclass(frozen=True, slots=True)
class NodeInput:
    """Arguments handed to a node's ``run`` function."""

    name: str
    dag_name: str
    input: Mapping[str, Any]  # parent name -> parent output
    root_input: Any
    context: Any


@dataclass(frozen=True)
class DagNode:  # noqa: D101
    run: Callable[[NodeInput], Any]
    parents: Tuple[str, ...] = ()
    tolerate_parent_errors: bool = False
    cache: bool = False
    output_model: Optional[Type[BaseModel]] = None
    description: str = ""

    def __post_init__(self):
        # accept any iterable of names, store an immutable tuple
        object.__setattr__(self, "parents", tuple(self.parents or ()))


def _empty_context() -> Dict[str, Any]:
    return {}


@dataclass(frozen=True)
class Dag:  # noqa: D101
    name: str
    nodes: Mapping[str, DagNode]
    context: Callable[[], Any] = field(default=_empty_context)


@dataclass(frozen=True, slots=True)
class NamedDagNode:
    """A :class:`DagNode` annotated with its own name."""

    name: str
    node: DagNode

    @property
    def parents(self) -> Tuple[str, ...]:
        return self.node.parents

    @property
    def run(self) -> Callable[[NodeInput], Any]:
        return self.node.run

    @property
    def tolerate_parent_errors(self) -> bool:
        return self.node.tolerate_parent_errors
