"""Core sub-package public interface."""

from __future__ import annotations

from .analyze import DagInfo, analyze_dag  # noqa: F401 – re-export
from .compile import BuiltRunners, CompiledDag, collapse_output  # noqa: F401
from .executor import DagExecutor  # noqa: F401
from .node import OUTPUT_NODE_NAME, Dag, DagNode, NamedDagNode, NodeInput  # noqa: F401
from .result import NodeResult, NodeState  # noqa: F401
from .runner import DagNodeRunner  # noqa: F401
