"""Dagette: validated, wired workflow DAGs.

Main components:
* `DagNode`: one step – a work function plus the names of its parents
* `Dag`: a named mapping of nodes and a per-run context factory
* `CompiledDag`: structural validation + `build_runners` per run
* `DagExecutor`: run a compiled DAG and get its collapsed output
"""

# Version info
__version__ = "0.1.0"

# Core components
from dagette.core.node import Dag, DagNode, NodeInput, OUTPUT_NODE_NAME
from dagette.core.analyze import DagInfo, analyze_dag
from dagette.core.compile import CompiledDag, BuiltRunners
from dagette.core.executor import DagExecutor
from dagette.core.runner import DagNodeRunner
from dagette.core.result import NodeResult, NodeState
from dagette.core.errors import (
    DagError,
    EmptyDagError,
    UnknownParentError,
    CycleError,
    ReservedNodeNameError,
    ParentFailedError,
)

# Run-scoped collaborators
from dagette.cache import MemoryCache, NodeResultCache
from dagette.telemetry import TelemetryConfig

# Export all important symbols
__all__ = [
    # Declarations
    "Dag",
    "DagNode",
    "NodeInput",
    "OUTPUT_NODE_NAME",

    # Compilation / execution
    "DagInfo",
    "analyze_dag",
    "CompiledDag",
    "BuiltRunners",
    "DagExecutor",
    "DagNodeRunner",
    "NodeResult",
    "NodeState",

    # Errors
    "DagError",
    "EmptyDagError",
    "UnknownParentError",
    "CycleError",
    "ReservedNodeNameError",
    "ParentFailedError",

    # Collaborators
    "MemoryCache",
    "NodeResultCache",
    "TelemetryConfig",
]
