from __future__ import annotations

"""Compile a :class:`Dag` declaration into per-run runner graphs.

``CompiledDag(dag)`` validates the structure once (fail-fast). Each call to
:meth:`CompiledDag.build_runners` then creates a fresh set of wired runners
plus the synthetic ``__output`` runner that collects the leaf outputs.
"""

from logging import getLogger
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple

from dagette.cache import NodeResultCache
from dagette.telemetry import TelemetryConfig
from dagette.utils.events import EventCallback

from .analyze import DagInfo, analyze_dag
from .errors import EmptyDagError, ReservedNodeNameError
from .node import OUTPUT_NODE_NAME, Dag, DagNode, NamedDagNode, NodeInput
from .runner import DagNodeRunner

__all__ = ["CompiledDag", "BuiltRunners", "collapse_output"]

log = getLogger(__name__)


class BuiltRunners(NamedTuple):  # noqa: D101
    runners: Dict[str, DagNodeRunner]
    output_node: DagNodeRunner


def collapse_output(combined: Optional[Mapping[str, Any]]) -> Any:
    """Reduce the leaf outputs ``{leaf_name: output}`` to the workflow result.

    * empty or ``None`` -> returned unchanged
    * a single leaf     -> its output, unwrapped
    * several leaves    -> the mapping itself
    """
    if combined and len(combined) == 1:
        return next(iter(combined.values()))
    return combined


def _run_output_node(args: NodeInput) -> Any:
    return collapse_output(args.input)


class CompiledDag:  # noqa: D101
    def __init__(self, dag: Dag):
        self.config = dag
        self.info: DagInfo = analyze_dag(dag.nodes)
        self.named_nodes: List[NamedDagNode] = [
            NamedDagNode(name=name, node=node) for name, node in dag.nodes.items()
        ]

        if not self.named_nodes:
            raise EmptyDagError()
        if OUTPUT_NODE_NAME in dag.nodes:
            raise ReservedNodeNameError(OUTPUT_NODE_NAME)

        log.debug(
            "compiled DAG '%s' (%d nodes, roots=%s, leaves=%s)",
            dag.name,
            len(self.named_nodes),
            list(self.info.root_nodes),
            list(self.info.leaf_nodes),
        )

    # ------------------------------------------------------------------ #
    @property
    def name(self) -> str:
        return self.config.name

    @property
    def root_nodes(self) -> Tuple[str, ...]:
        return self.info.root_nodes

    @property
    def leaf_nodes(self) -> Tuple[str, ...]:
        return self.info.leaf_nodes

    # ------------------------------------------------------------------ #
    def build_runners(
        self,
        *,
        input: Any,
        event_cb: EventCallback | None = None,
        context: Any = None,
        telemetry: TelemetryConfig | None = None,
        cache: NodeResultCache | None = None,
        autorun: Callable[[], bool] | None = None,
        semaphores: Sequence[Any] | None = None,
    ) -> BuiltRunners:
        """Create and wire a fresh runner for every node of the DAG.

        The same *context*, *cache* and *semaphores* are shared by all runners
        of this build. When *context* is omitted the DAG's context factory is
        called once.
        """
        if context is None:
            context = self.config.context()

        runners: Dict[str, DagNodeRunner] = {}
        for node in self.named_nodes:
            runners[node.name] = DagNodeRunner(
                name=node.name,
                dag_name=self.config.name,
                config=node.node,
                context=context,
                root_input=input,
                event_cb=event_cb,
                telemetry=telemetry,
                cache=cache,
                autorun=autorun,
                semaphores=semaphores,
            )

        # Wire only once every runner exists: declaration order is arbitrary.
        for runner in runners.values():
            runner.init([runners[name] for name in runner.config.parents])

        leaf_runners = [runners[name] for name in self.info.leaf_nodes]

        output_node = DagNodeRunner(
            name=OUTPUT_NODE_NAME,
            dag_name=self.config.name,
            config=DagNode(
                run=_run_output_node,
                parents=self.info.leaf_nodes,
                tolerate_parent_errors=True,
            ),
            context=context,
            root_input=input,
            event_cb=event_cb,
            telemetry=telemetry,
        )
        output_node.init(leaf_runners)

        return BuiltRunners(runners=runners, output_node=output_node)
