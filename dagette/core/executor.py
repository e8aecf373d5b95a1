from __future__ import annotations
"""Drive a compiled DAG to completion.

Every run builds a fresh runner graph, starts all runners in one anyio task
group and returns the synthetic output node's value. Runners wait on their
own parents, so independent branches execute concurrently.
"""
from functools import partial
from logging import getLogger
from typing import Any, Optional

import anyio

from .compile import BuiltRunners, CompiledDag

__all__ = ["DagExecutor"]

log = getLogger(__name__)


class DagExecutor:  # noqa: D101
    def __init__(self, dag: CompiledDag):
        self.dag = dag
        self.last_runners: Optional[BuiltRunners] = None

    # ------------------------------------------------------------------ #
    async def run(self, input: Any, **build_kwargs: Any) -> Any:  # noqa: D401
        """Run the DAG on *input* and return its collapsed output.

        *build_kwargs* are forwarded to :meth:`CompiledDag.build_runners`.
        Raises the output node's error if it could not finish.

        With an ``autorun`` predicate that returns False, every non-root
        runner parks in ``waiting`` and this call does not return until
        something calls ``trigger()`` on each of them, typically an
        ``event_cb`` reacting to ``NodeWaiting`` via :attr:`last_runners`.
        """
        built = self.dag.build_runners(input=input, **build_kwargs)
        self.last_runners = built
        log.debug("running DAG '%s' (%d runners)", self.dag.name, len(built.runners))

        async with anyio.create_task_group() as tg:
            for runner in built.runners.values():
                tg.start_soon(runner.run)
            tg.start_soon(built.output_node.run)

        return built.output_node.result().unwrap()

    def run_sync(self, input: Any, **build_kwargs: Any) -> Any:  # noqa: D401
        """Blocking wrapper around :meth:`run`."""
        return anyio.run(partial(self.run, input, **build_kwargs))
