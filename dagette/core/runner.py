from __future__ import annotations

"""Per-run execution unit bound to one node declaration.

A runner waits for its parents, combines their outputs into
``{parent_name: output}`` and calls the node's ``run`` function. Runners are
created by :meth:`CompiledDag.build_runners` and must not be reused across
runs.
"""

import inspect
from contextlib import AsyncExitStack
from logging import getLogger
from typing import Any, Callable, Dict, List, Optional, Sequence

import anyio

from dagette.cache import NodeResultCache, cache_key
from dagette.telemetry import TelemetryConfig
from dagette.utils.events import (
    Event,
    EventCallback,
    NodeCached,
    NodeCancelled,
    NodeFailed,
    NodeFinished,
    NodeStarted,
    NodeWaiting,
    safe_emit,
)

from .errors import ParentFailedError
from .node import DagNode, NodeInput
from .result import NodeResult, NodeState

__all__ = ["DagNodeRunner"]

log = getLogger(__name__)


class DagNodeRunner:  # noqa: D101
    def __init__(
        self,
        *,
        name: str,
        dag_name: str,
        config: DagNode,
        context: Any,
        root_input: Any,
        event_cb: EventCallback | None = None,
        telemetry: TelemetryConfig | None = None,
        cache: NodeResultCache | None = None,
        autorun: Callable[[], bool] | None = None,
        semaphores: Sequence[Any] | None = None,
    ):
        self.name = name
        self.dag_name = dag_name
        self.config = config
        self.context = context
        self.root_input = root_input
        self.event_cb = event_cb
        self.telemetry = telemetry
        self.cache = cache
        self.autorun = autorun
        self.semaphores = list(semaphores or [])

        self.parents: List[DagNodeRunner] = []
        self.children: List[DagNodeRunner] = []

        self.state = NodeState.PENDING
        self.output: Any = None
        self.error: Optional[BaseException] = None

        self._started = False
        self._triggered = False
        # anyio events need a running loop, so they are created on first use
        self._done: anyio.Event | None = None
        self._go: anyio.Event | None = None

    def __repr__(self) -> str:
        return f"<DagNodeRunner {self.dag_name}/{self.name} {self.state.value}>"

    # ------------------------------------------------------------------ #
    def init(self, parents: Sequence["DagNodeRunner"]) -> None:
        """Bind the parent runners; called once wiring is complete."""
        self.parents = list(parents)
        for parent in self.parents:
            parent.children.append(self)

    def trigger(self) -> None:
        """Let a runner held back by ``autorun`` proceed."""
        self._triggered = True
        if self._go is not None:
            self._go.set()

    def result(self) -> NodeResult:
        return NodeResult(self.name, self.state, self.output, self.error)

    async def wait(self) -> NodeResult:
        """Block until this runner reaches a terminal state."""
        if not self.state.terminal:
            await self._done_event().wait()
        return self.result()

    # ------------------------------------------------------------------ #
    async def run(self) -> NodeResult:
        """Execute the node once parents are done. Safe to call repeatedly."""
        if self._started:
            return await self.wait()
        self._started = True

        done = self._done_event()
        try:
            await self._run()
        except anyio.get_cancelled_exc_class():
            self.state = NodeState.CANCELLED
            raise
        finally:
            done.set()
        return self.result()

    async def _run(self) -> None:
        for parent in self.parents:
            await parent.wait()

        failed = [p.name for p in self.parents if p.state is not NodeState.FINISHED]
        if failed and not self.config.tolerate_parent_errors:
            self.state = NodeState.CANCELLED
            self.error = ParentFailedError(self.name, failed)
            log.info("node '%s' cancelled, failed parent(s): %s", self.name, failed)
            self._emit(NodeCancelled, failed_parents=tuple(failed))
            return

        if self.parents and self.autorun is not None and not self._triggered:
            try:
                proceed = self.autorun()
            except Exception as e:  # noqa: BLE001 – stored on the runner
                self._fail(e)
                return
            if not proceed:
                self.state = NodeState.WAITING
                self._emit(NodeWaiting)
                if self._go is None:
                    self._go = anyio.Event()
                if not self._triggered:
                    await self._go.wait()

        combined: Dict[str, Any] = {
            p.name: p.output for p in self.parents if p.state is NodeState.FINISHED
        }

        key: str | None = None
        if self.config.cache and self.cache is not None:
            try:
                key = cache_key(self.dag_name, self.name, combined, self.root_input)
                hit, value = self.cache.get(key)
            except Exception as e:  # noqa: BLE001
                self._fail(e)
                return
            if hit:
                self.output = value
                self.state = NodeState.FINISHED
                log.debug("node '%s' served from cache", self.name)
                self._emit(NodeCached, output=value)
                return

        async with AsyncExitStack() as stack:
            for sem in self.semaphores:
                await stack.enter_async_context(sem)

            self.state = NodeState.RUNNING
            self._emit(NodeStarted)
            args = NodeInput(
                name=self.name,
                dag_name=self.dag_name,
                input=combined,
                root_input=self.root_input,
                context=self.context,
            )
            try:
                output = await self._call(args)
                if self.config.output_model is not None:
                    output = self.config.output_model.model_validate(output)
            except Exception as e:  # noqa: BLE001 – stored on the runner
                self._fail(e)
                return

        if key is not None:
            try:
                self.cache.set(key, output)
            except Exception as e:  # noqa: BLE001
                # A cache that cannot store must not discard a computed result.
                log.warning("node '%s' result not cached: %s", self.name, e)
        self.output = output
        self.state = NodeState.FINISHED
        self._emit(NodeFinished, output=output)

    async def _call(self, args: NodeInput) -> Any:
        fn = self.config.run
        if inspect.iscoroutinefunction(fn):
            return await fn(args)
        out = await anyio.to_thread.run_sync(fn, args)
        if inspect.isawaitable(out):
            out = await out
        return out

    # ------------------------------------------------------------------ #
    def _fail(self, error: Exception) -> None:
        self.state = NodeState.ERROR
        self.error = error
        log.warning("node '%s' in '%s' failed: %s", self.name, self.dag_name, error)
        self._emit(NodeFailed, error=error)

    def _done_event(self) -> anyio.Event:
        if self._done is None:
            self._done = anyio.Event()
        return self._done

    def _emit(self, event_type: type[Event], **fields: Any) -> None:
        telemetry = self.telemetry
        evt = event_type(
            dag_name=self.dag_name,
            node=self.name,
            run_id=telemetry.run_id if telemetry else None,
            metadata=dict(telemetry.metadata) if telemetry else {},
            **fields,
        )
        safe_emit(self.event_cb, evt)
