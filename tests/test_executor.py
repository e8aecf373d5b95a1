import threading

import anyio
import pytest
from pydantic import BaseModel

from dagette import (
    CompiledDag,
    Dag,
    DagExecutor,
    DagNode,
    MemoryCache,
    NodeState,
    ParentFailedError,
    TelemetryConfig,
)
from dagette.utils.events import NodeFailed, NodeFinished, NodeStarted, NodeWaiting, NodeCached


def _diamond(**overrides) -> CompiledDag:
    nodes = {
        "a": DagNode(run=lambda args: args.root_input + 1),
        "b": DagNode(run=lambda args: args.input["a"] * 2, parents=["a"]),
        "c": DagNode(run=lambda args: args.input["a"] * 3, parents=["a"]),
        "d": DagNode(run=lambda args: args.input["b"] + args.input["c"], parents=["b", "c"]),
    }
    nodes.update(overrides)
    return CompiledDag(Dag(name="diamond", nodes=nodes))


def _boom(args):
    raise RuntimeError("boom")


def test_diamond_single_leaf_is_unwrapped():
    # a=2, b=4, c=6, d=10
    assert DagExecutor(_diamond()).run_sync(1) == 10


def test_multiple_leaves_return_mapping():
    dag = CompiledDag(
        Dag(
            name="fan",
            nodes={
                "src": DagNode(run=lambda args: args.root_input),
                "R1": DagNode(run=lambda args: args.input["src"] + 1, parents=["src"]),
                "R2": DagNode(run=lambda args: args.input["src"] + 2, parents=["src"]),
            },
        )
    )
    assert DagExecutor(dag).run_sync(0) == {"R1": 1, "R2": 2}


def test_async_run_functions():
    async def _slow(args):
        await anyio.sleep(0.01)
        return "slow"

    dag = CompiledDag(Dag(name="async", nodes={"s": DagNode(run=_slow)}))
    assert DagExecutor(dag).run_sync(None) == "slow"


def test_failed_parent_cancels_child():
    executor = DagExecutor(_diamond(b=DagNode(run=_boom, parents=["a"])))
    # the only leaf was cancelled, so the output node receives nothing
    assert executor.run_sync(1) == {}

    runners = executor.last_runners.runners
    assert runners["a"].state is NodeState.FINISHED
    assert runners["b"].state is NodeState.ERROR
    assert str(runners["b"].error) == "boom"
    assert runners["c"].state is NodeState.FINISHED
    assert runners["d"].state is NodeState.CANCELLED
    assert isinstance(runners["d"].error, ParentFailedError)
    assert runners["d"].error.parents == ("b",)


def test_tolerant_child_gets_surviving_parents():
    seen = {}

    def _collect(args):
        seen.update(args.input)
        return sorted(args.input)

    executor = DagExecutor(
        _diamond(
            b=DagNode(run=_boom, parents=["a"]),
            d=DagNode(run=_collect, parents=["b", "c"], tolerate_parent_errors=True),
        )
    )
    assert executor.run_sync(1) == ["c"]
    assert seen == {"c": 6}


def test_output_node_tolerates_failed_leaf():
    dag = CompiledDag(
        Dag(
            name="leaves",
            nodes={
                "ok": DagNode(run=lambda args: "fine"),
                "bad": DagNode(run=_boom),
            },
        )
    )
    # one surviving leaf collapses to its scalar output
    assert DagExecutor(dag).run_sync(None) == "fine"


def test_context_shared_between_nodes():
    def _write(args):
        args.context["written"] = args.name
        return None

    def _read(args):
        return args.context["written"]

    ctx = {}
    dag = CompiledDag(
        Dag(
            name="ctx",
            nodes={"w": DagNode(run=_write), "r": DagNode(run=_read, parents=["w"])},
        )
    )
    assert DagExecutor(dag).run_sync(None, context=ctx) == "w"
    assert ctx == {"written": "w"}


def test_output_model_validation():
    class Summary(BaseModel):
        words: int

    dag = CompiledDag(
        Dag(
            name="typed",
            nodes={"s": DagNode(run=lambda args: {"words": "3"}, output_model=Summary)},
        )
    )
    assert DagExecutor(dag).run_sync(None) == Summary(words=3)


def test_output_model_rejects_bad_output():
    class Summary(BaseModel):
        words: int

    dag = CompiledDag(
        Dag(
            name="typed",
            nodes={"s": DagNode(run=lambda args: {"words": "many"}, output_model=Summary)},
        )
    )
    executor = DagExecutor(dag)
    assert executor.run_sync(None) == {}
    assert executor.last_runners.runners["s"].state is NodeState.ERROR


def test_cache_reused_across_runs():
    calls = []

    def _expensive(args):
        calls.append(args.root_input)
        return args.root_input * 10

    dag = CompiledDag(Dag(name="cached", nodes={"x": DagNode(run=_expensive, cache=True)}))
    cache = MemoryCache()
    events = []
    executor = DagExecutor(dag)

    assert executor.run_sync(2, cache=cache) == 20
    assert executor.run_sync(2, cache=cache, event_cb=events.append) == 20
    assert executor.run_sync(3, cache=cache) == 30

    assert calls == [2, 3]
    assert cache.hits == 1
    assert any(isinstance(e, NodeCached) and e.node == "x" for e in events)


def test_cache_ignored_when_node_not_cacheable():
    calls = []
    dag = CompiledDag(
        Dag(name="plain", nodes={"x": DagNode(run=lambda args: calls.append(1) or len(calls))})
    )
    cache = MemoryCache()
    executor = DagExecutor(dag)
    executor.run_sync(None, cache=cache)
    executor.run_sync(None, cache=cache)
    assert len(calls) == 2
    assert len(cache) == 0


def test_semaphore_limits_concurrency():
    running = 0
    peak = 0
    lock = threading.Lock()

    async def _work(args):
        nonlocal running, peak
        with lock:
            running += 1
            peak = max(peak, running)
        await anyio.sleep(0.01)
        with lock:
            running -= 1
        return args.name

    dag = CompiledDag(Dag(name="wide", nodes={f"n{i}": DagNode(run=_work) for i in range(5)}))

    async def main():
        sem = anyio.Semaphore(2)
        return await DagExecutor(dag).run(None, semaphores=[sem])

    result = anyio.run(main)
    assert set(result) == {f"n{i}" for i in range(5)}
    assert peak <= 2


def test_autorun_false_waits_for_trigger():
    executor = DagExecutor(_diamond())
    waiting = []

    def _on_event(evt):
        if isinstance(evt, NodeWaiting):
            waiting.append(evt.node)
            executor.last_runners.runners[evt.node].trigger()

    assert executor.run_sync(1, autorun=lambda: False, event_cb=_on_event) == 10
    # roots never wait
    assert sorted(waiting) == ["b", "c", "d"]


def test_events_carry_telemetry():
    events = []
    telemetry = TelemetryConfig(run_id="run-1", metadata={"user": "ann"})
    DagExecutor(_diamond()).run_sync(1, event_cb=events.append, telemetry=telemetry)

    started = [e.node for e in events if isinstance(e, NodeStarted)]
    finished = {e.node: e.output for e in events if isinstance(e, NodeFinished)}
    assert set(started) == {"a", "b", "c", "d", "__output"}
    assert finished["d"] == 10 and finished["__output"] == 10
    assert all(e.run_id == "run-1" and e.metadata == {"user": "ann"} for e in events)
    assert all(e.dag_name == "diamond" for e in events)


def test_failing_event_handler_does_not_break_run():
    def _bad(evt):
        raise ValueError("handler bug")

    assert DagExecutor(_diamond()).run_sync(1, event_cb=_bad) == 10


def test_failed_event_emitted():
    events = []
    DagExecutor(_diamond(b=DagNode(run=_boom, parents=["a"]))).run_sync(1, event_cb=events.append)
    failed = [e for e in events if isinstance(e, NodeFailed)]
    assert [e.node for e in failed] == ["b"]
    assert isinstance(failed[0].error, RuntimeError)


def test_run_is_idempotent():
    calls = []
    dag = CompiledDag(Dag(name="once", nodes={"x": DagNode(run=lambda args: calls.append(1))}))
    built = dag.build_runners(input=None)

    async def main():
        async with anyio.create_task_group() as tg:
            tg.start_soon(built.runners["x"].run)
            tg.start_soon(built.runners["x"].run)
        return await built.runners["x"].run()

    result = anyio.run(main)
    assert result.ok
    assert calls == [1]


def test_unwrap_raises_when_output_node_unfinished():
    built = _diamond().build_runners(input=1)
    with pytest.raises(RuntimeError, match="has not finished"):
        built.output_node.result().unwrap()


def test_raising_autorun_marks_runner_failed():
    def _broken_autorun():
        raise RuntimeError("predicate bug")

    events = []
    executor = DagExecutor(_diamond())
    assert executor.run_sync(1, autorun=_broken_autorun, event_cb=events.append) == {}

    runners = executor.last_runners.runners
    assert runners["a"].state is NodeState.FINISHED
    assert runners["b"].state is NodeState.ERROR
    assert str(runners["b"].error) == "predicate bug"
    assert runners["d"].state is NodeState.CANCELLED
    assert {e.node for e in events if isinstance(e, NodeFailed)} == {"b", "c"}


class _FailingLookupCache:
    def get(self, key):
        raise OSError("cache down")

    def set(self, key, value):
        raise AssertionError("set should not be reached")


class _FailingStoreCache:
    def __init__(self):
        self.lookups = 0

    def get(self, key):
        self.lookups += 1
        return False, None

    def set(self, key, value):
        raise OSError("disk full")


def _cached_pair() -> CompiledDag:
    return CompiledDag(
        Dag(
            name="cached-pair",
            nodes={
                "a": DagNode(run=lambda args: args.root_input),
                "b": DagNode(run=lambda args: args.input["a"] + 1, parents=["a"], cache=True),
            },
        )
    )


def test_failing_cache_lookup_marks_runner_failed():
    executor = DagExecutor(_cached_pair())
    assert executor.run_sync(0, cache=_FailingLookupCache()) == {}

    b = executor.last_runners.runners["b"]
    assert b.state is NodeState.ERROR
    assert isinstance(b.error, OSError)
    assert executor.last_runners.output_node.state is NodeState.FINISHED


def test_failing_cache_store_keeps_result():
    cache = _FailingStoreCache()
    executor = DagExecutor(_cached_pair())
    assert executor.run_sync(0, cache=cache) == 1

    b = executor.last_runners.runners["b"]
    assert b.state is NodeState.FINISHED
    assert b.error is None
    assert cache.lookups == 1
