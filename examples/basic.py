"""Diamond DAG: fetch -> (count, longest) -> report."""
from pydantic import BaseModel

from dagette import CompiledDag, Dag, DagExecutor, DagNode, MemoryCache
from dagette.utils.logging import show_dag_tree


class Report(BaseModel):
    words: int
    longest: str


def fetch(args):
    return args.root_input.split()


def count(args):
    return len(args.input["fetch"])


def longest(args):
    return max(args.input["fetch"], key=len)


def report(args):
    return {"words": args.input["count"], "longest": args.input["longest"]}


dag = CompiledDag(
    Dag(
        name="Text stats",
        nodes={
            "fetch": DagNode(run=fetch, description="split text"),
            "count": DagNode(run=count, parents=["fetch"]),
            "longest": DagNode(run=longest, parents=["fetch"], cache=True),
            "report": DagNode(run=report, parents=["count", "longest"], output_model=Report),
        },
    )
)

if __name__ == "__main__":
    show_dag_tree(dag)
    out = DagExecutor(dag).run_sync("a small diamond shaped workflow", cache=MemoryCache())
    print(out)
