from __future__ import annotations
"""Rich logging, DAG tree rendering and a progress event callback."""
from logging import Logger, getLogger, INFO, DEBUG, WARNING, ERROR, basicConfig
from typing import Any, Dict

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, BarColumn, TextColumn, TimeElapsedColumn

from dagette.utils.dag import build_rich_tree
from dagette.utils.events import (
    Event,
    NodeCached,
    NodeCancelled,
    NodeFailed,
    NodeFinished,
)

console = Console()
_console = console

__all__ = [
    "console",
    "log",
    "get",
    "show_dag_tree",
    "ProgressReporter",
]

_LEVEL_MAP = {
    "info": INFO,
    "debug": DEBUG,
    "warning": WARNING,
    "error": ERROR,
}

# Configure root once with Rich handler for plain log messages
basicConfig(
    level=WARNING,
    format="%(message)s",
    datefmt="%H:%M:%S",
    handlers=[RichHandler(console=console, rich_tracebacks=True, markup=False)],
)

log: Logger = getLogger("dagette")


def get(level: str = "info") -> Logger:  # noqa: D401
    """Return the package logger set to *level* (str)."""
    lvl = _LEVEL_MAP.get(level.lower(), INFO)
    lg = getLogger("dagette")
    lg.setLevel(lvl)
    return lg


def show_dag_tree(dag: Any, **kw):  # noqa: D401
    """Print the execution tree of a compiled DAG."""
    console.print(build_rich_tree(dag, **kw))


# --------------------------------------------------------------------------- #
# Progress handling
# --------------------------------------------------------------------------- #

_TERMINAL = (NodeFinished, NodeCached, NodeFailed, NodeCancelled)


class ProgressReporter:
    """Event callback advancing one progress bar per DAG run.

    Pass the total number of runners (nodes + the output node) up front::

        reporter = ProgressReporter(total=len(dag.named_nodes) + 1)
        with reporter:
            executor.run_sync(data, event_cb=reporter)
    """

    def __init__(self, total: int, *, console: Console | None = None):
        self.total = total
        self.progress = Progress(
            TextColumn("[bold blue]{task.fields[id]}[/]"),
            BarColumn(),
            TextColumn("[green]{task.completed}/{task.total}[/]"),
            "•",
            TimeElapsedColumn(),
            console=console or _console,
            transient=True,
        )
        self._tasks: Dict[str, Any] = {}
        self.failed: list[str] = []

    def __enter__(self) -> "ProgressReporter":
        self.progress.start()
        return self

    def __exit__(self, *exc) -> None:
        self.progress.stop()

    def __call__(self, evt: Event) -> None:
        if not isinstance(evt, _TERMINAL):
            return
        task_id = self._tasks.get(evt.dag_name)
        if task_id is None:
            task_id = self._tasks[evt.dag_name] = self.progress.add_task(
                description="", total=self.total, id=evt.dag_name
            )
        if isinstance(evt, (NodeFailed, NodeCancelled)):
            self.failed.append(evt.node)
        self.progress.update(task_id, advance=1)

    def completed(self, dag_name: str) -> float:
        """Return how many nodes of *dag_name* reached a terminal state."""
        task_id = self._tasks.get(dag_name)
        if task_id is None:
            return 0
        return self.progress.tasks[task_id].completed
