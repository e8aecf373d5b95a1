from __future__ import annotations

"""Dagette Command Line Interface."""

import importlib.util
import json
from pathlib import Path
from types import ModuleType
from typing import Any, Dict, Optional

import typer
from jsonschema import ValidationError
from pydantic_core import to_jsonable_python
from rich.console import Console
from rich.table import Table

from dagette import CompiledDag, Dag, DagError, DagExecutor
from dagette.utils.logging import get as get_logger, show_dag_tree, ProgressReporter
from dagette.yaml_loader import load_dag

app = typer.Typer(
    name="dagette",
    help="CLI for Dagette: validate, inspect and run workflow DAGs.",
    add_completion=False,
)

console = Console()


def _load_module(file_path: Path) -> ModuleType:
    """Import a Python file as a throwaway module."""
    if not file_path.exists():
        console.print(f"[bold red]Error: File not found: {file_path}[/]")
        raise typer.Exit(code=1)

    spec = importlib.util.spec_from_file_location(file_path.stem, file_path)
    if spec is None or spec.loader is None:
        console.print(f"[bold red]Error: Could not load module from {file_path}[/]")
        raise typer.Exit(code=1)

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except DagError:
        raise
    except Exception as e:
        console.print(f"[bold red]Error executing Python file {file_path}: {e}[/]")
        raise typer.Exit(code=1)
    return module


def _compile(dag: Dag | CompiledDag) -> CompiledDag:
    if isinstance(dag, CompiledDag):
        return dag
    try:
        return CompiledDag(dag)
    except DagError as e:
        console.print(f"[bold red]Invalid DAG '{dag.name}': {e}[/]")
        raise typer.Exit(code=1)


def _load_yaml(yaml_file: Path, symbols_file: Optional[Path]) -> CompiledDag:
    try:
        symbols: Dict[str, Any] = vars(_load_module(symbols_file)) if symbols_file else {}
    except DagError as e:
        console.print(f"[bold red]Invalid DAG: {e} (in {symbols_file})[/]")
        raise typer.Exit(code=1)
    try:
        dag = load_dag(yaml_file, symbols=symbols)
    except ValidationError as e:
        console.print(f"[bold red]Invalid YAML DAG {yaml_file}: {e.message}[/]")
        raise typer.Exit(code=1)
    except (KeyError, ImportError, AttributeError) as e:
        console.print(f"[bold red]Could not resolve symbol in {yaml_file}: {e}[/]")
        raise typer.Exit(code=1)
    return _compile(dag)


def _print_summary(compiled: CompiledDag) -> None:
    table = Table(title=f"DAG '{compiled.name}'")
    table.add_column("Node", style="cyan", no_wrap=True)
    table.add_column("Parents", style="magenta")
    table.add_column("Role", style="green")
    table.add_column("Flags", style="dim")

    roots, leaves = set(compiled.root_nodes), set(compiled.leaf_nodes)
    for named in compiled.named_nodes:
        roles = [r for r, hit in (("root", named.name in roots), ("leaf", named.name in leaves)) if hit]
        flags = []
        if named.tolerate_parent_errors:
            flags.append("tolerate_parent_errors")
        if named.node.cache:
            flags.append("cache")
        table.add_row(
            named.name,
            ", ".join(named.parents) or "-",
            " / ".join(roles) or "-",
            ", ".join(flags) or "-",
        )
    console.print(table)
    show_dag_tree(compiled)
    console.print(
        f"[bold green]DAG '{compiled.name}' is valid:[/] "
        f"{len(compiled.named_nodes)} nodes, roots={list(compiled.root_nodes)}, "
        f"leaves={list(compiled.leaf_nodes)}"
    )


@app.command()
def inspect(
    dag_file: Path = typer.Argument(..., help="Python file containing the DAG definition.", exists=True, file_okay=True, dir_okay=False, readable=True),
    dag_name: str = typer.Argument(..., help="Name of the Dag (or CompiledDag) variable in the file."),
):
    """Validate a DAG defined in Python and show its structure."""
    try:
        module = _load_module(dag_file)
    except DagError as e:
        console.print(f"[bold red]Invalid DAG in {dag_file}: {e}[/]")
        raise typer.Exit(code=1)

    obj = getattr(module, dag_name, None)
    if not isinstance(obj, (Dag, CompiledDag)):
        console.print(f"[bold red]Error: '{dag_name}' in {dag_file} is not a Dag.[/]")
        raise typer.Exit(code=1)
    _print_summary(_compile(obj))


@app.command("inspect-yaml")
def inspect_yaml(
    yaml_file: Path = typer.Argument(..., help="YAML file describing the DAG.", exists=True, dir_okay=False, readable=True),
    symbols_file: Optional[Path] = typer.Option(None, "--symbols", help="Python file whose globals resolve 'run' names."),
):
    """Validate a YAML DAG and show its structure."""
    _print_summary(_load_yaml(yaml_file, symbols_file))


@app.command("run-yaml")
def run_yaml(
    yaml_file: Path = typer.Argument(..., help="YAML file describing the DAG.", exists=True, dir_okay=False, readable=True),
    input_json: str = typer.Option("null", "--input", help="Root input as a JSON document."),
    symbols_file: Optional[Path] = typer.Option(None, "--symbols", help="Python file whose globals resolve 'run' names."),
    quiet: bool = typer.Option(False, "--quiet", help="Disable the progress bar."),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging."),
):
    """Run a YAML DAG and print its output as JSON."""
    if verbose:
        get_logger("debug")

    compiled = _load_yaml(yaml_file, symbols_file)
    try:
        root_input = json.loads(input_json)
    except json.JSONDecodeError as e:
        console.print(f"[bold red]--input is not valid JSON: {e}[/]")
        raise typer.Exit(code=1)

    executor = DagExecutor(compiled)
    reporter = None if quiet else ProgressReporter(total=len(compiled.named_nodes) + 1, console=console)
    try:
        if reporter is None:
            result = executor.run_sync(root_input)
        else:
            with reporter:
                result = executor.run_sync(root_input, event_cb=reporter)
    except Exception as e:  # noqa: BLE001 – report and exit non-zero
        console.print(f"[bold red]DAG '{compiled.name}' failed: {e}[/]")
        raise typer.Exit(code=1)

    typer.echo(json.dumps(to_jsonable_python(result, fallback=repr), indent=2))


if __name__ == "__main__":
    app()
