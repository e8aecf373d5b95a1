from __future__ import annotations
"""YAML → Dag loader.

A declarative alternative to building :class:`Dag` objects in Python.
Example YAML:

```yaml
name: Demo DAG
context: my_pkg.ctx:make_context   # optional factory
nodes:
  fetch:
    run: fetch_docs                 # symbol in provided *symbols*
  summarize:
    run: my_pkg.steps:summarize     # or "module:attr" import path
    parents: [fetch]
    cache: true
  report:
    run: build_report
    parents: [summarize, fetch]
    tolerate_parent_errors: true
```

Usage:
    from dagette.yaml_loader import load_dag
    dag = load_dag(path="my.yml", symbols=globals())
"""
from importlib import import_module
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from jsonschema import validate as _js_validate

from dagette.core.compile import CompiledDag
from dagette.core.node import Dag, DagNode

__all__ = ["load_dag", "load_compiled_dag", "dag_from_dict"]


# --------------------------------------------------------------------------- #

def _resolve(name: str, symbols: Mapping[str, Any]):  # noqa: D401
    """Return python object for *name* (look in *symbols* then import)."""
    if name in symbols:
        return symbols[name]
    if ":" in name:  # module:path style
        mod_name, attr = name.split(":", 1)
        mod = import_module(mod_name)
        obj = mod
        for part in attr.split("."):
            obj = getattr(obj, part)
        return obj
    raise KeyError(f"Symbol '{name}' not found in symbols nor importable")


def _build_node(data: Mapping[str, Any], symbols: Mapping[str, Any]) -> DagNode:
    output_model = data.get("output_model")
    return DagNode(
        run=_resolve(data["run"], symbols),
        parents=tuple(data.get("parents", ())),
        tolerate_parent_errors=data.get("tolerate_parent_errors", False),
        cache=data.get("cache", False),
        output_model=_resolve(output_model, symbols) if output_model else None,
        description=data.get("description", ""),
    )


def dag_from_dict(data: Mapping[str, Any], symbols: Optional[Mapping[str, Any]] = None) -> Dag:
    """Validate *data* against the schema and build a :class:`Dag`."""
    _js_validate(instance=data, schema=_SCHEMA)
    symbols = symbols or {}
    nodes: Dict[str, DagNode] = {
        name: _build_node(spec, symbols) for name, spec in data["nodes"].items()
    }
    kwargs: Dict[str, Any] = {}
    if data.get("context"):
        kwargs["context"] = _resolve(data["context"], symbols)
    return Dag(name=data.get("name", "YAML DAG"), nodes=nodes, **kwargs)


def load_dag(path: str | Path, symbols: Optional[Mapping[str, Any]] = None) -> Dag:  # noqa: D401
    """Load YAML file at *path* into a Dag."""
    data = yaml.safe_load(Path(path).read_text())
    return dag_from_dict(data, symbols)


def load_compiled_dag(path: str | Path, symbols: Optional[Mapping[str, Any]] = None) -> CompiledDag:
    return CompiledDag(load_dag(path, symbols))


# --------------------------------------------------------------------------- #
# Minimal JSON Schema for YAML files
# --------------------------------------------------------------------------- #

_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["nodes"],
    "properties": {
        "name": {"type": "string"},
        "context": {"type": "string"},
        "nodes": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "required": ["run"],
                "additionalProperties": False,
                "properties": {
                    "run": {"type": "string"},
                    "parents": {"type": "array", "items": {"type": "string"}},
                    "tolerate_parent_errors": {"type": "boolean"},
                    "cache": {"type": "boolean"},
                    "output_model": {"type": "string"},
                    "description": {"type": "string"},
                },
            },
        },
    },
}
