import json
import textwrap

import pytest
from jsonschema import ValidationError
from pydantic import BaseModel

from dagette import CycleError, Dag, DagExecutor
from dagette.yaml_loader import load_compiled_dag, load_dag


class Total(BaseModel):
    value: int


def fetch(args):
    return [1, 2, 3]


def total(args):
    return {"value": sum(args.input["fetch"])}


def make_context():
    return {"source": "yaml"}


def _write(tmp_path, text):
    file = tmp_path / "dag.yml"
    file.write_text(textwrap.dedent(text))
    return file


def test_yaml_loader(tmp_path):
    file = _write(
        tmp_path,
        """
        name: YAML Test
        context: make_context
        nodes:
          fetch:
            run: fetch
            description: load numbers
          total:
            run: total
            parents: [fetch]
            cache: true
            output_model: Total
        """,
    )
    dag: Dag = load_dag(file, symbols=globals())
    assert dag.name == "YAML Test"
    assert dag.nodes["total"].parents == ("fetch",)
    assert dag.nodes["total"].cache is True
    assert dag.nodes["total"].output_model is Total
    assert dag.nodes["fetch"].description == "load numbers"
    assert dag.context() == {"source": "yaml"}

    compiled = load_compiled_dag(file, symbols=globals())
    assert DagExecutor(compiled).run_sync(None) == Total(value=6)


def test_yaml_import_path(tmp_path):
    file = _write(
        tmp_path,
        """
        nodes:
          dump:
            run: json:dumps
        """,
    )
    dag = load_dag(file)
    assert dag.name == "YAML DAG"
    assert dag.nodes["dump"].run is json.dumps


def test_yaml_invalid(tmp_path):
    file = _write(
        tmp_path,
        """
        nodes:
          a:
            parents: [b]   # no run
        """,
    )
    with pytest.raises(ValidationError):
        load_dag(file, symbols=globals())


def test_yaml_unknown_symbol(tmp_path):
    file = _write(
        tmp_path,
        """
        nodes:
          a:
            run: does_not_exist
        """,
    )
    with pytest.raises(KeyError):
        load_dag(file, symbols=globals())


def test_yaml_cycle_rejected_on_compile(tmp_path):
    file = _write(
        tmp_path,
        """
        nodes:
          a: {run: fetch, parents: [b]}
          b: {run: fetch, parents: [a]}
        """,
    )
    with pytest.raises(CycleError):
        load_compiled_dag(file, symbols=globals())
