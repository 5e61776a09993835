from __future__ import annotations

from assetpipe.dag.build import build_adjacency
from assetpipe.dag.registry import Task
from assetpipe.dag.validate import assert_acyclic


def test_build_adjacency_includes_leaf_nodes_and_correct_in_degree() -> None:
    tasks = [
        Task(name="compile"),
        Task(name="minify-css", dependencies=("compile",)),
        Task(name="minify-js", dependencies=("compile",)),
        Task(name="build", dependencies=("minify-css", "minify-js")),
    ]

    dependents, in_degree = build_adjacency(tasks)
    assert dependents["compile"] == ["minify-css", "minify-js"]
    assert dependents["build"] == []
    assert in_degree == {"compile": 0, "minify-css": 1, "minify-js": 1, "build": 2}


def test_assert_acyclic_keeps_input_in_degree_unchanged() -> None:
    tasks = [
        Task(name="a"),
        Task(name="b", dependencies=("a",)),
        Task(name="c", dependencies=("a",)),
    ]

    dependents, in_degree = build_adjacency(tasks)
    original = dict(in_degree)
    order = assert_acyclic([task.name for task in tasks], dependents, in_degree)
    idx = {name: i for i, name in enumerate(order)}
    assert idx["a"] < idx["b"]
    assert idx["a"] < idx["c"]
    assert in_degree == original
