from __future__ import annotations

import pytest

from assetpipe.dag.build import build_adjacency
from assetpipe.dag.registry import Task
from assetpipe.dag.validate import assert_acyclic
from assetpipe.util.errors import CyclicDependencyError


def test_assert_acyclic_returns_topological_order() -> None:
    tasks = [
        Task(name="a"),
        Task(name="b", dependencies=("a",)),
        Task(name="c", dependencies=("b",)),
    ]
    dependents, in_degree = build_adjacency(tasks)
    order = assert_acyclic([task.name for task in tasks], dependents, in_degree)
    assert order == ["a", "b", "c"]


def test_assert_acyclic_detects_cycle_and_names_members() -> None:
    tasks = [
        Task(name="root"),
        Task(name="a", dependencies=("c", "root")),
        Task(name="b", dependencies=("a",)),
        Task(name="c", dependencies=("b",)),
    ]
    dependents, in_degree = build_adjacency(tasks)
    with pytest.raises(CyclicDependencyError) as excinfo:
        assert_acyclic([task.name for task in tasks], dependents, in_degree)
    assert excinfo.value.members == ["a", "b", "c"]


def test_assert_acyclic_leaves_tasks_downstream_of_a_cycle_out_of_members() -> None:
    tasks = [
        Task(name="a", dependencies=("b",)),
        Task(name="b", dependencies=("a",)),
        Task(name="downstream", dependencies=("b",)),
        Task(name="after", dependencies=("downstream",)),
        Task(name="free"),
    ]
    dependents, in_degree = build_adjacency(tasks)
    with pytest.raises(CyclicDependencyError) as excinfo:
        assert_acyclic([task.name for task in tasks], dependents, in_degree)
    assert excinfo.value.members == ["a", "b"]
