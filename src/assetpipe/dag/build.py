"""Build graph structures from registered tasks."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from assetpipe.dag.registry import Task


def build_adjacency(tasks: Iterable[Task]) -> tuple[dict[str, list[str]], dict[str, int]]:
    """Return dependents adjacency and in-degree by task name."""
    dependents: dict[str, list[str]] = defaultdict(list)
    in_degree: dict[str, int] = {}

    for task in tasks:
        in_degree[task.name] = len(task.dependencies)
        dependents.setdefault(task.name, [])
        for dep in task.dependencies:
            dependents[dep].append(task.name)

    return dict(dependents), in_degree
