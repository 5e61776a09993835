from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from assetpipe.dag.build import build_adjacency
from assetpipe.dag.validate import assert_acyclic
from assetpipe.util.errors import DuplicateTaskError, UnknownTaskError


@dataclass(frozen=True, slots=True)
class Task:
    """A named build step: `transform(**params)` once all dependencies succeeded.

    Tasks without a transform are aggregates that only group their dependencies.
    """

    name: str
    dependencies: tuple[str, ...] = ()
    transform: Callable[..., object] | None = None
    params: Mapping[str, Any] = field(default_factory=dict)

    def run(self) -> None:
        if self.transform is not None:
            self.transform(**self.params)


class TaskRegistry:
    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def __iter__(self) -> Iterator[Task]:
        return iter(self._tasks.values())

    def __len__(self) -> int:
        return len(self._tasks)

    def get(self, name: str) -> Task:
        try:
            return self._tasks[name]
        except KeyError:
            raise UnknownTaskError(f"unknown task: {name}") from None

    def register(self, task: Task) -> Task:
        if task.name in self._tasks:
            raise DuplicateTaskError(f"task already registered: {task.name}")
        self._tasks[task.name] = task
        return task

    def add(
        self,
        name: str,
        dependencies: Iterable[str] = (),
        transform: Callable[..., object] | None = None,
        **params: Any,
    ) -> Task:
        return self.register(
            Task(name=name, dependencies=tuple(dependencies), transform=transform, params=params)
        )

    def _reachable(self, targets: Iterable[str]) -> set[str]:
        seen: set[str] = set()
        stack: list[str] = []
        for target in targets:
            if target not in self._tasks:
                raise UnknownTaskError(f"unknown task: {target}")
            stack.append(target)
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            for dep in self._tasks[current].dependencies:
                if dep not in self._tasks:
                    raise UnknownTaskError(f"task '{current}' depends on unknown task '{dep}'")
                stack.append(dep)
        return seen

    def resolve(self, targets: Iterable[str]) -> list[Task]:
        """Return every task reachable from `targets`, dependencies first."""
        wanted = self._reachable(targets)
        subset = [task for name, task in self._tasks.items() if name in wanted]
        dependents, in_degree = build_adjacency(subset)
        order = assert_acyclic([task.name for task in subset], dependents, in_degree)
        return [self._tasks[name] for name in order]
