from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Iterable

from assetpipe.dag.build import build_adjacency
from assetpipe.dag.registry import Task, TaskRegistry
from assetpipe.exec.result import BuildResult, TaskFailure
from assetpipe.util.errors import DEPENDENCY_FAILED
from assetpipe.util.time import duration_sec, monotonic

logger = logging.getLogger(__name__)


def _failure_from_exception(exc: BaseException) -> TaskFailure:
    detail = str(exc) or repr(exc)
    return TaskFailure(kind=type(exc).__name__, detail=detail)


async def run_task(task: Task) -> float:
    """Run one task action off the event loop and return its duration."""
    started = monotonic()
    logger.debug("task %s started", task.name)
    if task.transform is not None:
        await asyncio.to_thread(task.run)
    elapsed = duration_sec(started, monotonic())
    logger.debug("task %s finished in %.3fs", task.name, elapsed)
    return elapsed


async def run_resolved(tasks: list[Task], *, max_parallel: int) -> BuildResult:
    """Execute an already resolved, dependency-ordered task list."""
    if max_parallel < 1:
        raise ValueError("max_parallel must be >= 1")

    result = BuildResult(planned=[task.name for task in tasks])
    spec_by_name = {task.name: task for task in tasks}
    dependents, dep_remaining = build_adjacency(tasks)
    ready = deque(task.name for task in tasks if dep_remaining[task.name] == 0)
    running: dict[str, asyncio.Task[float]] = {}

    def _release(name: str) -> None:
        for child in dependents.get(name, []):
            if child in dep_remaining:
                dep_remaining[child] -= 1
                if dep_remaining[child] == 0:
                    ready.append(child)

    while ready or running:
        while ready and len(running) < max_parallel:
            name = ready.popleft()
            task = spec_by_name[name]
            failed_deps = [dep for dep in task.dependencies if dep in result.failed]
            if failed_deps:
                result.record_failure(
                    name,
                    TaskFailure(
                        kind=DEPENDENCY_FAILED,
                        detail=f"dependency '{failed_deps[0]}' did not succeed",
                    ),
                )
                logger.debug("task %s skipped", name)
                _release(name)
                continue
            running[name] = asyncio.create_task(run_task(task))

        if not running:
            continue

        done, _ = await asyncio.wait(running.values(), return_when=asyncio.FIRST_COMPLETED)
        done_by_name = {name: fut for name, fut in running.items() if fut in done}

        for name, fut in done_by_name.items():
            del running[name]
            try:
                elapsed = fut.result()
            except Exception as exc:
                logger.debug("task %s failed: %s", name, exc)
                result.record_failure(name, _failure_from_exception(exc))
            else:
                result.record_success(name, elapsed)
            _release(name)

    return result


async def run_tasks(
    registry: TaskRegistry, targets: Iterable[str], *, max_parallel: int = 4
) -> BuildResult:
    """Resolve `targets` and run them.

    Registry errors (unknown names, cycles) propagate before any task starts.
    Task failures are recorded in the returned result instead of raised.
    """
    if max_parallel < 1:
        raise ValueError("max_parallel must be >= 1")
    ordered = registry.resolve(targets)
    return await run_resolved(ordered, max_parallel=max_parallel)
