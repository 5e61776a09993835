"""DAG validation helpers."""

from __future__ import annotations

from collections import deque

from assetpipe.util.errors import CyclicDependencyError


def _reaches_itself(start: str, dependents: dict[str, list[str]], blocked: set[str]) -> bool:
    stack = [nxt for nxt in dependents.get(start, []) if nxt in blocked]
    seen: set[str] = set()
    while stack:
        current = stack.pop()
        if current == start:
            return True
        if current in seen:
            continue
        seen.add(current)
        stack.extend(nxt for nxt in dependents.get(current, []) if nxt in blocked)
    return False


def assert_acyclic(
    task_names: list[str], dependents: dict[str, list[str]], in_degree: dict[str, int]
) -> list[str]:
    """Validate graph has no cycle using Kahn's algorithm and return the order."""
    degrees = dict(in_degree)
    q = deque([name for name in task_names if degrees.get(name, 0) == 0])
    order: list[str] = []

    while q:
        current = q.popleft()
        order.append(current)
        for nxt in dependents.get(current, []):
            degrees[nxt] = degrees[nxt] - 1
            if degrees[nxt] == 0:
                q.append(nxt)

    if len(order) != len(task_names):
        # Tasks left over are either on a cycle or only downstream of one.
        blocked = {name for name in task_names if degrees.get(name, 0) > 0}
        members = [
            name
            for name in task_names
            if name in blocked and _reaches_itself(name, dependents, blocked)
        ]
        raise CyclicDependencyError(members)
    return order
