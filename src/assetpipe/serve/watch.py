from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import Protocol

from watchfiles import DefaultFilter, awatch

from assetpipe.dag.registry import TaskRegistry
from assetpipe.exec.result import BuildResult
from assetpipe.exec.runner import run_tasks
from assetpipe.tasks.site import WatchRule
from assetpipe.transforms.groups import matches_pattern

logger = logging.getLogger(__name__)


class ReloadNotifier(Protocol):
    async def notify(self, kind: str, path: str | None = None) -> int: ...


class WatchController:
    """Re-run the tasks mapped to changed files, then tell viewers to reload."""

    def __init__(
        self,
        registry: TaskRegistry,
        rules: Sequence[WatchRule],
        notifier: ReloadNotifier,
        root: Path,
        *,
        max_parallel: int = 4,
        ignore_dirs: Sequence[str] = (),
        reporter: Callable[[BuildResult], None] | None = None,
    ) -> None:
        self._registry = registry
        self._rules = list(rules)
        self._notifier = notifier
        self._root = root.resolve()
        self._max_parallel = max_parallel
        self._ignore_dirs = tuple(ignore_dirs)
        self._reporter = reporter
        self._lock = asyncio.Lock()

    def _relative(self, path: Path) -> str | None:
        try:
            return path.resolve().relative_to(self._root).as_posix()
        except ValueError:
            return None

    def match(self, rel_paths: Iterable[str]) -> tuple[list[str], set[str]]:
        """Return the task names to run (first-seen order) and the reload kinds."""
        tasks: list[str] = []
        reloads: set[str] = set()
        for rel in rel_paths:
            for rule in self._rules:
                if not matches_pattern(rel, rule.pattern):
                    continue
                reloads.add(rule.reload)
                for name in rule.tasks:
                    if name not in tasks:
                        tasks.append(name)
        return tasks, reloads

    async def handle_changes(self, paths: Iterable[Path]) -> BuildResult | None:
        rel_paths = [rel for rel in (self._relative(path) for path in paths) if rel is not None]
        tasks, reloads = self.match(rel_paths)
        if not tasks and not reloads:
            return None

        async with self._lock:
            result: BuildResult | None = None
            if tasks:
                logger.info("changed: %s -> %s", ", ".join(sorted(rel_paths)), ", ".join(tasks))
                result = await run_tasks(self._registry, tasks, max_parallel=self._max_parallel)
                if self._reporter is not None:
                    self._reporter(result)
                if not result.ok:
                    return result

            kind = "page" if "page" in reloads else "css"
            delivered = await self._notifier.notify(kind)
            logger.debug("sent %s reload to %d viewer(s)", kind, delivered)
            return result

    async def run(self, stop_event: asyncio.Event | None = None) -> None:
        watch_filter = DefaultFilter(ignore_dirs=(*DefaultFilter.ignore_dirs, *self._ignore_dirs))
        async for changes in awatch(self._root, watch_filter=watch_filter, stop_event=stop_event):
            await self.handle_changes(Path(raw_path) for _, raw_path in changes)
