from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from assetpipe.dag.registry import TaskRegistry
from assetpipe.serve.watch import WatchController
from assetpipe.tasks.site import WATCH_RULES, WatchRule
from assetpipe.util.errors import TransformError


class _FakeHub:
    def __init__(self) -> None:
        self.sent: list[str] = []

    async def notify(self, kind: str, path: str | None = None) -> int:
        self.sent.append(kind)
        return 1


class _Calls:
    def __init__(self) -> None:
        self.names: list[str] = []

    def ok(self, *, label: str) -> None:
        self.names.append(label)

    def broken(self, *, label: str) -> None:
        self.names.append(label)
        raise TransformError(f"{label} failed")


def _registry(calls: _Calls) -> TaskRegistry:
    registry = TaskRegistry()
    registry.add("compile-styles--base", transform=calls.ok, label="compile-styles--base")
    registry.add("compile-styles--views", transform=calls.ok, label="compile-styles--views")
    registry.add("minify-js--base", transform=calls.ok, label="minify-js--base")
    return registry


def _controller(tmp_path: Path, registry: TaskRegistry, hub: _FakeHub, **kw) -> WatchController:
    return WatchController(registry, WATCH_RULES, hub, tmp_path, max_parallel=2, **kw)


def test_match_maps_paths_to_tasks_and_reload_kinds(tmp_path: Path) -> None:
    controller = _controller(tmp_path, TaskRegistry(), _FakeHub())

    assert controller.match(["sass/style.scss"]) == (["compile-styles--base"], {"css"})
    assert controller.match(["views/sass/main.scss"]) == (["compile-styles--views"], {"css"})
    assert controller.match(["index.html", "views/js/main.js"]) == ([], {"page"})
    assert controller.match(["README.md", "views/sass/deep/x.scss"]) == ([], set())


def test_match_deduplicates_tasks_in_first_seen_order(tmp_path: Path) -> None:
    rules = [
        WatchRule(pattern="a/*.scss", tasks=("one", "two"), reload="css"),
        WatchRule(pattern="b/*.scss", tasks=("two", "three"), reload="css"),
    ]
    controller = WatchController(TaskRegistry(), rules, _FakeHub(), tmp_path)
    tasks, _ = controller.match(["b/x.scss", "a/y.scss"])
    assert tasks == ["two", "three", "one"]


@pytest.mark.asyncio
async def test_stylesheet_change_runs_only_mapped_task_then_swaps_css(tmp_path: Path) -> None:
    calls = _Calls()
    hub = _FakeHub()
    reported = []
    controller = _controller(tmp_path, _registry(calls), hub, reporter=reported.append)

    result = await controller.handle_changes([tmp_path / "sass" / "style.scss"])

    assert result is not None and result.ok
    assert calls.names == ["compile-styles--base"]
    assert hub.sent == ["css"]
    assert reported == [result]


@pytest.mark.asyncio
async def test_markup_change_triggers_page_reload_without_tasks(tmp_path: Path) -> None:
    calls = _Calls()
    hub = _FakeHub()
    controller = _controller(tmp_path, _registry(calls), hub)

    result = await controller.handle_changes([tmp_path / "views" / "pizza.html"])

    assert result is None
    assert calls.names == []
    assert hub.sent == ["page"]


@pytest.mark.asyncio
async def test_page_reload_supersedes_css_swap(tmp_path: Path) -> None:
    calls = _Calls()
    hub = _FakeHub()
    controller = _controller(tmp_path, _registry(calls), hub)

    await controller.handle_changes(
        [tmp_path / "sass" / "style.scss", tmp_path / "index.html"]
    )

    assert calls.names == ["compile-styles--base"]
    assert hub.sent == ["page"]


@pytest.mark.asyncio
async def test_failed_rebuild_is_reported_and_sends_no_reload(tmp_path: Path) -> None:
    calls = _Calls()
    registry = TaskRegistry()
    registry.add("compile-styles--base", transform=calls.broken, label="compile-styles--base")
    hub = _FakeHub()
    reported = []
    controller = _controller(tmp_path, registry, hub, reporter=reported.append)

    result = await controller.handle_changes([tmp_path / "sass" / "style.scss"])

    assert result is not None
    assert not result.ok
    assert result.failed["compile-styles--base"].kind == "TransformError"
    assert reported == [result]
    assert hub.sent == []


@pytest.mark.asyncio
async def test_unrelated_and_outside_paths_are_ignored(tmp_path: Path) -> None:
    calls = _Calls()
    hub = _FakeHub()
    controller = _controller(tmp_path / "site", _registry(calls), hub)

    result = await controller.handle_changes(
        [tmp_path / "site" / "notes.txt", tmp_path / "elsewhere" / "style.scss"]
    )

    assert result is None
    assert calls.names == []
    assert hub.sent == []


class _RecordingController(WatchController):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.batches: list[list[Path]] = []

    async def handle_changes(self, paths):
        batch = list(paths)
        self.batches.append(batch)
        return await super().handle_changes(batch)


async def _wait_until(condition, timeout: float = 10.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition():
        if loop.time() > deadline:
            raise AssertionError("condition not reached before timeout")
        await asyncio.sleep(0.05)


@pytest.mark.asyncio
async def test_watch_loop_rebuilds_sources_and_ignores_output_dirs(tmp_path: Path) -> None:
    (tmp_path / "sass").mkdir()
    (tmp_path / "dist").mkdir()
    (tmp_path / ".build").mkdir()
    calls = _Calls()
    hub = _FakeHub()
    controller = _RecordingController(
        _registry(calls), WATCH_RULES, hub, tmp_path, ignore_dirs=("dist", ".build")
    )
    stop = asyncio.Event()
    watcher = asyncio.create_task(controller.run(stop_event=stop))
    try:
        await asyncio.sleep(0.5)
        (tmp_path / "dist" / "index.html").write_text("<p>built</p>", encoding="utf-8")
        (tmp_path / ".build" / "index.html").write_text("<p>staged</p>", encoding="utf-8")
        await asyncio.sleep(0.5)
        assert controller.batches == []

        (tmp_path / "sass" / "x.scss").write_text("a { color: red; }", encoding="utf-8")
        await _wait_until(lambda: "css" in hub.sent)
        await asyncio.sleep(0.3)
    finally:
        stop.set()
        await asyncio.wait_for(watcher, timeout=10)

    assert calls.names == ["compile-styles--base"]
    assert hub.sent == ["css"]
    seen = [path.resolve() for batch in controller.batches for path in batch]
    assert (tmp_path / "sass" / "x.scss").resolve() in seen
    assert all("dist" not in path.parts and ".build" not in path.parts for path in seen)
