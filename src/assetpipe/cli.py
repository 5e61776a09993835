from __future__ import annotations

import asyncio
import logging
from pathlib import Path, PurePosixPath
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from assetpipe.config.loader import load_config
from assetpipe.config.schema import PipelineConfig
from assetpipe.dag.registry import TaskRegistry
from assetpipe.exec.result import BuildResult
from assetpipe.exec.runner import run_resolved, run_tasks
from assetpipe.report.render_md import render_markdown
from assetpipe.report.summarize import build_summary
from assetpipe.serve.server import LiveReloadHub, create_app, start_server
from assetpipe.serve.watch import WatchController
from assetpipe.tasks.site import (
    DEFAULT_TARGET,
    SERVE_TARGETS,
    STAGING_DIR,
    WATCH_RULES,
    build_registry,
)
from assetpipe.util.errors import ConfigError, RegistryError

app = typer.Typer(help="Static asset build pipeline")
console = Console()
err_console = Console(stderr=True)


def _exit_code_for_result(result: BuildResult) -> int:
    return 0 if result.ok else 3


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _resolve_workdir_or_exit(workdir: Path) -> Path:
    resolved = workdir.resolve()
    if not resolved.is_dir():
        err_console.print(f"[red]Invalid workdir:[/red] {workdir}")
        raise typer.Exit(2)
    return resolved


def _load_or_exit(config_path: Path | None, root: Path) -> tuple[PipelineConfig, TaskRegistry]:
    try:
        config = load_config(config_path, root)
        registry = build_registry(config, root)
    except (ConfigError, RegistryError) as exc:
        err_console.print(f"[red]Config error:[/red] {exc}")
        raise typer.Exit(2) from exc
    return config, registry


def _print_failures(result: BuildResult) -> None:
    if result.ok:
        return
    table = Table(title="Failed tasks")
    table.add_column("task")
    table.add_column("reason")
    table.add_column("detail")
    for name, failure in result.errors().items():
        table.add_row(name, f"[red]{failure.kind}[/red]", failure.detail)
    for name, failure in result.skipped().items():
        table.add_row(name, f"[yellow]{failure.kind}[/yellow]", failure.detail)
    err_console.print(table)


def _write_report(
    result: BuildResult, destination: Path, *, targets: list[str], dist_dir: str
) -> None:
    summary = build_summary(result, targets=targets, dist_dir=dist_dir)
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(render_markdown(summary) + "\n", encoding="utf-8")


@app.command()
def build(
    target: Annotated[list[str] | None, typer.Option("--target", "-t")] = None,
    config_path: Annotated[Path | None, typer.Option("--config")] = None,
    workdir: Annotated[Path, typer.Option("--workdir")] = Path("."),
    max_parallel: Annotated[int, typer.Option("--max-parallel", min=1)] = 4,
    dry_run: Annotated[bool, typer.Option("--dry-run")] = False,
    report: Annotated[Path | None, typer.Option("--report")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v")] = False,
) -> None:
    """Build the named targets (default: build) into the output directory."""
    _configure_logging(verbose)
    root = _resolve_workdir_or_exit(workdir)
    config, registry = _load_or_exit(config_path, root)
    targets = target or [DEFAULT_TARGET]
    try:
        ordered = registry.resolve(targets)
    except RegistryError as exc:
        err_console.print(f"[red]Task graph error:[/red] {exc}")
        raise typer.Exit(2) from exc

    if dry_run:
        table = Table(title="Dry Run - Topological Order")
        table.add_column("#")
        table.add_column("task")
        table.add_column("depends_on")
        for idx, task in enumerate(ordered, start=1):
            table.add_row(str(idx), task.name, ", ".join(task.dependencies))
        console.print(table)
        raise typer.Exit(0)

    result = asyncio.run(run_resolved(ordered, max_parallel=max_parallel))
    if report is not None:
        try:
            _write_report(result, report, targets=targets, dist_dir=config.dist_dir)
        except OSError as exc:
            err_console.print(f"[yellow]Warning:[/yellow] failed to write report: {exc}")
    _print_failures(result)
    status = "SUCCESS" if result.ok else "FAILED"
    console.print(f"state: [bold]{status}[/bold]")
    console.print(
        f"tasks: {len(result.succeeded)} succeeded, {len(result.errors())} failed, "
        f"{len(result.skipped())} skipped"
    )
    raise typer.Exit(_exit_code_for_result(result))


@app.command()
def tasks(
    config_path: Annotated[Path | None, typer.Option("--config")] = None,
    workdir: Annotated[Path, typer.Option("--workdir")] = Path("."),
) -> None:
    """List registered tasks and their dependencies."""
    root = _resolve_workdir_or_exit(workdir)
    _, registry = _load_or_exit(config_path, root)
    table = Table(title="Tasks")
    table.add_column("task")
    table.add_column("depends_on")
    for task in registry:
        table.add_row(task.name, ", ".join(task.dependencies))
    console.print(table)


async def _serve(
    root: Path,
    registry: TaskRegistry,
    *,
    host: str,
    port: int,
    max_parallel: int,
    ignore_dirs: tuple[str, ...],
) -> None:
    result = await run_tasks(registry, SERVE_TARGETS, max_parallel=max_parallel)
    _print_failures(result)
    hub = LiveReloadHub()
    runner = await start_server(create_app(root, hub), host, port)
    console.print(f"serving: [bold]http://{host}:{port}/[/bold]")
    controller = WatchController(
        registry,
        WATCH_RULES,
        hub,
        root,
        max_parallel=max_parallel,
        ignore_dirs=ignore_dirs,
        reporter=_print_failures,
    )
    try:
        await controller.run()
    finally:
        await hub.close()
        await runner.cleanup()


@app.command()
def serve(
    host: Annotated[str, typer.Option("--host")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", min=1, max=65535)] = 3000,
    config_path: Annotated[Path | None, typer.Option("--config")] = None,
    workdir: Annotated[Path, typer.Option("--workdir")] = Path("."),
    max_parallel: Annotated[int, typer.Option("--max-parallel", min=1)] = 4,
    verbose: Annotated[bool, typer.Option("--verbose", "-v")] = False,
) -> None:
    """Compile styles, serve the project and rebuild/reload on change."""
    _configure_logging(verbose)
    root = _resolve_workdir_or_exit(workdir)
    config, registry = _load_or_exit(config_path, root)
    ignore_dirs = (PurePosixPath(config.dist_dir).parts[0], STAGING_DIR)
    try:
        asyncio.run(
            _serve(
                root,
                registry,
                host=host,
                port=port,
                max_parallel=max_parallel,
                ignore_dirs=ignore_dirs,
            )
        )
    except KeyboardInterrupt:
        console.print("stopped")
    except OSError as exc:
        err_console.print(f"[red]Server failed:[/red] {exc}")
        raise typer.Exit(2) from exc


if __name__ == "__main__":
    app()
