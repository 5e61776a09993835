from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text.strip() + "\n", encoding="utf-8")


def _make_site(root: Path) -> None:
    _write(root / "sass" / "style.scss", "$accent: #c00;\nbody { color: $accent; }")
    _write(root / "js" / "app.js", "// boot\nvar ready = true ;")
    _write(root / "index.html", "<html>\n  <body>\n    <p>hi</p>\n  </body>\n</html>")


def _run(*args: str) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [sys.executable, "-m", "assetpipe.cli", *args],
        capture_output=True,
        text=True,
        check=False,
        env={**os.environ, "COLUMNS": "200"},
    )


def test_cli_build_success_returns_zero_and_writes_report(tmp_path: Path) -> None:
    _make_site(tmp_path)
    report = tmp_path / "reports" / "build.md"

    proc = _run("build", "--workdir", str(tmp_path), "--report", str(report))

    assert proc.returncode == 0, proc.stderr
    assert "state: SUCCESS" in proc.stdout
    assert "body{color:" in (tmp_path / "dist" / "css" / "style.css").read_text()
    assert (tmp_path / "dist" / "index.html").is_file()
    assert (tmp_path / "dist" / "js" / "app.js").is_file()
    markdown = report.read_text(encoding="utf-8")
    assert "status: **SUCCESS**" in markdown
    assert "| build | SUCCESS |" in markdown


def test_cli_build_failure_returns_three_and_lists_skips(tmp_path: Path) -> None:
    _make_site(tmp_path)
    _write(tmp_path / "sass" / "style.scss", "body { color: $nope; }")

    proc = _run("build", "--workdir", str(tmp_path))

    assert proc.returncode == 3
    assert "state: FAILED" in proc.stdout
    assert "TransformError" in proc.stderr
    assert "DependencyFailed" in proc.stderr
    assert proc.stderr.count("Failed tasks") == 1
    assert (tmp_path / "dist" / "js" / "app.js").is_file()


def test_cli_build_dry_run_lists_order_without_writing(tmp_path: Path) -> None:
    _make_site(tmp_path)

    proc = _run("build", "--workdir", str(tmp_path), "--dry-run", "-t", "minify-css")

    assert proc.returncode == 0
    assert "Dry Run" in proc.stdout
    assert proc.stdout.index("compile-styles--base") < proc.stdout.index("minify-css--base")
    assert "minify-js" not in proc.stdout
    assert not (tmp_path / "dist").exists()


def test_cli_build_unknown_target_returns_two(tmp_path: Path) -> None:
    _make_site(tmp_path)

    proc = _run("build", "--workdir", str(tmp_path), "--target", "deploy")

    assert proc.returncode == 2
    assert "deploy" in proc.stderr


def test_cli_build_invalid_config_returns_two(tmp_path: Path) -> None:
    _make_site(tmp_path)
    _write(tmp_path / "assetpipe.yaml", "breakpoints: []")

    proc = _run("build", "--workdir", str(tmp_path))

    assert proc.returncode == 2
    assert "Config error" in proc.stderr
    assert not (tmp_path / "dist").exists()


def test_cli_tasks_lists_registered_graph(tmp_path: Path) -> None:
    proc = _run("tasks", "--workdir", str(tmp_path))

    assert proc.returncode == 0
    assert "responsive-img" in proc.stdout
    assert "resize_webp_360_x3" in proc.stdout
    assert "inject--pages" in proc.stdout
