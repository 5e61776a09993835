from __future__ import annotations

from typing import Any


def _duration(value: float | None) -> str:
    return "-" if value is None else f"{value:.3f}"


def render_markdown(summary: dict[str, Any]) -> str:
    run = summary["run"]
    tasks = summary["tasks"]
    problems = summary["problems"]

    lines: list[str] = []
    lines.append("# Build Report")
    lines.append("")
    lines.append("## Overview")
    lines.append("")
    lines.append(f"- targets: {', '.join(f'`{t}`' for t in run['targets'])}")
    lines.append(f"- output: `{run['dist_dir']}`")
    lines.append(f"- status: **{run['status']}**")
    lines.append(
        f"- tasks: {run['succeeded']} succeeded, {run['failed']} failed, "
        f"{run['skipped']} skipped"
    )
    lines.append("")
    lines.append("## Task Results")
    lines.append("")
    lines.append("| task | status | duration_sec |")
    lines.append("|---|---|---:|")
    for row in tasks:
        lines.append(f"| {row['name']} | {row['status']} | {_duration(row['duration_sec'])} |")
    lines.append("")
    lines.append("## Failed / Skipped Details")
    lines.append("")
    if problems:
        for row in problems:
            lines.append(f"### {row['name']} ({row['status']})")
            lines.append(f"- reason: `{row['kind']}`")
            lines.append("```")
            lines.append(row["detail"] or "(no detail)")
            lines.append("```")
            lines.append("")
    else:
        lines.append("No failed/skipped tasks.")
        lines.append("")
    return "\n".join(lines)
