from __future__ import annotations

from assetpipe.exec.result import BuildResult


def build_summary(result: BuildResult, *, targets: list[str], dist_dir: str) -> dict[str, object]:
    task_rows: list[dict[str, object]] = []
    problem_rows: list[dict[str, object]] = []

    for name in result.planned:
        failure = result.failed.get(name)
        if name in result.succeeded:
            status = "SUCCESS"
        elif failure is not None and failure.skipped:
            status = "SKIPPED"
        elif failure is not None:
            status = "FAILED"
        else:
            status = "NOT_RUN"
        task_rows.append(
            {
                "name": name,
                "status": status,
                "duration_sec": result.durations.get(name),
            }
        )
        if failure is not None:
            problem_rows.append(
                {
                    "name": name,
                    "status": status,
                    "kind": failure.kind,
                    "detail": failure.detail,
                }
            )

    return {
        "run": {
            "targets": targets,
            "dist_dir": dist_dir,
            "status": "SUCCESS" if result.ok else "FAILED",
            "succeeded": len(result.succeeded),
            "failed": len(result.errors()),
            "skipped": len(result.skipped()),
        },
        "tasks": task_rows,
        "problems": problem_rows,
    }
