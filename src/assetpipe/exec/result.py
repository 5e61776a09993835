from __future__ import annotations

from dataclasses import dataclass, field

from assetpipe.util.errors import DEPENDENCY_FAILED


@dataclass(frozen=True, slots=True)
class TaskFailure:
    kind: str
    detail: str

    @property
    def skipped(self) -> bool:
        return self.kind == DEPENDENCY_FAILED


@dataclass(slots=True)
class BuildResult:
    planned: list[str] = field(default_factory=list)
    succeeded: set[str] = field(default_factory=set)
    failed: dict[str, TaskFailure] = field(default_factory=dict)
    finished: list[str] = field(default_factory=list)
    durations: dict[str, float] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    def record_success(self, name: str, elapsed: float) -> None:
        self.succeeded.add(name)
        self.durations[name] = elapsed
        self.finished.append(name)

    def record_failure(self, name: str, failure: TaskFailure) -> None:
        self.failed[name] = failure
        self.finished.append(name)

    def errors(self) -> dict[str, TaskFailure]:
        """Root-cause failures, in completion order."""
        return {
            name: self.failed[name]
            for name in self.finished
            if name in self.failed and not self.failed[name].skipped
        }

    def skipped(self) -> dict[str, TaskFailure]:
        return {
            name: self.failed[name]
            for name in self.finished
            if name in self.failed and self.failed[name].skipped
        }
