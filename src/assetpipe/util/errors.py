"""Application-level error types."""

DEPENDENCY_FAILED = "DependencyFailed"


class AssetPipeError(Exception):
    """Base error for the asset pipeline."""


class ConfigError(AssetPipeError):
    """Raised when pipeline config loading/validation fails."""


class RegistryError(AssetPipeError):
    """Raised for structural task graph problems, before any task runs."""


class DuplicateTaskError(RegistryError):
    """Raised when a task name is registered twice."""


class UnknownTaskError(RegistryError):
    """Raised when a target or dependency name is not registered."""


class CyclicDependencyError(RegistryError):
    """Raised when the requested subgraph contains a cycle."""

    def __init__(self, members: list[str]) -> None:
        self.members = members
        super().__init__(f"cyclic dependencies between tasks: {members}")


class TaskError(AssetPipeError):
    """Base for errors scoped to a single task."""


class TransformError(TaskError):
    """Raised when a wrapped asset transform reports failure."""


class InjectionError(TaskError):
    """Base for asset injector failures."""


class MissingMarkerError(InjectionError):
    pass


class MissingAssetError(InjectionError):
    pass


class DuplicateMarkerError(InjectionError):
    pass


class NestingDepthError(InjectionError):
    pass
