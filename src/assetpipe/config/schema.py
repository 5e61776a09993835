from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

BreakpointLabel = Literal["mobile", "desktop", "standard"]
WrapWith = Literal["style", "script", "none"]
BREAKPOINT_LABELS: set[str] = {"mobile", "desktop", "standard"}
WRAP_VALUES: set[str] = {"style", "script", "none"}


@dataclass(frozen=True, slots=True)
class Breakpoint:
    label: BreakpointLabel
    width: int


@dataclass(frozen=True, slots=True)
class InjectionPoint:
    marker: str
    target: str
    sources: tuple[str, ...]
    wrap: WrapWith = "none"


@dataclass(frozen=True, slots=True)
class InjectSpec:
    fragments: tuple[InjectionPoint, ...] = ()
    pages: tuple[InjectionPoint, ...] = ()


DEFAULT_BREAKPOINTS: tuple[Breakpoint, ...] = (
    Breakpoint(label="mobile", width=360),
    Breakpoint(label="desktop", width=720),
)


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    dist_dir: str = "dist"
    breakpoints: tuple[Breakpoint, ...] = DEFAULT_BREAKPOINTS
    inject: InjectSpec = field(default_factory=InjectSpec)
