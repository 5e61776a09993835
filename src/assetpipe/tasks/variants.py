"""Expand breakpoints into the responsive image resize tasks."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from assetpipe.config.schema import Breakpoint
from assetpipe.dag.registry import Task
from assetpipe.transforms.groups import AssetGroup
from assetpipe.transforms.images import ImageFormat, resize_images

FORMATS: tuple[ImageFormat, ...] = ("original", "webp")


@dataclass(frozen=True, slots=True)
class Variant:
    breakpoint: Breakpoint
    density: int
    fmt: ImageFormat

    @property
    def source_width(self) -> int:
        return self.breakpoint.width * self.density

    @property
    def task_name(self) -> str:
        parts = ["resize"]
        if self.fmt == "webp":
            parts.append("webp")
        parts.append(str(self.breakpoint.width))
        if self.density > 1:
            parts.append(f"x{self.density}")
        return "_".join(parts)


@dataclass(frozen=True, slots=True)
class ImageSource:
    """One responsive image group; `suffix` keeps its task names apart from siblings.

    Variants of a breakpoint land in `destination/<width>/`.
    """

    suffix: str
    source_root: Path
    pattern: str
    destination: Path

    def group_for(self, breakpoint: Breakpoint) -> AssetGroup:
        return AssetGroup(
            source_root=self.source_root,
            pattern=self.pattern,
            destination=self.destination / str(breakpoint.width),
        )


@dataclass(frozen=True, slots=True)
class VariantMatrix:
    variants: tuple[Variant, ...]
    tasks: tuple[Task, ...]

    @property
    def names(self) -> list[str]:
        return [task.name for task in self.tasks]


def densities_for(breakpoint: Breakpoint) -> tuple[int, ...]:
    if breakpoint.label == "desktop":
        return (1, 2)
    if breakpoint.label == "mobile":
        return (2, 3)
    return (2,)


def expand_variants(breakpoints: Sequence[Breakpoint]) -> list[Variant]:
    return [
        Variant(breakpoint=bp, density=density, fmt=fmt)
        for bp in breakpoints
        for density in densities_for(bp)
        for fmt in FORMATS
    ]


def generate_variants(
    breakpoints: Sequence[Breakpoint], sources: Sequence[ImageSource]
) -> VariantMatrix:
    """Build one independent resize task per variant and image source.

    The returned names are what an aggregate task should depend on.
    """
    variants = expand_variants(breakpoints)
    tasks = tuple(
        Task(
            name=f"{variant.task_name}{source.suffix}",
            transform=resize_images,
            params={
                "group": source.group_for(variant.breakpoint),
                "width": variant.source_width,
                "density": variant.density,
                "fmt": variant.fmt,
            },
        )
        for variant in variants
        for source in sources
    )
    return VariantMatrix(variants=tuple(variants), tasks=tasks)
