"""Task graph for the site layout: base assets at the root, section assets in views/."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from assetpipe.config.schema import PipelineConfig
from assetpipe.dag.registry import TaskRegistry
from assetpipe.inject.injector import clear_staging, inject_markup
from assetpipe.tasks.variants import ImageSource, VariantMatrix, generate_variants
from assetpipe.transforms.groups import AssetGroup
from assetpipe.transforms.images import compress_images
from assetpipe.transforms.markup import minify_markup
from assetpipe.transforms.scripts import minify_scripts
from assetpipe.transforms.styles import compile_styles, minify_styles

STAGING_DIR = ".build"
DEFAULT_TARGET = "build"
SERVE_TARGETS = ("compile-styles",)


@dataclass(frozen=True, slots=True)
class Section:
    """A sibling asset tree: `suffix` is appended to task names, `prefix` to paths."""

    suffix: str
    prefix: str
    images: str


SECTIONS: tuple[Section, ...] = (
    Section(suffix="--base", prefix="", images="img"),
    Section(suffix="--views", prefix="views/", images="views/images"),
)


@dataclass(frozen=True, slots=True)
class WatchRule:
    pattern: str
    tasks: tuple[str, ...]
    reload: str


WATCH_RULES: tuple[WatchRule, ...] = (
    WatchRule(pattern="sass/*.scss", tasks=("compile-styles--base",), reload="css"),
    WatchRule(pattern="views/sass/*.scss", tasks=("compile-styles--views",), reload="css"),
    WatchRule(pattern="*.html", tasks=(), reload="page"),
    WatchRule(pattern="views/*.html", tasks=(), reload="page"),
    WatchRule(pattern="js/*.js", tasks=(), reload="page"),
    WatchRule(pattern="views/js/*.js", tasks=(), reload="page"),
)


def _group(root: Path, pattern: str, destination: Path, overlay: Path | None = None) -> AssetGroup:
    return AssetGroup(source_root=root, pattern=pattern, destination=destination, overlay=overlay)


def register_responsive_images(
    registry: TaskRegistry, config: PipelineConfig, root: Path
) -> VariantMatrix:
    dist = root / config.dist_dir
    image_sources = [
        ImageSource(
            suffix="" if section.suffix == "--base" else section.suffix,
            source_root=root,
            pattern=f"{section.images}/responsive/*",
            destination=dist / section.images,
        )
        for section in SECTIONS
    ]
    matrix = generate_variants(config.breakpoints, image_sources)
    for task in matrix.tasks:
        registry.register(task)
    registry.add("responsive-img", matrix.names)
    return matrix


def build_registry(config: PipelineConfig, root: Path) -> TaskRegistry:
    """Register every build step for the project rooted at `root`."""
    registry = TaskRegistry()
    dist = root / config.dist_dir
    staging = root / STAGING_DIR

    for section in SECTIONS:
        p = section.prefix
        registry.add(
            f"compile-styles{section.suffix}",
            transform=compile_styles,
            group=_group(root, f"{p}sass/*.scss", root / f"{p}css"),
        )
        registry.add(
            f"minify-css{section.suffix}",
            [f"compile-styles{section.suffix}"],
            transform=minify_styles,
            group=_group(root, f"{p}css/*.css", dist / f"{p}css"),
        )
        registry.add(
            f"minify-js{section.suffix}",
            transform=minify_scripts,
            group=_group(root, f"{p}js/*.js", dist / f"{p}js"),
        )
        registry.add(
            f"minify-html{section.suffix}",
            ["inject--pages"],
            transform=minify_markup,
            group=_group(root, f"{p}*.html", dist / p, overlay=staging),
        )
        registry.add(
            f"min-img{section.suffix}",
            transform=compress_images,
            group=_group(root, f"{section.images}/*", dist / section.images),
        )

    for aggregate in ("compile-styles", "minify-css", "minify-js", "minify-html", "min-img"):
        registry.add(aggregate, [f"{aggregate}{section.suffix}" for section in SECTIONS])

    register_responsive_images(registry, config, root)

    registry.add("clean-staging", transform=clear_staging, out_dir=staging)
    registry.add(
        "inject--fragments",
        ["clean-staging", "minify-css", "minify-js"],
        transform=inject_markup,
        points=config.inject.fragments,
        root=root,
        out_dir=staging,
    )
    registry.add(
        "inject--pages",
        ["inject--fragments"],
        transform=inject_markup,
        points=config.inject.pages,
        root=root,
        out_dir=staging,
    )
    registry.add("inject", ["inject--pages"])

    registry.add(
        DEFAULT_TARGET, ["minify-js", "minify-html", "minify-css", "min-img", "responsive-img"]
    )
    return registry
