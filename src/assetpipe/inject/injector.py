"""Inline compiled assets into markup at `<!-- inject:NAME -->` markers."""

from __future__ import annotations

import logging
import shutil
from collections.abc import Sequence
from pathlib import Path

from assetpipe.config.loader import MARKER_PATTERN
from assetpipe.config.schema import InjectionPoint, WrapWith
from assetpipe.transforms.groups import write_text_output
from assetpipe.util.errors import (
    DuplicateMarkerError,
    MissingAssetError,
    MissingMarkerError,
    NestingDepthError,
)

logger = logging.getLogger(__name__)


def clear_staging(out_dir: Path) -> None:
    """Drop every staged copy so a pass only sees what the current config injects."""
    if out_dir.exists():
        shutil.rmtree(out_dir)
        logger.debug("cleared staging directory %s", out_dir)


def wrap_content(content: str, wrap: WrapWith) -> str:
    if wrap == "style":
        return f"<style>{content}</style>"
    if wrap == "script":
        return f"<script>{content}</script>"
    return content


def _read_sources(point: InjectionPoint, root: Path) -> str:
    chunks: list[str] = []
    for source in point.sources:
        path = root / source
        if not path.is_file():
            raise MissingAssetError(f"'{point.target}' needs '{source}', which does not exist")
        content = path.read_text(encoding="utf-8")
        if MARKER_PATTERN.search(content) is not None:
            raise NestingDepthError(
                f"'{source}' still contains an inject marker; only one level of "
                f"fragment nesting is supported ('{point.target}')"
            )
        chunks.append(content)
    return "\n".join(chunks)


def inject_template(template: str, points: Sequence[InjectionPoint], root: Path) -> str:
    """Substitute every point's marker in `template`; all points share one target."""
    markers = [point.marker for point in points]
    duplicated = sorted({marker for marker in markers if markers.count(marker) > 1})
    if duplicated:
        raise DuplicateMarkerError(f"marker declared more than once for one file: {duplicated}")

    for point in points:
        occurrences = template.count(point.marker)
        if occurrences == 0:
            raise MissingMarkerError(f"'{point.target}' has no marker {point.marker}")
        if occurrences > 1:
            raise DuplicateMarkerError(
                f"'{point.target}' has marker {point.marker} {occurrences} times"
            )

    result = template
    for point in points:
        replacement = wrap_content(_read_sources(point, root), point.wrap)
        result = result.replace(point.marker, replacement, 1)
    return result


def inject_markup(points: Sequence[InjectionPoint], *, root: Path, out_dir: Path) -> list[Path]:
    """Run one injection pass and write each rewritten target under `out_dir`.

    Templates are always read from `root`, never from a previous output, so
    repeated runs give the same result.
    """
    by_target: dict[str, list[InjectionPoint]] = {}
    for point in points:
        by_target.setdefault(point.target, []).append(point)

    written: list[Path] = []
    for target, target_points in by_target.items():
        template_path = root / target
        if not template_path.is_file():
            raise MissingAssetError(f"template does not exist: {target}")
        template = template_path.read_text(encoding="utf-8")
        rendered = inject_template(template, target_points, root)
        written.append(write_text_output(out_dir / target, rendered))
        logger.debug("injected %d marker(s) into %s", len(target_points), target)
    return written
