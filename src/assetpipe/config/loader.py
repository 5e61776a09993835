from __future__ import annotations

import re
from pathlib import Path, PurePosixPath
from typing import Any

import yaml

from assetpipe.config.schema import (
    BREAKPOINT_LABELS,
    DEFAULT_BREAKPOINTS,
    WRAP_VALUES,
    Breakpoint,
    InjectionPoint,
    InjectSpec,
    PipelineConfig,
)
from assetpipe.util.errors import ConfigError

DEFAULT_CONFIG_NAME = "assetpipe.yaml"
MARKER_PATTERN = re.compile(r"<!--\s*inject:[A-Za-z0-9_.:/-]+\s*-->")
_ALLOWED_ROOT_KEYS = {"dist_dir", "breakpoints", "inject"}
_ALLOWED_BREAKPOINT_KEYS = {"label", "width"}
_ALLOWED_INJECT_KEYS = {"fragments", "pages"}
_ALLOWED_POINT_KEYS = {"marker", "target", "sources", "wrap"}


def _is_non_blank_str(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip()) and "\x00" not in value


def _is_relative_path(value: object) -> bool:
    if not _is_non_blank_str(value):
        return False
    assert isinstance(value, str)
    path = PurePosixPath(value)
    return not path.is_absolute() and ".." not in path.parts


def _parse_breakpoint(raw: Any) -> Breakpoint:
    if not isinstance(raw, dict):
        raise ConfigError("breakpoint must be mapping")
    unknown = set(raw.keys()) - _ALLOWED_BREAKPOINT_KEYS
    if unknown:
        raise ConfigError(f"breakpoint has unknown fields: {sorted(unknown)}")
    label = raw.get("label")
    if label not in BREAKPOINT_LABELS:
        raise ConfigError(f"breakpoint.label must be one of {sorted(BREAKPOINT_LABELS)}")
    width = raw.get("width")
    if not isinstance(width, int) or isinstance(width, bool) or width <= 0:
        raise ConfigError(f"breakpoint '{label}' width must be int > 0")
    return Breakpoint(label=label, width=width)


def _parse_point(raw: Any, phase: str) -> InjectionPoint:
    if not isinstance(raw, dict):
        raise ConfigError(f"inject.{phase} entry must be mapping")
    unknown = set(raw.keys()) - _ALLOWED_POINT_KEYS
    if unknown:
        raise ConfigError(f"inject.{phase} entry has unknown fields: {sorted(unknown)}")
    target = raw.get("target")
    if not _is_relative_path(target):
        raise ConfigError(f"inject.{phase} target must be a relative path inside the project")
    marker = raw.get("marker")
    if not isinstance(marker, str) or MARKER_PATTERN.fullmatch(marker) is None:
        raise ConfigError(
            f"inject.{phase} marker for '{target}' must look like '<!-- inject:NAME -->'"
        )
    sources = raw.get("sources")
    if (
        not isinstance(sources, list)
        or not sources
        or not all(_is_relative_path(source) for source in sources)
    ):
        raise ConfigError(f"inject.{phase} sources for '{target}' must be non-empty list[path]")
    wrap = raw.get("wrap", "none")
    if wrap not in WRAP_VALUES:
        raise ConfigError(f"inject.{phase} wrap must be one of {sorted(WRAP_VALUES)}")
    return InjectionPoint(marker=marker, target=target, sources=tuple(sources), wrap=wrap)


def _parse_inject(raw: Any) -> InjectSpec:
    if raw is None:
        return InjectSpec()
    if not isinstance(raw, dict):
        raise ConfigError("inject must be mapping")
    unknown = set(raw.keys()) - _ALLOWED_INJECT_KEYS
    if unknown:
        raise ConfigError(f"inject has unknown fields: {sorted(unknown)}")
    phases: dict[str, tuple[InjectionPoint, ...]] = {}
    for phase in ("fragments", "pages"):
        entries = raw.get(phase, [])
        if entries is None:
            entries = []
        if not isinstance(entries, list):
            raise ConfigError(f"inject.{phase} must be a list")
        phases[phase] = tuple(_parse_point(entry, phase) for entry in entries)
    return InjectSpec(fragments=phases["fragments"], pages=phases["pages"])


def validate_config(config: PipelineConfig) -> None:
    if not config.breakpoints:
        raise ConfigError("breakpoints must contain at least one breakpoint")
    widths = [bp.width for bp in config.breakpoints]
    if len(set(widths)) != len(widths):
        raise ConfigError("breakpoint widths must be unique")
    for point in config.inject.fragments:
        if point.target in {page.target for page in config.inject.pages}:
            raise ConfigError(f"'{point.target}' cannot be both fragment and page target")


def parse_config(raw: Any) -> PipelineConfig:
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError("config root must be a mapping")
    if any(not isinstance(key, str) for key in raw):
        raise ConfigError("config root keys must be strings")
    unknown_root = set(raw.keys()) - _ALLOWED_ROOT_KEYS
    if unknown_root:
        raise ConfigError(f"config contains unknown fields: {sorted(unknown_root)}")

    dist_dir = raw.get("dist_dir", "dist")
    if not _is_relative_path(dist_dir) or not PurePosixPath(dist_dir).parts:
        raise ConfigError("dist_dir must be a relative directory inside the project")

    raw_breakpoints = raw.get("breakpoints")
    if raw_breakpoints is None:
        breakpoints = DEFAULT_BREAKPOINTS
    elif isinstance(raw_breakpoints, list):
        breakpoints = tuple(_parse_breakpoint(bp) for bp in raw_breakpoints)
    else:
        raise ConfigError("breakpoints must be a list")

    config = PipelineConfig(
        dist_dir=dist_dir,
        breakpoints=breakpoints,
        inject=_parse_inject(raw.get("inject")),
    )
    validate_config(config)
    return config


def load_config(path: Path | None, workdir: Path) -> PipelineConfig:
    """Load config from `path`, or from the default file in `workdir` when present."""
    if path is None:
        path = workdir / DEFAULT_CONFIG_NAME
        if not path.is_file():
            return PipelineConfig()
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigError(f"config file not found: {path}") from exc
    except UnicodeError as exc:
        raise ConfigError(f"failed to decode config file as utf-8: {path}") from exc
    except OSError as exc:
        raise ConfigError(f"failed to read config file: {path}") from exc

    try:
        raw = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse yaml: {exc}") from exc
    return parse_config(raw)
