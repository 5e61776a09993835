from __future__ import annotations

import logging
import re
from pathlib import Path

import rcssmin
import sass

from assetpipe.transforms.groups import AssetGroup, read_text_source, write_text_output
from assetpipe.util.errors import TransformError

logger = logging.getLogger(__name__)

# Stands in for autoprefixer's `last 2 versions` setting: properties that still
# need vendor copies for the last two releases of the browsers the site targets.
PREFIXED_PROPERTIES: dict[str, tuple[str, ...]] = {
    "appearance": ("-webkit-", "-moz-"),
    "backface-visibility": ("-webkit-",),
    "hyphens": ("-webkit-", "-ms-"),
    "tab-size": ("-moz-",),
    "text-size-adjust": ("-webkit-", "-moz-", "-ms-"),
    "user-select": ("-webkit-", "-moz-", "-ms-"),
}
_RULE_BODY = re.compile(r"\{(?P<body>[^{}]*)\}")
_DECLARATION = re.compile(
    r"(?P<indent>^[ \t]*|(?<=[{;])[ \t]*)(?P<prop>-?[A-Za-z][A-Za-z-]*)[ \t]*:(?P<value>[^;{}]*);",
    re.MULTILINE,
)


def _prefix_body(match: re.Match[str]) -> str:
    body = match.group("body")
    present = {decl.group("prop").lower() for decl in _DECLARATION.finditer(body)}

    def _expand(decl: re.Match[str]) -> str:
        prop = decl.group("prop").lower()
        vendors = PREFIXED_PROPERTIES.get(prop)
        if not vendors:
            return decl.group(0)
        indent = decl.group("indent")
        value = decl.group("value")
        separator = "\n" if indent else ""
        copies = [
            f"{indent}{vendor}{prop}:{value};{separator}"
            for vendor in vendors
            if f"{vendor}{prop}" not in present
        ]
        return "".join(copies) + decl.group(0)

    return "{" + _DECLARATION.sub(_expand, body) + "}"


def prefix_css(css: str) -> str:
    """Insert vendor-prefixed copies of declarations listed in PREFIXED_PROPERTIES."""
    return _RULE_BODY.sub(_prefix_body, css)


def compile_scss(source: Path) -> str:
    try:
        return sass.compile(
            filename=str(source),
            output_style="expanded",
            include_paths=[str(source.parent)],
        )
    except sass.CompileError as exc:
        raise TransformError(f"sass failed for {source}: {exc}") from exc


def compile_styles(group: AssetGroup) -> list[Path]:
    """Compile SCSS entry files (underscore partials are skipped) and prefix them."""
    written: list[Path] = []
    for source in group.sources():
        if source.name.startswith("_"):
            continue
        css = prefix_css(compile_scss(source))
        written.append(write_text_output(group.output_for(source, ext=".css"), css))
    logger.debug("compiled %d stylesheet(s) for %s", len(written), group.describe())
    return written


def minify_styles(group: AssetGroup) -> list[Path]:
    written: list[Path] = []
    for source in group.sources():
        try:
            minified = rcssmin.cssmin(read_text_source(group.read_path(source)))
        except (OSError, UnicodeError) as exc:
            raise TransformError(f"failed to minify {source}: {exc}") from exc
        written.append(write_text_output(group.output_for(source), minified))
    return written
