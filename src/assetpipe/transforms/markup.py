from __future__ import annotations

from pathlib import Path

import minify_html

from assetpipe.transforms.groups import AssetGroup, read_text_source, write_text_output
from assetpipe.util.errors import TransformError


def minify_markup(group: AssetGroup) -> list[Path]:
    """Collapse whitespace and drop comments; inline <style>/<script> are minified too."""
    written: list[Path] = []
    for source in group.sources():
        read_from = group.read_path(source)
        try:
            minified = minify_html.minify(
                read_text_source(read_from), minify_css=True, minify_js=True
            )
        except (OSError, UnicodeError, SyntaxError, ValueError) as exc:
            raise TransformError(f"failed to minify {read_from}: {exc}") from exc
        written.append(write_text_output(group.output_for(source), minified))
    return written
