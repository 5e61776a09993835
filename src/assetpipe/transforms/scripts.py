from __future__ import annotations

from pathlib import Path

import rjsmin

from assetpipe.transforms.groups import AssetGroup, read_text_source, write_text_output
from assetpipe.util.errors import TransformError


def minify_scripts(group: AssetGroup) -> list[Path]:
    written: list[Path] = []
    for source in group.sources():
        try:
            minified = rjsmin.jsmin(read_text_source(source))
        except (OSError, UnicodeError) as exc:
            raise TransformError(f"failed to minify {source}: {exc}") from exc
        written.append(write_text_output(group.output_for(source), minified))
    return written
