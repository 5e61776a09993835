from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Literal

from PIL import Image, ImageOps, UnidentifiedImageError

from assetpipe.transforms.groups import AssetGroup
from assetpipe.util.errors import TransformError

logger = logging.getLogger(__name__)

ImageFormat = Literal["original", "webp"]
RASTER_FORMATS: dict[str, str] = {
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".png": "PNG",
    ".gif": "GIF",
    ".webp": "WEBP",
}
JPEG_QUALITY = 82
WEBP_QUALITY = 80


def _load(path: Path) -> tuple[Image.Image, bool]:
    try:
        with Image.open(path) as opened:
            animated = bool(getattr(opened, "is_animated", False))
            opened.load()
            return ImageOps.exif_transpose(opened), animated
    except (UnidentifiedImageError, OSError) as exc:
        raise TransformError(f"cannot read image {path}: {exc}") from exc


def _save(image: Image.Image, path: Path, fmt: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        if fmt == "JPEG":
            if image.mode not in ("RGB", "L"):
                image = image.convert("RGB")
            image.save(path, "JPEG", quality=JPEG_QUALITY, optimize=True, progressive=True)
        elif fmt == "WEBP":
            if image.mode == "P":
                image = image.convert("RGBA")
            image.save(path, "WEBP", quality=WEBP_QUALITY, method=4)
        else:
            image.save(path, fmt, optimize=True)
    except (OSError, ValueError) as exc:
        raise TransformError(f"cannot write image {path}: {exc}") from exc
    return path


def compress_images(group: AssetGroup) -> list[Path]:
    """Re-encode raster images without metadata; other files (svg) are copied as-is."""
    written: list[Path] = []
    for source in group.sources():
        output = group.output_for(source)
        fmt = RASTER_FORMATS.get(source.suffix.lower())
        if fmt is None:
            output.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, output)
            written.append(output)
            continue
        image, animated = _load(source)
        if animated:
            output.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, output)
            written.append(output)
            continue
        written.append(_save(image, output, fmt))
    return written


def resize_images(
    group: AssetGroup, *, width: int, density: int, fmt: ImageFormat = "original"
) -> list[Path]:
    """Scale every raster source down to `width` pixels and encode it.

    Output is `{stem}-{density}x.{ext}`, without the density suffix for 1x,
    and with a `.webp` extension when `fmt` is `webp`. Images are never upscaled.
    """
    if width <= 0:
        raise ValueError("width must be > 0")
    suffix = f"-{density}x" if density > 1 else ""
    written: list[Path] = []
    for source in group.sources():
        source_fmt = RASTER_FORMATS.get(source.suffix.lower())
        if source_fmt is None:
            logger.debug("skipping non-raster source %s", source)
            continue
        image, _ = _load(source)
        if image.width > width:
            height = max(1, round(image.height * width / image.width))
            image = image.resize((width, height), Image.Resampling.LANCZOS)
        if fmt == "webp":
            output = group.output_for(source, suffix=suffix, ext=".webp")
            written.append(_save(image, output, "WEBP"))
        else:
            output = group.output_for(source, suffix=suffix)
            written.append(_save(image, output, source_fmt))
    return written
