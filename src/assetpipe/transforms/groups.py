from __future__ import annotations

import fnmatch
import posixpath
from dataclasses import dataclass
from pathlib import Path, PurePosixPath


def matches_pattern(rel_path: str, pattern: str) -> bool:
    """Match a project-relative posix path against a single-level glob.

    Unlike `fnmatch` alone, `*` never crosses a directory boundary, so
    `*.html` matches `index.html` but not `views/pizza.html`.
    """
    pattern_dir, pattern_name = posixpath.split(pattern)
    rel_dir, rel_name = posixpath.split(rel_path)
    return rel_dir == pattern_dir and fnmatch.fnmatchcase(rel_name, pattern_name)


@dataclass(frozen=True, slots=True)
class AssetGroup:
    """A source glob under `source_root` paired with its destination directory."""

    source_root: Path
    pattern: str
    destination: Path
    overlay: Path | None = None

    def sources(self) -> list[Path]:
        matches = [path for path in self.source_root.glob(self.pattern) if path.is_file()]
        return sorted(matches)

    def read_path(self, source: Path) -> Path:
        if self.overlay is None:
            return source
        candidate = self.overlay / source.relative_to(self.source_root)
        return candidate if candidate.is_file() else source

    def output_for(self, source: Path, *, suffix: str = "", ext: str | None = None) -> Path:
        name = f"{source.stem}{suffix}{ext if ext is not None else source.suffix}"
        return self.destination / name

    def describe(self) -> str:
        return f"{PurePosixPath(self.pattern)} -> {self.destination}"


def write_text_output(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def read_text_source(path: Path) -> str:
    return path.read_text(encoding="utf-8")
