# sitefiles/core/discovery/pattern_matching.py
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional
import pathspec
import structlog

from sitefiles.exceptions import DiscoveryError

log = structlog.get_logger(__name__)

def compile_source_globs(globs: Iterable[str]) -> Optional[pathspec.PathSpec]:
    # gitwildmatch semantics, so "**/*.hbs" also matches files at the top level.
    globs = [g for g in globs if g and g.strip()]
    if not globs:
        return None
    try:
        return pathspec.PathSpec.from_lines("gitwildmatch", globs)
    except (ValueError, TypeError) as e:
        raise DiscoveryError(f"invalid source pattern in {globs}: {e}") from e

def has_dot_segment(rel_path: Path) -> bool:
    return any(part.startswith(".") and part not in (".", "..") for part in rel_path.parts)


@dataclass
class SourceFilter:
    """Decides which paths under a source directory become site files."""

    include: pathspec.PathSpec
    exclude: Optional[pathspec.PathSpec] = None
    hidden: bool = False

    @classmethod
    def from_patterns(cls, include_globs, exclude_globs=None, hidden: bool = False) -> "SourceFilter":
        include = compile_source_globs(include_globs or []) or compile_source_globs(["**/*"])
        return cls(include, compile_source_globs(exclude_globs or []), hidden)

    def descend_into(self, rel_dir: Path) -> bool:
        return self.hidden or not has_dot_segment(rel_dir)

    def accepts(self, rel_path: Path) -> bool:
        if not self.hidden and has_dot_segment(rel_path):
            return False
        posix = rel_path.as_posix()
        if not self.include.match_file(posix):
            return False
        return not (self.exclude and self.exclude.match_file(posix))
