# sitefiles/core/discovery/walker.py
import os
from pathlib import Path
from typing import Dict, Iterator, List, Optional
import structlog

from sitefiles.core.discovery.pattern_matching import SourceFilter
from sitefiles.core.vfile import VirtualFile
from sitefiles.exceptions import DiscoveryError
from sitefiles.util import split_front_matter

log = structlog.get_logger(__name__)

def discover_paths(
    base_dir: Path,
    include_patterns: List[str],
    exclude_patterns: Optional[List[str]] = None,
    hidden: bool = False,
) -> Iterator[Path]:
    """Walks base_dir and yields files matching the include patterns, in sorted order."""
    base_dir = Path(base_dir).resolve()
    if not base_dir.is_dir():
        raise DiscoveryError(f"source directory '{base_dir}' does not exist")
    log.info("path_discovery_walker_started", base_dir=str(base_dir), patterns=include_patterns)

    source_filter = SourceFilter.from_patterns(include_patterns, exclude_patterns, hidden)

    for root, dirs, files in os.walk(str(base_dir), topdown=True):
        # prune hidden directories and keep the walk deterministic.
        dirs[:] = sorted(
            d for d in dirs
            if source_filter.descend_into(Path(root, d).relative_to(base_dir))
        )
        for file_name in sorted(files):
            file_path = Path(root, file_name)
            if source_filter.accepts(file_path.relative_to(base_dir)):
                yield file_path


def load_virtual_file(file_path: Path, base_dir: Path, buffer: bool = True) -> VirtualFile:
    """Loads one file from disk.

    With buffer=True the contents are read into memory and any `+++` TOML front
    matter moves into `data`. With buffer=False the contents are an open binary
    handle that the consumer must close.
    """
    if not buffer:
        try:
            return VirtualFile(path=file_path, contents=file_path.open("rb"), base=base_dir)
        except OSError as e:
            raise DiscoveryError(f"failed to open '{file_path}': {e}") from e
    try:
        raw = file_path.read_bytes()
    except OSError as e:
        raise DiscoveryError(f"failed to read '{file_path}': {e}") from e
    data, body = split_front_matter(raw)
    if data:
        log.debug("front_matter_loaded", path=str(file_path), keys=list(data.keys()))
    return VirtualFile(path=file_path, contents=body, data=data, base=base_dir)


def discover_files(
    base_dir: Path,
    include_patterns: List[str],
    exclude_patterns: Optional[List[str]] = None,
    hidden: bool = False,
    buffer: bool = True,
) -> Iterator[VirtualFile]:
    base_dir = Path(base_dir).resolve()
    for file_path in discover_paths(base_dir, include_patterns, exclude_patterns, hidden):
        yield load_virtual_file(file_path, base_dir, buffer=buffer)


def load_partials(base_dir: Path, patterns: List[str]) -> Dict[str, str]:
    # partial name is the file stem; later matches win on clashes.
    partials: Dict[str, str] = {}
    if not patterns:
        return partials
    for file_path in discover_paths(base_dir, patterns):
        try:
            partials[file_path.stem] = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise DiscoveryError(f"failed to read partial '{file_path}': {e}") from e
        log.debug("partial_loaded", name=file_path.stem, path=str(file_path))
    return partials
