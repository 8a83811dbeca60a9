from pathlib import Path
import structlog

from sitefiles.core.vfile import VirtualFile
from sitefiles.exceptions import OutputError

log = structlog.get_logger(__name__)

def write_file(file: VirtualFile, dest_dir: Path) -> Path:
    # writes a file under dest_dir at its path relative to file.base.
    target = Path(dest_dir) / file.relative
    if file.is_null():
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OutputError(f"failed to create directory '{target}': {e}") from e
        return target
    if not file.is_buffer():
        raise OutputError(f"cannot write '{file.path}': contents are not a buffer")
    log.info("writing_output_to_file", path=str(target))
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(file.contents)
    except OSError as e:
        raise OutputError(f"failed to write to file '{target}': {e}") from e
    return target
