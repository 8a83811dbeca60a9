from pathlib import Path
from typing import Tuple, Dict, Any

import toml
import structlog

log = structlog.get_logger(__name__)
utf8_bom = b"\xef\xbb\xbf"
front_matter_fence = b"+++"

def strip_utf8_bom(data: bytes) -> bytes:
    # removes the utf-8 byte order mark from byte data if present.
    if data.startswith(utf8_bom):
        return data[len(utf8_bom):]
    return data

def normalize_ext(ext: str | None) -> str:
    # ".HBS", "hbs" and " .hbs" all become ".hbs". empty stays empty.
    if not ext:
        return ""
    ext = ext.strip().lower()
    return ext if ext.startswith(".") else f".{ext}"

def replace_ext(path: Path, ext: str | None) -> Path:
    # swaps the final suffix of path for ext; appends when there is none.
    new_ext = ext.strip() if ext else ""
    if new_ext and not new_ext.startswith("."):
        new_ext = f".{new_ext}"
    if not path.name:
        return path
    return path.with_suffix(new_ext)

def split_front_matter(data: bytes) -> Tuple[Dict[str, Any], bytes]:
    """Splits a leading `+++` fenced TOML block off the content.

    Returns the parsed table and the remaining body. Content without a
    front matter block comes back untouched with an empty table.
    """
    body = strip_utf8_bom(data)
    first_line, sep, rest = body.partition(b"\n")
    if not sep or first_line.rstrip(b"\r") != front_matter_fence:
        return {}, data

    lines = rest.split(b"\n")
    for idx, line in enumerate(lines):
        if line.rstrip(b"\r") == front_matter_fence:
            remaining = b"\n".join(lines[idx + 1:])
            try:
                header = b"\n".join(lines[:idx]).decode("utf-8").replace("\r", "")
                return toml.loads(header), remaining
            except (toml.TomlDecodeError, UnicodeDecodeError) as e:
                log.warning("front_matter_parse_failed", error=str(e))
                return {}, data
    log.debug("front_matter_fence_not_closed")
    return {}, data
