# sitefiles/core/vfile.py
"""
VirtualFile: an in-memory file (path, contents, data) flowing through a build.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from sitefiles.util import replace_ext


@dataclass(eq=False)
class VirtualFile:
    """A file that has not been written to disk yet.

    `contents` is None for directories and placeholders, bytes for a loaded
    buffer, or a live stream (a readable object or a byte iterator).
    """
    path: Path
    contents: Any = None
    data: Dict[str, Any] = field(default_factory=dict)
    base: Optional[Path] = None
    history: List[Path] = field(default_factory=list)

    def __post_init__(self):
        self.path = Path(self.path)
        if self.base is None:
            self.base = self.path.parent
        else:
            self.base = Path(self.base)
        if isinstance(self.contents, str):
            self.contents = self.contents.encode("utf-8")
        elif isinstance(self.contents, (bytearray, memoryview)):
            self.contents = bytes(self.contents)
        if not self.history:
            self.history.append(self.path)

    def __setattr__(self, name: str, value: Any):
        if name == "path" and "history" in self.__dict__:
            value = Path(value)
            if not self.history or self.history[-1] != value:
                self.history.append(value)
        super().__setattr__(name, value)

    def is_null(self) -> bool:
        return self.contents is None

    def is_buffer(self) -> bool:
        return isinstance(self.contents, bytes)

    def is_stream(self) -> bool:
        c = self.contents
        if c is None or isinstance(c, bytes):
            return False
        return (hasattr(c, "read") or hasattr(c, "__aiter__")
                or hasattr(c, "__anext__") or hasattr(c, "__next__"))

    @property
    def ext(self) -> str:
        return self.path.suffix

    @ext.setter
    def ext(self, value: Optional[str]):
        self.path = replace_ext(self.path, value)

    @property
    def stem(self) -> str:
        return self.path.stem

    @property
    def relative(self) -> Path:
        try:
            return self.path.relative_to(self.base)
        except ValueError:
            return Path(self.path.name)

    def text(self, encoding: str = "utf-8") -> str:
        # decoded buffer contents; empty string for null files.
        if self.contents is None:
            return ""
        if not self.is_buffer():
            raise TypeError(f"contents of {self.path} are not a buffer")
        return self.contents.decode(encoding)

    def __repr__(self) -> str:
        kind = "null" if self.is_null() else ("buffer" if self.is_buffer() else "stream")
        return f"<VirtualFile {str(self.relative)!r} {kind}>"
