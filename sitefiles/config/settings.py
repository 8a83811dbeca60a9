from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Dict, Any
import structlog

log = structlog.get_logger(__name__)

RENDERER_PLUGIN_NAME = "sitefiles-renderer"

# extension used when neither the caller nor the engine picks one.
DEFAULT_EXT = ".html"

# process-wide base options. read only; copy before changing.
DEFAULT_OPTIONS: Dict[str, Any] = {
    "encoding": "utf-8",
}

DEFAULT_SRC_PATTERNS = ["**/*.hbs"]
DEFAULT_DEST_DIR = Path("_site")

@dataclass
class BuildConfig:
    # holds all configuration parameters for a single build run.
    src_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_SRC_PATTERNS))
    exclude_patterns: List[str] = field(default_factory=list)
    dest_dir: Path = DEFAULT_DEST_DIR
    ext: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)
    locals: Dict[str, Any] = field(default_factory=dict)
    helper_files: List[Path] = field(default_factory=list)
    partial_patterns: List[str] = field(default_factory=list)
    include_file_data: bool = True
    buffer: bool = True
    hidden: bool = False

    base_dir: Optional[Path] = None

    def __post_init__(self):
        # performs initial setup after dataclass instantiation.
        if self.base_dir is None:
            self.base_dir = Path.cwd().resolve()
        else:
            self.base_dir = Path(self.base_dir).resolve()
        self.dest_dir = (self.base_dir / Path(self.dest_dir)).resolve()
