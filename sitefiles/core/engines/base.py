# sitefiles/core/engines/base.py
"""
Engine interface, the pass-through engine, and the extension registry.
"""
from abc import ABC, abstractmethod
from typing import Dict, Iterable, NamedTuple, Optional, Union
import structlog

from sitefiles.core.compose import RenderConfig
from sitefiles.core.vfile import VirtualFile
from sitefiles.util import normalize_ext

log = structlog.get_logger(__name__)


class RenderResult(NamedTuple):
    file: VirtualFile
    ext: Optional[str] = None


class Engine(ABC):
    """Renders a buffered VirtualFile in place.

    `output_ext` is what the engine reports as the natural extension of its
    output; None means it has no opinion.
    """
    name: str = "engine"
    output_ext: Optional[str] = None

    @abstractmethod
    def render(self, file: VirtualFile, config: RenderConfig) -> RenderResult:
        ...


class NoopEngine(Engine):
    """Leaves the file untouched. Used for extensions with no registered engine."""
    name = "noop"

    def render(self, file: VirtualFile, config: RenderConfig) -> RenderResult:
        return RenderResult(file, None)


class EngineRegistry:
    """Maps file extensions to engines, falling back to a default engine."""

    def __init__(self, fallback: Optional[Engine] = None):
        self._engines: Dict[str, Engine] = {}
        self.fallback: Engine = fallback or NoopEngine()

    def register(self, exts: Union[str, Iterable[str]], engine: Engine) -> None:
        if isinstance(exts, str):
            exts = [exts]
        for ext in exts:
            key = normalize_ext(ext)
            if not key:
                raise ValueError("cannot register an engine for an empty extension")
            self._engines[key] = engine
            log.debug("engine_registered", ext=key, engine=engine.name)

    def get(self, ext: Optional[str]) -> Optional[Engine]:
        return self._engines.get(normalize_ext(ext))

    def resolve(self, ext: Optional[str]) -> Engine:
        engine = self.get(ext)
        if engine is None:
            log.debug("no_engine_for_extension_using_fallback", ext=ext, fallback=self.fallback.name)
            return self.fallback
        return engine

    def __contains__(self, ext: str) -> bool:
        return normalize_ext(ext) in self._engines

    def extensions(self):
        return sorted(self._engines)
