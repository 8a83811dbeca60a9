# sitefiles/core/engines/__init__.py
"""
Render engines for sitefiles.

Each engine renders one buffered VirtualFile. Engines are looked up by file
extension through an EngineRegistry; extensions with no engine go through
the NoopEngine, which passes the file along unchanged.
"""
from .base import Engine, EngineRegistry, NoopEngine, RenderResult
from .handlebars import HandlebarsEngine
from .helpers import BUILTIN_HELPERS

__all__ = [
    "Engine",
    "EngineRegistry",
    "NoopEngine",
    "RenderResult",
    "HandlebarsEngine",
    "BUILTIN_HELPERS",
]
