# sitefiles/core/engines/handlebars.py
"""
Handlebars engine backed by pybars.
"""
import threading
from typing import Any, Callable, Dict, Optional
import pybars # type: ignore
import structlog

from sitefiles.core.compose import RenderConfig
from sitefiles.core.vfile import VirtualFile
from sitefiles.exceptions import TemplateError

from .base import Engine, RenderResult
from .helpers import BUILTIN_HELPERS

log = structlog.get_logger(__name__)


class HandlebarsEngine(Engine):
    """Compiles file contents as a Handlebars template and renders it with the config's locals.

    `helpers` and `partials` are shared with the owning site and read at render
    time, so registrations made after the engine is created still apply.
    Per-call `helpers` and `partials` options are layered on top.
    """
    name = "handlebars"
    output_ext = ".html"

    def __init__(self, helpers: Optional[Dict[str, Callable]] = None, partials: Optional[Dict[str, str]] = None):
        self.handlebars_compiler = pybars.Compiler()
        self.helpers: Dict[str, Callable] = helpers if helpers is not None else {}
        self.partials: Dict[str, str] = partials if partials is not None else {}
        self._compiled_cache: Dict[str, Callable] = {}
        self._compile_lock = threading.Lock()

    def _compile(self, source: str, source_name: str, cache: bool = False) -> Callable:
        # only partials are cached; a page source is compiled once per render.
        compiled = self._compiled_cache.get(source) if cache else None
        if compiled is not None:
            return compiled
        try:
            with self._compile_lock:
                compiled = self.handlebars_compiler.compile(source)
        except Exception as e:
            log.error("template_compilation_failed", source=source_name, error=str(e))
            raise TemplateError(f"Failed to compile template '{source_name}': {e}") from e
        if cache:
            self._compiled_cache[source] = compiled
        return compiled

    def _collect(self, config: RenderConfig):
        helpers = {**BUILTIN_HELPERS, **self.helpers, **(config.get("helpers") or {})}
        partial_sources = {**self.partials, **(config.get("partials") or {})}
        partials = {
            name: self._compile(src, f"partial:{name}", cache=True)
            for name, src in partial_sources.items()
        }
        return helpers, partials

    def render(self, file: VirtualFile, config: RenderConfig) -> RenderResult:
        encoding = config.get("encoding", "utf-8")
        source_name = str(file.relative)
        template = self._compile(file.text(encoding), source_name)
        helpers, partials = self._collect(config)
        context: Dict[str, Any] = dict(config.locals)

        log.debug("rendering_template_with_context", source=source_name, context_keys=list(context.keys()))
        try:
            rendered = template(context, helpers=helpers, partials=partials)
        except Exception as e:
            log.error("template_rendering_error_occurred", source=source_name, error_message=str(e))
            if isinstance(e, pybars.PybarsError) and "missing" in str(e).lower():
                raise TemplateError(
                    f"Template render failed for '{source_name}': a partial or helper might be missing. "
                    f"Pybars detail: {e}") from e
            raise TemplateError(f"Template render failed for '{source_name}': {e}") from e

        file.contents = str(rendered).encode(encoding)
        return RenderResult(file, self.output_ext)
