# sitefiles/core/site.py
"""
Site: owns the process-wide options, the engine registry, and the helper and
partial caches, and provides the `render(file, config, callback)` capability
the render stage calls.
"""
import asyncio
import importlib.util
import inspect
from collections.abc import Mapping
from functools import partial
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Union
import structlog

from sitefiles.config.settings import DEFAULT_EXT, DEFAULT_OPTIONS
from sitefiles.core.compose import RenderConfig
from sitefiles.core.discovery import discover_files
from sitefiles.core.engines import Engine, EngineRegistry, HandlebarsEngine, NoopEngine
from sitefiles.core.output import write_file
from sitefiles.core.stage import RenderCallback, RenderStage
from sitefiles.core.vfile import VirtualFile
from sitefiles.exceptions import ConfigError

log = structlog.get_logger(__name__)

HANDLEBARS_EXTENSIONS = [".hbs", ".handlebars", ".html"]


def load_helpers_from_file(helper_file: Path) -> Dict[str, Callable]:
    """Imports a Python file and returns its helpers.

    A module-level `HELPERS` dict wins; otherwise every public function
    defined in the module is a helper named after the function.
    """
    helper_file = Path(helper_file)
    if not helper_file.is_file():
        raise ConfigError(f"helper file '{helper_file}' does not exist")
    module_name = f"sitefiles_helpers_{helper_file.stem}"
    spec = importlib.util.spec_from_file_location(module_name, helper_file)
    if spec is None or spec.loader is None:
        raise ConfigError(f"cannot load helpers from '{helper_file}'")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise ConfigError(f"failed to import helper file '{helper_file}': {e}") from e

    exported = getattr(module, "HELPERS", None)
    if isinstance(exported, Mapping):
        return dict(exported)
    return {
        name: obj for name, obj in vars(module).items()
        if not name.startswith("_") and inspect.isfunction(obj) and obj.__module__ == module_name
    }


class Site:
    """A build context. `options` are the base options every render starts from."""

    def __init__(self, options: Optional[Mapping] = None):
        self.options: Dict[str, Any] = {**DEFAULT_OPTIONS, **(options or {})}
        self.cache: Dict[str, Any] = {"ext": DEFAULT_EXT}
        self.helper_cache: Dict[str, Callable] = {}
        self.partial_cache: Dict[str, str] = {}
        self.engines = EngineRegistry(fallback=NoopEngine())
        self.engine(HANDLEBARS_EXTENSIONS, HandlebarsEngine(self.helper_cache, self.partial_cache))
        self.log = structlog.get_logger(f"{__name__}.{self.__class__.__name__}")

    def get(self, key: str, default: Any = None) -> Any:
        return self.cache.get(key, default)

    def set(self, key: str, value: Any) -> "Site":
        self.cache[key] = value
        return self

    def engine(self, exts: Union[str, Iterable[str]], engine: Engine) -> "Site":
        self.engines.register(exts, engine)
        return self

    def helpers(self, source: Union[Mapping, str, Path]) -> "Site":
        # accepts a mapping of name -> callable, or a path to a python file.
        if isinstance(source, Mapping):
            new_helpers = dict(source)
        else:
            new_helpers = load_helpers_from_file(Path(source))
        for name, fn in new_helpers.items():
            if not callable(fn):
                raise ConfigError(f"helper '{name}' is not callable")
        self.helper_cache.update(new_helpers)
        self.log.debug("helpers_registered", names=sorted(new_helpers))
        return self

    def register_helpers(self, source: Union[Mapping, str, Path]) -> "Site":
        return self.helpers(source)

    def partials(self, source: Mapping) -> "Site":
        self.partial_cache.update({name: str(body) for name, body in source.items()})
        self.log.debug("partials_registered", names=sorted(source))
        return self

    def render(self, file: VirtualFile, config: RenderConfig, callback: RenderCallback) -> None:
        """Renders `file` with the engine registered for its extension.

        Calls `callback(error, file, ext)` exactly once. Inside a running event
        loop the engine runs on the default executor; otherwise it runs inline.
        """
        engine = self.engines.resolve(file.ext)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is None or isinstance(engine, NoopEngine):
            self._render_now(engine, file, config, callback)
            return

        future = loop.run_in_executor(None, engine.render, file, config)
        future.add_done_callback(partial(self._deliver, callback, file))

    def _render_now(self, engine: Engine, file: VirtualFile, config: RenderConfig, callback: RenderCallback) -> None:
        try:
            result = engine.render(file, config)
        except Exception as e:
            self.log.debug("engine_render_failed", engine=engine.name, path=str(file.path), error=str(e))
            callback(e, None, None)
            return
        callback(None, result.file, result.ext)

    def _deliver(self, callback: RenderCallback, file: VirtualFile, future: "asyncio.Future") -> None:
        if future.cancelled():
            self.log.debug("engine_render_cancelled", path=str(file.path))
            return
        exc = future.exception()
        if exc is not None:
            callback(exc, None, None)
            return
        result = future.result()
        callback(None, result.file, result.ext)

    def renderer(self, options: Optional[Mapping] = None, locals: Optional[Mapping] = None, **kwargs: Any) -> RenderStage:
        """A render stage bound to this site's render capability, options and default extension."""
        return RenderStage(
            self.render,
            base_options=self.options,
            default_ext=self.get("ext", DEFAULT_EXT),
            options=options,
            locals=locals,
            **kwargs,
        )

    def src(
        self,
        patterns: Union[str, List[str]],
        base: Optional[Path] = None,
        exclude: Optional[List[str]] = None,
        buffer: bool = True,
        hidden: bool = False,
    ) -> Iterator[VirtualFile]:
        if isinstance(patterns, str):
            patterns = [patterns]
        return discover_files(base or Path.cwd(), patterns, exclude, hidden=hidden, buffer=buffer)

    def dest(self, dest_dir: Path) -> Callable[[VirtualFile], Path]:
        dest_dir = Path(dest_dir)
        return lambda file: write_file(file, dest_dir)
