# sitefiles/core/pipeline.py
import asyncio
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn
from rich.console import Console as RichConsole
import structlog
import logging as stdlib_logging

from sitefiles.config.settings import BuildConfig
from sitefiles.core.discovery import discover_paths, load_partials, load_virtual_file
from sitefiles.core.output import write_file
from sitefiles.core.site import Site
from sitefiles.exceptions import RenderError

log = structlog.get_logger(__name__)


@dataclass
class BuildResult:
    written: List[Path] = field(default_factory=list)
    errors: List[RenderError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class SiteBuilder:
    # orchestrates discovery, rendering and writing for one build.
    def __init__(self, config: BuildConfig, site: Optional[Site] = None):
        self.config: BuildConfig = config
        self.site = site or Site(options=config.options)
        self.log = structlog.get_logger(f"{__name__}.{self.__class__.__name__}")
        self._configure_site()

    def _configure_site(self):
        for helper_file in self.config.helper_files:
            path = helper_file if helper_file.is_absolute() else self.config.base_dir / helper_file
            self.site.helpers(path)
        if self.config.partial_patterns:
            self.site.partials(load_partials(self.config.base_dir, self.config.partial_patterns))

    def _source_paths(self) -> List[Path]:
        # partials are inputs to other templates, never pages of their own.
        exclude = list(self.config.exclude_patterns) + list(self.config.partial_patterns)
        # output inside the source tree must not be picked up on the next build.
        try:
            dest_rel = self.config.dest_dir.resolve().relative_to(self.config.base_dir.resolve())
        except ValueError:
            dest_rel = None
        if dest_rel is not None and dest_rel != Path("."):
            exclude.append(f"/{dest_rel.as_posix()}/")
        return list(discover_paths(self.config.base_dir, self.config.src_patterns, exclude, self.config.hidden))

    async def _render_and_write(self, paths: List[Path], progress: Progress) -> BuildResult:
        result = BuildResult()
        call_options = {"ext": self.config.ext} if self.config.ext else None
        stage = self.site.renderer(
            options=call_options,
            locals=self.config.locals,
            include_file_data=self.config.include_file_data,
        )
        stage.on_error(result.errors.append)

        task = progress.add_task("rendering...", total=len(paths))
        loaded = []

        def load_all():
            for path in paths:
                file = load_virtual_file(path, self.config.base_dir, buffer=self.config.buffer)
                loaded.append(file)
                yield file
                progress.update(task, advance=1, description=f"rendering {path.name}")

        try:
            async for rendered in stage.process(load_all()):
                result.written.append(write_file(rendered, self.config.dest_dir))
        finally:
            stage.destroy()
            for file in loaded:
                if file.is_stream() and hasattr(file.contents, "close"):
                    file.contents.close()
        progress.update(task, completed=len(paths), description=f"rendered {len(result.written)} files")
        return result

    def build(self) -> BuildResult:
        # runs the full pipeline and returns the written paths and render errors.
        app_log_level = stdlib_logging.getLogger("sitefiles").getEffectiveLevel()
        progress_disabled = app_log_level > stdlib_logging.INFO or not sys.stderr.isatty()
        stderr_console = RichConsole(file=sys.stderr)

        with Progress(
            SpinnerColumn(), TextColumn("[bold blue]{task.description}"), BarColumn(),
            transient=True, disable=progress_disabled, console=stderr_console
        ) as progress:
            discover_task = progress.add_task("discovering source files...", total=None)
            paths = self._source_paths()
            progress.update(discover_task, completed=True, description=f"discovered {len(paths)} files.")
            self.log.info("source_files_discovered", count=len(paths))

            if not paths:
                return BuildResult()
            result = asyncio.run(self._render_and_write(paths, progress))

        self.log.info("build_finished", written=len(result.written), failed=len(result.errors))
        return result
