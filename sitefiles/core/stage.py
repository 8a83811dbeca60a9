# sitefiles/core/stage.py
"""
The render stage: an asyncio transform that renders one VirtualFile at a time.

Files are written in with `write()` (or fed from an iterable with `process()`)
and read back in the same order with `read()` or `async for`. A single worker
task owns the in-flight file, so the next file is not taken until the current
one has been pushed downstream or has failed. Failures never reach the
reader; they go to the listeners registered with `on_error()`.
"""
import asyncio
from collections.abc import Mapping
from typing import Any, AsyncIterator, Callable, Iterable, List, Optional, Tuple, Union
import structlog

from sitefiles.config.settings import DEFAULT_EXT, DEFAULT_OPTIONS, RENDERER_PLUGIN_NAME
from sitefiles.core.compose import RenderConfig, compose_render_config
from sitefiles.core.vfile import VirtualFile
from sitefiles.exceptions import ConfigurationError, EngineError, RenderError, StreamingUnsupported

log = structlog.get_logger(__name__)

RenderCallback = Callable[[Any, Optional[VirtualFile], Optional[str]], None]
RenderCapability = Callable[[VirtualFile, RenderConfig, RenderCallback], None]
ErrorListener = Callable[[RenderError], None]
FileSource = Union[Iterable[VirtualFile], Any]

_END = object()


class RenderStage:
    """Renders files through `render(file, config, callback)` with one file in flight.

    `base_options` are the process-wide options and are only ever read.
    `options` and `locals` apply to this stage alone.
    """

    def __init__(
        self,
        render: RenderCapability,
        *,
        name: str = RENDERER_PLUGIN_NAME,
        base_options: Optional[Mapping] = None,
        default_ext: str = DEFAULT_EXT,
        options: Optional[Mapping] = None,
        locals: Optional[Mapping] = None,
        include_file_data: bool = True,
        high_water_mark: int = 1,
    ):
        self.name = name
        self._render = render
        self.base_options = base_options if base_options is not None else DEFAULT_OPTIONS
        self.default_ext = default_ext
        self.options = options
        self.locals = locals
        self.include_file_data = include_file_data
        self.high_water_mark = max(1, high_water_mark)

        self.processed = 0
        self.failed = 0
        self._error_listeners: List[ErrorListener] = []
        self._inbox: Optional[asyncio.Queue] = None
        self._outbox: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._ended = False
        self._finished = False
        self._destroyed = False
        self._destroyed_event = asyncio.Event()
        self.log = structlog.get_logger(f"{__name__}.{self.__class__.__name__}").bind(stage=name)

    # --- public surface ---

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def on_error(self, listener: ErrorListener) -> "RenderStage":
        self._error_listeners.append(listener)
        return self

    async def write(self, file: VirtualFile) -> bool:
        """Queues a file. Waits while another file is already waiting to be rendered."""
        if self._destroyed or self._ended:
            self.log.warning("write_after_end_ignored", path=str(getattr(file, "path", file)))
            return False
        self._ensure_started()
        return await self._put_inbox(file)

    async def end(self) -> None:
        """Marks the end of input; readers see end-of-stream once the queue drains."""
        if self._destroyed or self._ended:
            return
        self._ended = True
        self._ensure_started()
        await self._put_inbox(_END)

    async def read(self) -> Optional[VirtualFile]:
        """Next rendered file in acceptance order, or None at end of stream."""
        if self._finished:
            return None
        self._ensure_started()
        item = await self._outbox.get()
        if item is _END:
            self._finished = True
            return None
        return item

    def __aiter__(self) -> AsyncIterator[VirtualFile]:
        return self._iter_outputs()

    async def _iter_outputs(self) -> AsyncIterator[VirtualFile]:
        while True:
            item = await self.read()
            if item is None:
                return
            yield item

    async def process(self, source: FileSource) -> AsyncIterator[VirtualFile]:
        """Feeds `source` (sync or async iterable) through the stage, yielding outputs.

        An exception raised by the source ends the stream and is re-raised
        once the files accepted before it have been yielded.
        """
        feeder = asyncio.get_running_loop().create_task(self._feed(source))
        try:
            async for item in self:
                yield item
            await feeder
        finally:
            if not feeder.done():
                feeder.cancel()
            # the consumer stopped early; nothing will drain the outbox.
            if not self._finished:
                self.destroy()

    async def collect(self, source: FileSource) -> List[VirtualFile]:
        return [item async for item in self.process(source)]

    async def join(self) -> None:
        # waits for the worker to finish; no-op if it never started.
        if self._worker is not None and not self._worker.done():
            await asyncio.shield(self._worker)

    def destroy(self) -> None:
        """Tears the stage down. Callbacks arriving after this are ignored."""
        if self._destroyed:
            return
        self._destroyed = True
        self._finished = True
        self._destroyed_event.set()
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
        if self._outbox is not None:
            try:
                self._outbox.put_nowait(_END)
            except asyncio.QueueFull:
                pass
        self.log.debug("render_stage_destroyed", processed=self.processed, failed=self.failed)

    # --- internals ---

    def _ensure_started(self) -> None:
        if self._worker is not None:
            return
        self._inbox = asyncio.Queue(maxsize=1)
        self._outbox = asyncio.Queue(maxsize=self.high_water_mark)
        self._worker = asyncio.get_running_loop().create_task(self._run())

    async def _put_inbox(self, item: Any) -> bool:
        # waits for room in the inbox unless the stage is torn down first.
        put = asyncio.ensure_future(self._inbox.put(item))
        stopped = asyncio.ensure_future(self._destroyed_event.wait())
        try:
            await asyncio.wait({put, stopped}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stopped.cancel()
            if not put.done():
                put.cancel()
        return put.done() and not put.cancelled() and not self._destroyed

    async def _feed(self, source: FileSource) -> None:
        try:
            if hasattr(source, "__aiter__"):
                async for file in source:
                    if not await self.write(file):
                        return
            else:
                for file in source:
                    if not await self.write(file):
                        return
        except Exception as e:
            self.log.error("upstream_source_failed", error=str(e))
            await self.end()
            raise
        await self.end()

    async def _run(self) -> None:
        try:
            while True:
                file = await self._inbox.get()
                if file is _END:
                    break
                try:
                    error = await self._transform(file)
                except Exception as e:
                    error = self._fail(EngineError(self.name, f"unexpected render failure: {e}", cause=e), file)
                self.processed += 1
                if error is not None:
                    self.failed += 1
                self.log.debug("render_item_completed", path=str(getattr(file, "path", file)), failed=error is not None)
            await self._outbox.put(_END)
            self.log.info("render_stage_finished", processed=self.processed, failed=self.failed)
        except asyncio.CancelledError:
            self.log.debug("render_stage_worker_cancelled", processed=self.processed)
            raise

    async def _transform(self, file: VirtualFile) -> Optional[RenderError]:
        if file.is_null():
            await self._outbox.put(file)
            return None

        if not file.is_buffer():
            if file.is_stream():
                message = "Streaming is not supported with engines."
            else:
                message = f"Contents of type {type(file.contents).__name__} cannot be rendered."
            return self._fail(StreamingUnsupported(self.name, message), file)

        try:
            config = compose_render_config(
                self.base_options, self.options, self.locals, file.data,
                include_file_data=self.include_file_data,
            )
        except ConfigurationError as e:
            return self._fail(EngineError(self.name, f"invalid render configuration: {e.message}", cause=e), file)

        try:
            err, rendered, engine_ext = await self._invoke(file, config)
        except Exception as e:
            return self._fail(EngineError(self.name, str(e) or type(e).__name__, cause=e), file)

        if err is not None:
            cause = err if isinstance(err, BaseException) else None
            return self._fail(EngineError(self.name, str(err) or type(err).__name__, cause=cause), file)

        if rendered is None:
            rendered = file
        try:
            rendered.ext = config.ext or engine_ext or self.default_ext
        except ValueError as e:
            return self._fail(EngineError(self.name, f"cannot rewrite extension: {e}", cause=e), rendered)

        await self._outbox.put(rendered)
        return None

    async def _invoke(self, file: VirtualFile, config: RenderConfig) -> Tuple[Any, Optional[VirtualFile], Optional[str]]:
        # bridges the callback-style render capability onto a future.
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def settle(outcome):
            if self._destroyed or future.done():
                self.log.debug("late_render_callback_ignored", path=str(file.path))
                return
            future.set_result(outcome)

        def callback(err=None, rendered=None, ext=None):
            if self._destroyed or loop.is_closed():
                self.log.debug("render_callback_after_teardown_ignored", path=str(file.path))
                return
            loop.call_soon_threadsafe(settle, (err, rendered, ext))

        self._render(file, config, callback)
        return await future

    def _fail(self, error: RenderError, file: VirtualFile) -> RenderError:
        path = str(getattr(file, "path", file))
        if not self._error_listeners:
            self.log.error("unhandled_render_error", path=path, error=str(error), error_type=type(error).__name__)
            return error
        self.log.warning("render_item_failed", path=path, error=str(error), error_type=type(error).__name__)
        for listener in list(self._error_listeners):
            try:
                listener(error)
            except Exception as e:
                self.log.error("error_listener_failed", error=str(e), exc_info=True)
        return error
