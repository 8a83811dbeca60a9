from typing import Optional


class SiteFilesError(Exception):
    # base exception for all application-specific errors.
    pass

class ConfigError(SiteFilesError):
    # errors related to configuration files and cli values.
    pass

class DiscoveryError(SiteFilesError):
    # errors while finding or loading source files.
    pass

class TemplateError(SiteFilesError):
    # errors raised by an engine while compiling or rendering.
    pass

class OutputError(SiteFilesError):
    # errors during output operations.
    pass


class RenderError(SiteFilesError):
    """Error notification emitted by a stream stage, tagged with the stage's name."""

    def __init__(self, plugin: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"[{plugin}] {message}")
        self.plugin = plugin
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

class StreamingUnsupported(RenderError):
    # file contents are a live stream, not a buffer.
    pass

class EngineError(RenderError):
    # the render capability reported or raised an error.
    pass

class ConfigurationError(EngineError):
    # merge inputs were not mappings.
    def __init__(self, message: str, plugin: str = "compose"):
        super().__init__(plugin, message)
