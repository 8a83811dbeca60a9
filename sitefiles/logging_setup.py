import logging
import sys
import structlog

PACKAGE_LOGGER = "sitefiles"
LEVELS = {"debug": logging.DEBUG, "info": logging.INFO, "warning": logging.WARNING, "error": logging.ERROR}

def _build_processor_chain() -> list:
    # runs for every event before the stdlib formatter picks a renderer.
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.format_exc_info,
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]

def _make_stderr_handler(as_json: bool) -> logging.Handler:
    if as_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    handler = logging.StreamHandler()
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=[structlog.stdlib.add_log_level],
    ))
    return handler

def configure_logging(log_level_str: str = "warning", force_json_logs: bool = False):
    # routes structlog through the "sitefiles" stdlib logger; safe to call again.
    level = LEVELS.get(log_level_str.lower(), logging.WARNING)
    structlog.configure(
        processors=_build_processor_chain(),
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.handlers.clear()
    package_logger.addHandler(_make_stderr_handler(force_json_logs))
    package_logger.setLevel(level)
    structlog.get_logger(__name__).info("logging_configured", level=logging.getLevelName(level), json=force_json_logs)
