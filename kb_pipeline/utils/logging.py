"""structlog configuration for the knowledge-base pipeline.

One processor chain is shared by structlog loggers and by the stdlib
``logging`` root handler, so events from ingestion, retrieval, uvicorn and
the embedding HTTP clients all come out in one format.  Production
(``APP_ENV=production``) or ``json_output=True`` renders JSON lines; any
other environment gets the coloured console renderer.
"""

import logging
import os
import sys

import structlog

# Libraries that log every request at INFO; kept at WARNING unless DEBUG.
_CHATTY_LIBRARIES = ("httpx", "httpcore", "openai")


def _pipeline_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def _final_renderer(as_json: bool) -> structlog.types.Processor:
    if as_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=True)


def _route_stdlib_logging(
    level_name: str,
    processors: list[structlog.types.Processor],
    renderer: structlog.types.Processor,
) -> None:
    stdlib_handler = logging.StreamHandler(sys.stdout)
    stdlib_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *processors,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(stdlib_handler)
    root.setLevel(level_name)

    library_level = level_name if level_name == "DEBUG" else "WARNING"
    for library in _CHATTY_LIBRARIES:
        logging.getLogger(library).setLevel(library_level)


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> structlog.BoundLogger:
    """Install the pipeline's logging configuration.

    Args:
        log_level: Minimum level name, e.g. ``"DEBUG"`` or ``"WARNING"``.
        json_output: Render JSON regardless of ``APP_ENV``.

    Returns:
        The root structlog logger.
    """
    level_name = log_level.upper()
    as_json = json_output or os.environ.get("APP_ENV", "development") == "production"

    processors = _pipeline_processors()
    renderer = _final_renderer(as_json)

    structlog.configure(
        processors=[*processors, renderer],
        # Events under the threshold are discarded before the chain runs.
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level_name)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _route_stdlib_logging(level_name, processors, renderer)

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a logger bound to *name*, configuring defaults on first use."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)
