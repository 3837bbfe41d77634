"""Structured logging shared by the API and the arq worker.

Services log through structlog. The store, rollover, fan-out and worker
modules use stdlib loggers. Both paths end in one ProcessorFormatter, so a
worker line and a request line carry the same keys.
"""

import logging

import structlog

from movibeers.config import Settings

HANDLER_NAME = "movibeers"

# Chatty third-party loggers, capped at these levels.
QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "arq.jobs": logging.INFO,
}


def app_context(settings: Settings, component: str) -> structlog.types.Processor:
    """Processor stamping every event with service, component and environment."""

    def add_context(
        logger: object, method_name: str, event_dict: structlog.types.EventDict
    ) -> structlog.types.EventDict:
        event_dict.setdefault("service", "movibeers")
        event_dict.setdefault("component", component)
        event_dict.setdefault("env", settings.environment)
        return event_dict

    return add_context


def build_formatter(settings: Settings, component: str = "api") -> structlog.stdlib.ProcessorFormatter:
    """Formatter rendering both structlog and plain stdlib records."""
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if settings.log_format == "json" else structlog.dev.ConsoleRenderer()
    )
    final: list[structlog.types.Processor] = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if settings.log_format == "json":
        final.append(structlog.processors.format_exc_info)
    final.append(renderer)
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(settings, component),
        processors=final,
    )


def _shared_processors(settings: Settings, component: str) -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        app_context(settings, component),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]


def setup_logging(settings: Settings, component: str = "api") -> None:
    """Route structlog and stdlib logging through one handler on the root logger.

    Safe to call more than once: the previous handler of the same name is replaced.
    """
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors(settings, component),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(build_formatter(settings, component))

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name, cap in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(max(cap, level))
