"""Log output for the rewards service.

Engine modules log through stdlib ``logging`` with %-style messages; the
submission guard and request middleware emit structlog events. Both are
rendered by one root handler so a single line format (JSON in production,
console locally) carries ``service`` and ``version`` on every record.
"""

import logging

import structlog

from glit.config import Settings

SERVICE_NAME = "glit-rewards"
HANDLER_NAME = "glit-root"

# Per-statement and per-request noise at INFO
QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "httpx", "arq.jobs")


def _service_tagger(version: str) -> structlog.types.Processor:
    def add_service(
        _logger: object, _method: str, event_dict: structlog.types.EventDict
    ) -> structlog.types.EventDict:
        event_dict.setdefault("service", SERVICE_NAME)
        event_dict.setdefault("version", version)
        return event_dict

    return add_service


def build_handler(settings: Settings) -> logging.Handler:
    """Root handler that renders stdlib and structlog records alike."""
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if settings.log_format == "json" else structlog.dev.ConsoleRenderer()
    )
    pre_chain: list[structlog.types.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _service_tagger(settings.app_version),
    ]
    handler = logging.StreamHandler()
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    return handler


def setup_logging(settings: Settings) -> None:
    """Install the service handler on the root logger. Safe to call more than once."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _service_tagger(settings.app_version),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(build_handler(settings))
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
