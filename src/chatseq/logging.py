import logging

import structlog

# Loggers of the store drivers; their per-command chatter drowns out allocation events
DRIVER_LOGGERS = ("pymongo", "pymongo.topology", "pymongo.connection", "pymongo.command", "redis")


def setup_logging(debug: bool) -> None:
    """Route stdlib and structlog output through one pipeline.

    Allocation and reconciliation events carry the scope key as a field. A
    reconcile or rebuild pass touches many scopes, so it binds a pass id via
    structlog contextvars and every event it emits can be grouped by it.
    """
    # Set log level based on debug mode
    log_level = logging.DEBUG if debug else logging.INFO

    # Configure standard library logging
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
    )

    # Suppress verbose MongoDB and Redis logs, even in debug mode
    for name in DRIVER_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    # Base processors for all environments
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if debug:
        # Colored console output for development
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        # JSON output for production, one event per line for log shipping
        processors.append(structlog.processors.JSONRenderer())

    # Configure structlog
    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
