"""Uvicorn server runner."""

import structlog
import uvicorn
from uvicorn.config import LOGGING_CONFIG

from chatseq.app import App
from chatseq.config import Config
from chatseq.web.server import create_fastapi_app

logger = structlog.get_logger(__name__)

# Background rebuilds are cancelled on shutdown; a new start reconciles again
GRACEFUL_SHUTDOWN_SECONDS = 10


def build_log_config(debug: bool) -> dict:
    """Uvicorn's logging config with the client address on access lines. Leaves LOGGING_CONFIG untouched."""
    log_config = {**LOGGING_CONFIG, "formatters": {k: dict(v) for k, v in LOGGING_CONFIG["formatters"].items()}}
    log_config["formatters"]["access"]["fmt"] = '%(asctime)s %(client_addr)s "%(request_line)s" %(status_code)s'
    log_config["formatters"]["default"]["fmt"] = "%(asctime)s %(levelname)s %(message)s"
    if not debug:
        log_config["formatters"]["access"]["use_colors"] = False
        log_config["formatters"]["default"]["use_colors"] = False
    return log_config


def run_server(app: App, config: Config) -> None:
    """Serve the API; the lifespan hook starts services and runs startup reconciliation."""
    fastapi_app = create_fastapi_app(app, config)
    logger.info(
        "server_starting",
        host=config.host,
        port=config.port,
        reconcile_on_start=config.reconcile_on_start,
        allocation_max_attempts=config.allocation_max_attempts,
    )

    uvicorn.run(
        fastapi_app,
        host=config.host,
        port=config.port,
        log_config=build_log_config(config.debug),
        log_level="debug" if config.debug else "info",
        access_log=True,
        timeout_graceful_shutdown=GRACEFUL_SHUTDOWN_SECONDS,
    )
