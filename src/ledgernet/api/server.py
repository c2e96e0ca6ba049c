import logging

import uvicorn

from .. import constants
from ..builder import Builder
from .main import create_app

logger = logging.getLogger(__name__)


def serve(
    builder: Builder,
    host: str = constants.API_HOST,
    port: int = constants.API_PORT,
    graceful_timeout: int = constants.API_GRACEFUL_SHUTDOWN,
):
    """
    Serves the query API until interrupted.

    On SIGINT/SIGTERM uvicorn stops accepting requests and waits at most
    `graceful_timeout` seconds for in-flight ones.
    """
    app = create_app(builder)
    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_config=None,
        timeout_graceful_shutdown=graceful_timeout,
    )
    server = uvicorn.Server(config)
    logger.info(f"[API] Serving build '{builder.name}' on http://{host}:{port}/v1/nodes")
    server.run()
    logger.info("[API] Server stopped.")
