"""Main entry point for the coach realtime server."""

import asyncio
import logging
import sys

import uvicorn

from coach_realtime.adapters.config import AppConfig
from coach_realtime.adapters.web.presence import get_presence_registry
from coach_realtime.bootstrap import build_application

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


async def main(config: AppConfig | None = None) -> None:
    """Main application entry point."""
    config = config or AppConfig()
    configure_logging(config.log_level)

    application = build_application(config, registry=get_presence_registry())
    if config.jwt_secret == "dev-secret-change-me":
        logger.warning("JWT_SECRET is not set; using the development secret")

    server_config = uvicorn.Config(
        application.app,
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )
    server = uvicorn.Server(server_config)
    logger.info(f"Starting coach realtime server on {config.host}:{config.port}")

    try:
        await server.serve()
    except KeyboardInterrupt:
        logger.info("Shutting down...")


if __name__ == "__main__":
    asyncio.run(main())
