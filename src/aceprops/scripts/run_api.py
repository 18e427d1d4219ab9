"""
Script para levantar la API HTTP.

Uso:
    python -m aceprops.scripts.run_api
"""

import asyncio
import os
import sys

import structlog
from aiohttp import web

from aceprops.api import create_app
from aceprops.config import get_settings
from aceprops.logging_config import configure_logging

logger = structlog.get_logger()


async def serve(host: str, port: int):
    runner = web.AppRunner(create_app())
    await runner.setup()
    site = web.TCPSite(runner, host=host, port=port)

    try:
        await site.start()
        logger.info("API activa", host=host, port=port, health_path="/health")
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()


def main():
    """Entry point de la API."""
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Iniciando API de Ace Properties...")

    try:
        # Render y similares inyectan PORT
        port = int(os.getenv("PORT", str(settings.api_port)))
        asyncio.run(serve(settings.api_host, port))
    except KeyboardInterrupt:
        logger.info("API detenida por usuario")
        sys.exit(0)
    except Exception as e:
        logger.error("Error fatal en API", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
