"""
Script para ejecutar el digest diario de matches.

Puntúa las propiedades publicadas en las últimas 24 horas contra
todos los investors activos y envía a cada uno su mejor match.

Uso:
    python -m aceprops.scripts.run_matching
"""

import asyncio
import sys

import structlog

from aceprops.config import get_settings
from aceprops.logging_config import configure_logging
from aceprops.matching import MatchingEngine

logger = structlog.get_logger()


async def run_matching() -> dict:
    """Ejecuta el ciclo de matching."""
    engine = MatchingEngine()
    return await engine.run_matching_cycle()


def main():
    """Entry point del script."""
    configure_logging(get_settings().log_level)
    logger.info("Iniciando digest diario de matches...")

    try:
        stats = asyncio.run(run_matching())

        logger.info(
            "Matching completado",
            properties=stats.get("properties_checked", 0),
            investors=stats.get("investors_checked", 0),
            emails=stats.get("emails_sent", 0),
            errors=stats.get("errors", 0),
        )

        sys.exit(0 if stats.get("errors", 0) == 0 else 1)

    except KeyboardInterrupt:
        logger.info("Matching interrumpido por usuario")
        sys.exit(130)
    except Exception as e:
        logger.error("Error fatal en matching", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
