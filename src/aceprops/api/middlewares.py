"""
Middlewares de la API: errores a JSON y rate limiting.
"""

import structlog
from aiohttp import web

from aceprops.errors import ServiceError
from aceprops.services import RateLimiter

logger = structlog.get_logger()

UNLIMITED_PATHS = {"/health"}


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except ServiceError as e:
        if e.status >= 500:
            logger.error("Error de servicio", path=request.path, error=e.message)
        return web.json_response(e.to_payload(), status=e.status)
    except Exception as e:
        logger.exception("Error no manejado", path=request.path, error=str(e))
        return web.json_response(
            {"success": False, "error": "Internal server error"}, status=500
        )


def client_ip(request: web.Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("X-Real-IP") or request.remote or "unknown"


def rate_limit_middleware(limiter: RateLimiter):
    @web.middleware
    async def middleware(request: web.Request, handler) -> web.StreamResponse:
        if request.path not in UNLIMITED_PATHS:
            limiter.check(RateLimiter.key_for(client_ip(request), request.path))
        return await handler(request)

    return middleware
