"""
API HTTP (aiohttp).

Rutas JSON para visitas, preferencias, recomendaciones, alta y
revisión de propiedades, guardadas y el cron del digest diario.
"""

import json
from datetime import date
from typing import Optional

import structlog
from aiohttp import web

from aceprops.api.auth import Authenticator, check_cron_secret
from aceprops.api.middlewares import error_middleware, rate_limit_middleware
from aceprops.config import Settings, get_settings
from aceprops.errors import BadRequestError, PermissionDeniedError
from aceprops.matching import MatchingEngine
from aceprops.services import (
    PreferenceService,
    PropertyDraftService,
    PropertyReviewService,
    RateLimiter,
    SavedPropertyService,
    ViewingService,
)

logger = structlog.get_logger()


async def _json_body(request: web.Request) -> dict:
    if not request.can_read_body:
        return {}
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise BadRequestError("Invalid JSON body") from e
    if not isinstance(body, dict):
        raise BadRequestError("Invalid JSON body")
    return body


def _query_date(request: web.Request, name: str) -> Optional[date]:
    value = request.query.get(name)
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise BadRequestError(f"Invalid {name}, expected YYYY-MM-DD") from e


def _query_int(request: web.Request, name: str, default: Optional[int]) -> Optional[int]:
    value = request.query.get(name)
    if value is None or value.strip() == "":
        return default
    try:
        result = int(value.strip())
    except ValueError as e:
        raise BadRequestError(f"Invalid {name}") from e
    if result < 0:
        raise BadRequestError(f"Invalid {name}")
    return result


def create_app(
    viewing_service: Optional[ViewingService] = None,
    preference_service: Optional[PreferenceService] = None,
    review_service: Optional[PropertyReviewService] = None,
    matching_engine: Optional[MatchingEngine] = None,
    authenticator: Optional[Authenticator] = None,
    rate_limiter: Optional[RateLimiter] = None,
    settings: Optional[Settings] = None,
    draft_service: Optional[PropertyDraftService] = None,
    saved_service: Optional[SavedPropertyService] = None,
) -> web.Application:
    """Arma la aplicación con sus servicios; los que falten se crean desde settings."""
    settings = settings or get_settings()
    matching_engine = matching_engine or MatchingEngine(settings=settings)
    viewing_service = viewing_service or ViewingService(settings=settings)
    preference_service = preference_service or PreferenceService()
    review_service = review_service or PropertyReviewService(matching_engine=matching_engine)
    authenticator = authenticator or Authenticator()
    rate_limiter = rate_limiter or RateLimiter(settings=settings)
    draft_service = draft_service or PropertyDraftService(settings=settings)
    saved_service = saved_service or SavedPropertyService()

    app = web.Application(
        middlewares=[error_middleware, rate_limit_middleware(rate_limiter)]
    )

    async def health(_: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    # ------------------------------------------------------------------
    # Visitas
    # ------------------------------------------------------------------

    async def available_slots(request: web.Request) -> web.Response:
        result = viewing_service.available_slots(
            request.match_info["property_id"],
            start_date=_query_date(request, "startDate"),
            end_date=_query_date(request, "endDate"),
        )
        return web.json_response({"success": True, **result})

    async def request_viewing(request: web.Request) -> web.Response:
        user = authenticator.authenticate(request)
        viewing = await viewing_service.request_viewing(user, await _json_body(request))
        return web.json_response(
            {
                "success": True,
                "viewing": viewing,
                "message": "Viewing request submitted successfully",
            },
            status=201,
        )

    async def approve_viewing(request: web.Request) -> web.Response:
        user = authenticator.authenticate(request)
        viewing = await viewing_service.approve(user, request.match_info["viewing_id"])
        return web.json_response(
            {"success": True, "viewing": viewing, "message": "Viewing approved successfully"}
        )

    async def reject_viewing(request: web.Request) -> web.Response:
        user = authenticator.authenticate(request)
        body = await _json_body(request)
        viewing = await viewing_service.reject(
            user, request.match_info["viewing_id"], reason=body.get("reason")
        )
        return web.json_response(
            {"success": True, "viewing": viewing, "message": "Viewing rejected"}
        )

    async def cancel_viewing(request: web.Request) -> web.Response:
        user = authenticator.authenticate(request)
        body = await _json_body(request)
        viewing = await viewing_service.cancel(
            user, request.match_info["viewing_id"], reason=body.get("reason")
        )
        return web.json_response(
            {"success": True, "viewing": viewing, "message": "Viewing cancelled"}
        )

    async def complete_viewing(request: web.Request) -> web.Response:
        user = authenticator.authenticate(request)
        viewing = await viewing_service.complete(user, request.match_info["viewing_id"])
        return web.json_response(
            {"success": True, "viewing": viewing, "message": "Viewing marked as completed"}
        )

    async def my_viewing_requests(request: web.Request) -> web.Response:
        user = authenticator.authenticate(request)
        result = viewing_service.my_requests(
            user,
            status=request.query.get("status"),
            limit=_query_int(request, "limit", 20),
            offset=_query_int(request, "offset", 0),
        )
        return web.json_response({"success": True, **result})

    async def viewings_for_my_properties(request: web.Request) -> web.Response:
        user = authenticator.authenticate(request)
        result = viewing_service.for_my_properties(
            user,
            status=request.query.get("status"),
            limit=_query_int(request, "limit", 20),
            offset=_query_int(request, "offset", 0),
        )
        return web.json_response({"success": True, **result})

    # ------------------------------------------------------------------
    # Alta de propiedad
    # ------------------------------------------------------------------

    async def save_draft(request: web.Request) -> web.Response:
        user = authenticator.authenticate_optional(request)
        result = draft_service.save_step(user, await _json_body(request))
        return web.json_response({"success": True, **result})

    async def get_draft(request: web.Request) -> web.Response:
        user = authenticator.authenticate_optional(request)
        result = draft_service.get(user, session_id=request.query.get("sessionId"))
        return web.json_response({"success": True, **result})

    async def publish_property(request: web.Request) -> web.Response:
        user = authenticator.authenticate(request)
        result = draft_service.publish(user)
        return web.json_response({"success": True, **result}, status=201)

    # ------------------------------------------------------------------
    # Guardadas
    # ------------------------------------------------------------------

    async def saved_properties(request: web.Request) -> web.Response:
        user = authenticator.authenticate(request)
        result = saved_service.list_saved(
            user,
            page=_query_int(request, "page", 1),
            limit=_query_int(request, "limit", 20),
            sort_by=request.query.get("sortBy", "saved_at"),
            order=request.query.get("order", "desc"),
            search=request.query.get("search"),
        )
        return web.json_response(result)

    async def save_property(request: web.Request) -> web.Response:
        user = authenticator.authenticate(request)
        result = saved_service.save(user, request.match_info["property_id"])
        return web.json_response({"success": True, **result})

    async def is_property_saved(request: web.Request) -> web.Response:
        user = authenticator.authenticate_optional(request)
        return web.json_response(
            saved_service.is_saved(user, request.match_info["property_id"])
        )

    async def saved_property_notes(request: web.Request) -> web.Response:
        user = authenticator.authenticate(request)
        body = await _json_body(request)
        result = saved_service.update_notes(
            user, request.match_info["saved_id"], body.get("notes")
        )
        return web.json_response({"success": True, **result})

    # ------------------------------------------------------------------
    # Investor
    # ------------------------------------------------------------------

    async def get_preferences(request: web.Request) -> web.Response:
        user = authenticator.authenticate(request)
        return web.json_response(preference_service.get(user))

    async def save_preferences(request: web.Request) -> web.Response:
        user = authenticator.authenticate(request)
        return web.json_response(
            preference_service.save(user, await _json_body(request))
        )

    async def matched_properties(request: web.Request) -> web.Response:
        user = authenticator.authenticate(request)
        if not user.is_investor:
            raise PermissionDeniedError("This feature is for investors only")
        result = matching_engine.matched_properties_for_investor(
            user.id,
            min_score=_query_int(request, "minScore", None),
            limit=_query_int(request, "limit", 20),
            offset=_query_int(request, "offset", 0),
        )
        return web.json_response({"success": True, **result})

    # ------------------------------------------------------------------
    # Admin / landlord
    # ------------------------------------------------------------------

    async def matched_investors(request: web.Request) -> web.Response:
        user = authenticator.authenticate(request)
        if not user.is_admin:
            raise PermissionDeniedError("Admin access required")
        investors = matching_engine.matched_investors_for_property(
            request.match_info["property_id"],
            min_score=_query_int(request, "minScore", None),
        )
        return web.json_response(
            {"success": True, "investors": investors, "total": len(investors)}
        )

    async def admin_viewings(request: web.Request) -> web.Response:
        user = authenticator.authenticate(request)
        result = viewing_service.admin_list(
            user,
            status=request.query.get("status"),
            limit=_query_int(request, "limit", 50),
        )
        return web.json_response({"success": True, **result})

    async def admin_investor_matches(request: web.Request) -> web.Response:
        user = authenticator.authenticate(request)
        if not user.is_admin:
            raise PermissionDeniedError("Admin access required")
        result = matching_engine.matched_properties_for_investor(
            request.match_info["investor_id"],
            min_score=_query_int(request, "minScore", 0),
            limit=min(_query_int(request, "limit", 10), 50),
        )
        return web.json_response(
            {
                "success": True,
                "properties": result["properties"],
                "total": result["total"],
                "hasPreferences": result["has_preferences"],
            }
        )

    async def approve_property(request: web.Request) -> web.Response:
        user = authenticator.authenticate(request)
        return web.json_response(
            await review_service.approve(user, request.match_info["property_id"])
        )

    async def reject_property(request: web.Request) -> web.Response:
        user = authenticator.authenticate(request)
        body = await _json_body(request)
        return web.json_response(
            await review_service.reject(
                user, request.match_info["property_id"], reason=body.get("reason")
            )
        )

    async def archive_property(request: web.Request) -> web.Response:
        user = authenticator.authenticate(request)
        return web.json_response(
            await review_service.archive(user, request.match_info["property_id"])
        )

    # ------------------------------------------------------------------
    # Cron
    # ------------------------------------------------------------------

    async def daily_matches(request: web.Request) -> web.Response:
        check_cron_secret(request, settings.cron_secret)
        logger.info("Cron de matches diarios disparado")
        stats = await matching_engine.run_daily_digest()
        return web.json_response(
            {"success": True, "message": "Daily matches processed", "stats": stats}
        )

    app.router.add_get("/health", health)
    app.router.add_get("/properties/{property_id}/available-slots", available_slots)
    app.router.add_post("/viewings/request", request_viewing)
    app.router.add_put("/viewings/{viewing_id}/approve", approve_viewing)
    app.router.add_put("/viewings/{viewing_id}/reject", reject_viewing)
    app.router.add_put("/viewings/{viewing_id}/cancel", cancel_viewing)
    app.router.add_put("/viewings/{viewing_id}/complete", complete_viewing)
    app.router.add_get("/viewings/my-requests", my_viewing_requests)
    app.router.add_get("/viewings/for-my-properties", viewings_for_my_properties)
    app.router.add_post("/properties/draft", save_draft)
    app.router.add_get("/properties/draft", get_draft)
    app.router.add_post("/properties/publish", publish_property)
    app.router.add_get("/saved-properties", saved_properties)
    app.router.add_post("/properties/{property_id}/save", save_property)
    app.router.add_get("/properties/{property_id}/is-saved", is_property_saved)
    app.router.add_post("/saved-properties/{saved_id}/notes", saved_property_notes)
    app.router.add_get("/investor/preferences", get_preferences)
    app.router.add_post("/investor/preferences", save_preferences)
    app.router.add_get("/investor/matched-properties", matched_properties)
    app.router.add_get("/admin/properties/{property_id}/matched-investors", matched_investors)
    app.router.add_get("/admin/viewings", admin_viewings)
    app.router.add_get(
        "/admin/investors/{investor_id}/matched-properties", admin_investor_matches
    )
    app.router.add_post("/admin/properties/{property_id}/approve", approve_property)
    app.router.add_post("/admin/properties/{property_id}/reject", reject_property)
    app.router.add_post("/properties/{property_id}/archive", archive_property)
    app.router.add_get("/cron/daily-matches", daily_matches)

    return app
