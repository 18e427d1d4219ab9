"""
Preferencias de inversión de un investor.
"""

from typing import Optional

import structlog

from aceprops.config import OPERATOR_TYPES
from aceprops.database import PreferenceRepository
from aceprops.errors import BadRequestError, PermissionDeniedError, ProfileValidationError
from aceprops.models import OperatorType, PreferenceProfile, UserProfile

logger = structlog.get_logger()


class PreferenceService:
    """Lectura y guardado de 'investor_preferences'."""

    def __init__(self, preference_repo: Optional[PreferenceRepository] = None):
        self.preference_repo = preference_repo or PreferenceRepository()

    def get(self, user: UserProfile) -> dict:
        _require_investor(user)
        row = self.preference_repo.get_by_investor(user.id)
        return {
            "success": True,
            "preferences": row,
            "hasPreferences": row is not None,
        }

    def save(self, user: UserProfile, payload: dict) -> dict:
        """
        Valida y hace upsert de las preferencias (una fila por investor).

        Raises:
            PermissionDeniedError: si el usuario no es investor
            BadRequestError: si el payload no valida
        """
        _require_investor(user)

        operator_type = payload.get("operator_type")
        preference_data = payload.get("preference_data")

        if not operator_type or not preference_data:
            raise BadRequestError("operator_type and preference_data are required")
        if operator_type not in OPERATOR_TYPES:
            raise BadRequestError("Invalid operator_type")

        operator_type_other = payload.get("operator_type_other")
        if operator_type == OperatorType.OTHER.value and not operator_type_other:
            raise BadRequestError(
                'operator_type_other is required when operator_type is "other"'
            )
        if not isinstance(preference_data, dict):
            raise BadRequestError("preference_data must be an object")

        preference_data = {
            **preference_data,
            "locations": _normalize_locations(preference_data.get("locations")),
        }

        notification_enabled = payload.get("notification_enabled") is not False
        row = {
            "investor_id": user.id,
            "operator_type": operator_type,
            "preference_data": preference_data,
            "notification_enabled": notification_enabled,
            "is_active": True,
        }

        # Mismo chequeo que hace el matcher al leer la fila
        try:
            PreferenceProfile.from_db_row(row)
        except ProfileValidationError as e:
            raise BadRequestError(f"Invalid preference_data: {e}") from e

        saved = self.preference_repo.upsert(
            user.id,
            {
                **row,
                "operator_type_other": (
                    operator_type_other if operator_type == OperatorType.OTHER.value else None
                ),
                "properties_managing": payload.get("properties_managing") or 0,
            },
        )

        logger.info(
            "Preferencias de investor actualizadas",
            investor_id=user.id,
            operator_type=operator_type,
            locations=len(preference_data["locations"]),
        )
        return {
            "success": True,
            "preferences": saved,
            "message": "Preferences saved successfully",
        }


def _require_investor(user: UserProfile) -> None:
    if not user.is_investor:
        raise PermissionDeniedError("This feature is for investors only")


def _normalize_locations(locations) -> list[dict]:
    if not locations:
        return []
    if not isinstance(locations, list):
        raise BadRequestError("Invalid locations: expected a list")

    result = []
    for loc in locations:
        if not isinstance(loc, dict) or not str(loc.get("city") or "").strip():
            raise BadRequestError("Invalid location: city required")
        loc = dict(loc)
        # El formulario viejo mandaba una sola autoridad local
        if not loc.get("localAuthorities") and loc.get("localAuthority"):
            loc["localAuthorities"] = [loc.pop("localAuthority")]
        loc["localAuthorities"] = [
            area.strip()
            for area in loc.get("localAuthorities") or []
            if isinstance(area, str) and area.strip()
        ]
        result.append(loc)
    return result
