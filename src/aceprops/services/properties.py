"""
Revisión de propiedades: aprobación y rechazo por un admin,
archivo por el landlord.
"""

from datetime import datetime, timezone
from typing import Optional

import structlog

from aceprops.database import PropertyRepository
from aceprops.errors import (
    BadRequestError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
)
from aceprops.matching import MatchingEngine
from aceprops.models import PropertyRecord, PropertyStatus, UserProfile

logger = structlog.get_logger()


class PropertyReviewService:
    """Ciclo de vida de una publicación: draft -> active -> archived."""

    def __init__(
        self,
        property_repo: Optional[PropertyRepository] = None,
        matching_engine: Optional[MatchingEngine] = None,
    ):
        self.property_repo = property_repo or PropertyRepository()
        self.matching_engine = matching_engine or MatchingEngine(property_repo=self.property_repo)

    async def approve(self, user: UserProfile, property_id: str) -> dict:
        """
        Publica la propiedad y avisa a los investors que matchean.

        Un error al notificar no deshace la aprobación.
        """
        _require_admin(user)
        property = self._transition(property_id, PropertyStatus.ACTIVE)

        updated = self.property_repo.update_status(
            property.id,
            PropertyStatus.ACTIVE.value,
            {"published_at": datetime.now(timezone.utc).isoformat()},
        )

        try:
            notifications = await self.matching_engine.notify_on_approval(property.id)
        except Exception as e:
            logger.error(
                "Error notificando investors",
                property_id=property.id,
                error=str(e),
            )
            notifications = None

        return {
            "success": True,
            "property": updated,
            "notifications": notifications,
            "message": "Property approved successfully",
        }

    async def reject(
        self, user: UserProfile, property_id: str, reason: Optional[str] = None
    ) -> dict:
        _require_admin(user)
        property = self._transition(property_id, PropertyStatus.REJECTED)
        updated = self.property_repo.update_status(
            property.id,
            PropertyStatus.REJECTED.value,
            {"rejection_reason": reason} if reason else None,
        )
        return {
            "success": True,
            "property": updated,
            "message": "Property rejected successfully",
        }

    async def archive(self, user: UserProfile, property_id: str) -> dict:
        """El landlord dueño o un admin sacan de circulación una propiedad activa."""
        property = self._get(property_id)
        if not (user.is_admin or (user.id and user.id == property.landlord_id)):
            raise PermissionDeniedError("You do not have permission to archive this property")
        self._check(property, PropertyStatus.ARCHIVED)

        updated = self.property_repo.update_status(property.id, PropertyStatus.ARCHIVED.value)
        return {
            "success": True,
            "property": updated,
            "message": "Property archived successfully",
        }

    def _get(self, property_id: str) -> PropertyRecord:
        row = self.property_repo.get_by_id(property_id)
        if not row:
            raise NotFoundError("Property not found")
        return PropertyRecord.from_db_row(row)

    def _transition(self, property_id: str, target: PropertyStatus) -> PropertyRecord:
        property = self._get(property_id)
        self._check(property, target)
        return property

    @staticmethod
    def _check(property: PropertyRecord, target: PropertyStatus) -> None:
        try:
            property.status.transition_to(target)
        except InvalidTransitionError as e:
            raise BadRequestError(
                f"Cannot change property status from {property.status.value} to {target.value}"
            ) from e


def _require_admin(user: UserProfile) -> None:
    if not user.is_admin:
        raise PermissionDeniedError("Admin access required")
