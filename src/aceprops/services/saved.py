"""
Propiedades guardadas por investors (favoritos con notas).
"""

import math
from typing import Optional

import structlog

from aceprops.database import PropertyRepository, SavedPropertyRepository
from aceprops.errors import BadRequestError, ConflictError, NotFoundError, PermissionDeniedError
from aceprops.models import PropertyRecord, PropertyStatus, UserProfile

logger = structlog.get_logger()

SORT_FIELDS = ("saved_at", "price", "property_name")
MAX_PAGE_SIZE = 100


class SavedPropertyService:
    """Guardar, listar y anotar propiedades."""

    def __init__(
        self,
        saved_repo: Optional[SavedPropertyRepository] = None,
        property_repo: Optional[PropertyRepository] = None,
    ):
        self.saved_repo = saved_repo or SavedPropertyRepository()
        self.property_repo = property_repo or PropertyRepository()

    def list_saved(
        self,
        user: UserProfile,
        page: int = 1,
        limit: int = 20,
        sort_by: str = "saved_at",
        order: str = "desc",
        search: Optional[str] = None,
    ) -> dict:
        """
        Guardadas del investor, filtradas, ordenadas y paginadas.

        search busca en título, dirección, ciudad y postcode. Las filas
        cuya propiedad ya no existe se omiten.
        """
        self._require_investor(user)
        if sort_by not in SORT_FIELDS:
            raise BadRequestError(f"Invalid sortBy: {sort_by}")
        if order not in ("asc", "desc"):
            raise BadRequestError(f"Invalid order: {order}")
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)

        items = []
        for row in self.saved_repo.list_for_investor(user.id):
            if not row.get("properties"):
                continue
            property = PropertyRecord.from_db_row(row["properties"])
            items.append((row, property))

        if search:
            needle = search.strip().lower()
            items = [
                (row, property)
                for row, property in items
                if any(
                    needle in (text or "").lower()
                    for text in (property.title, property.address, property.city, property.postcode)
                )
            ]

        items.sort(key=lambda item: _sort_key(item, sort_by), reverse=order == "desc")

        total = len(items)
        start = (page - 1) * limit
        return {
            "properties": [
                {
                    "savedPropertyId": row["id"],
                    "savedAt": row.get("saved_at"),
                    "notes": row.get("notes"),
                    "property": property.to_card(),
                }
                for row, property in items[start : start + limit]
            ],
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit) if total else 0,
        }

    def save(self, user: UserProfile, property_id: str) -> dict:
        """
        Raises:
            NotFoundError: la propiedad no existe
            BadRequestError: no está activa o es del mismo usuario
        """
        self._require_investor(user)
        row = self.property_repo.get_by_id(property_id)
        if not row:
            raise NotFoundError("Property not found")
        property = PropertyRecord.from_db_row(row)
        if property.status != PropertyStatus.ACTIVE:
            raise BadRequestError("Property is not available for saving")
        if property.landlord_id == user.id:
            raise BadRequestError("You cannot save your own property")

        existing = self.saved_repo.get(user.id, property_id)
        if existing:
            return {
                "message": "Property already saved",
                "savedAt": existing.get("saved_at"),
                "alreadyExists": True,
            }

        try:
            saved = self.saved_repo.create(user.id, property_id)
        except ConflictError:
            # Otro request la guardó entre el get y el insert
            existing = self.saved_repo.get(user.id, property_id) or {}
            return {
                "message": "Property already saved",
                "savedAt": existing.get("saved_at"),
                "alreadyExists": True,
            }

        return {"message": "Property saved", "savedAt": saved.get("saved_at")}

    def is_saved(self, user: Optional[UserProfile], property_id: str) -> dict:
        if user is None or not user.is_investor:
            return {"isSaved": False, "savedAt": None}
        existing = self.saved_repo.get(user.id, property_id)
        return {
            "isSaved": existing is not None,
            "savedAt": existing.get("saved_at") if existing else None,
        }

    def update_notes(self, user: UserProfile, saved_id: str, notes) -> dict:
        """
        Raises:
            BadRequestError: notes no es string
            NotFoundError: no existe o es de otro investor
        """
        self._require_investor(user)
        if notes is not None and not isinstance(notes, str):
            raise BadRequestError("Notes must be a string")
        saved = self.saved_repo.update_notes(saved_id, user.id, notes.strip() if notes else None)
        if saved is None:
            raise NotFoundError("Saved property not found or not owned by user")
        logger.info("Notas actualizadas", saved_id=saved_id, investor_id=user.id)
        return {"savedProperty": saved, "message": "Notes updated successfully"}

    @staticmethod
    def _require_investor(user: Optional[UserProfile]) -> None:
        if user is None or not user.is_investor:
            raise PermissionDeniedError("This feature is for investors only")


def _sort_key(item: tuple[dict, PropertyRecord], sort_by: str):
    row, property = item
    if sort_by == "price":
        # Sin renta al final en orden ascendente
        rent = property.monthly_rent_minor_units
        return (rent is None, rent or 0)
    if sort_by == "property_name":
        return property.title.lower()
    return row.get("saved_at") or ""
