"""
Alta de propiedades en varios pasos.

El formulario guarda un borrador por paso (de un usuario logueado o
de una sesión anónima). Publicar crea la propiedad en status draft,
que después aprueba un admin.
"""

import uuid
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

import structlog

from aceprops.config import Settings, get_settings
from aceprops.database import (
    PropertyDraftRepository,
    PropertyRepository,
    UserProfileRepository,
)
from aceprops.errors import AuthenticationError, BadRequestError, DraftValidationError
from aceprops.models import PropertyDraft, UserProfile, UserType, validate_step

logger = structlog.get_logger()


class PropertyDraftService:
    """Guardado de pasos y publicación del borrador."""

    def __init__(
        self,
        draft_repo: Optional[PropertyDraftRepository] = None,
        property_repo: Optional[PropertyRepository] = None,
        user_repo: Optional[UserProfileRepository] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.draft_repo = draft_repo or PropertyDraftRepository()
        self.property_repo = property_repo or PropertyRepository()
        self.user_repo = user_repo or UserProfileRepository()

    def save_step(self, user: Optional[UserProfile], payload: dict) -> dict:
        """
        Valida y guarda un paso del formulario.

        Sin usuario, el borrador queda asociado al sessionId (se genera
        uno si el cliente no lo manda).

        Returns:
            {"draft", "sessionId"}

        Raises:
            BadRequestError: faltan datos o el paso no valida
        """
        step = payload.get("step")
        step_data = payload.get("stepData")
        if not step_data or not step or isinstance(step, bool) or not isinstance(step, int):
            raise BadRequestError("Step data and step number are required")

        try:
            clean = validate_step(step, step_data)
        except DraftValidationError as e:
            raise BadRequestError(str(e), details=e.errors or None) from e

        session_id = payload.get("sessionId") or str(uuid.uuid4())
        user_id = user.id if user else None
        existing = self.draft_repo.get_for_owner(user_id=user_id, session_id=session_id)

        if existing:
            row = self.draft_repo.update(
                existing["id"],
                {
                    f"step_{step}_data": clean,
                    "current_step": max(step, existing.get("current_step") or 1),
                },
            )
        else:
            row = self.draft_repo.create(
                {
                    "user_id": user_id,
                    "session_id": None if user_id else session_id,
                    f"step_{step}_data": clean,
                    "current_step": step,
                }
            )

        logger.info("Paso de borrador guardado", user_id=user_id, step=step)
        return {"draft": row, "sessionId": session_id}

    def get(self, user: Optional[UserProfile], session_id: Optional[str] = None) -> dict:
        """
        Raises:
            BadRequestError: usuario anónimo sin sessionId
        """
        if user is None and not session_id:
            raise BadRequestError("Session ID required for anonymous users")
        draft = self.draft_repo.get_for_owner(
            user_id=user.id if user else None, session_id=session_id
        )
        return {"draft": draft}

    def publish(self, user: Optional[UserProfile], now: Optional[datetime] = None) -> dict:
        """
        Crea la propiedad a partir del borrador del usuario.

        Un investor que publica pasa a ser landlord. La propiedad queda
        en status draft y el borrador se elimina.

        Raises:
            AuthenticationError: sin usuario
            BadRequestError: no hay borrador o le faltan campos
        """
        if user is None:
            raise AuthenticationError("Authentication required")
        now = now or datetime.now(ZoneInfo(self.settings.timezone))

        row = self.draft_repo.get_for_owner(user_id=user.id)
        if not row:
            raise BadRequestError("No property draft to publish")
        draft = PropertyDraft.from_db_row(row)

        missing = draft.missing_fields()
        if missing:
            raise BadRequestError(
                "Missing required property data fields", details=missing
            )

        if not (user.is_landlord or user.is_admin):
            self.user_repo.update_user_type(user.id, UserType.LANDLORD.value)
            logger.info("Usuario convertido a landlord", user_id=user.id)

        property = self.property_repo.create(
            draft.to_property_row(
                user.id,
                now.date(),
                {"name": user.full_name, "email": user.email, "phone": user.phone},
            )
        )
        self.draft_repo.delete(draft.id)

        logger.info("Propiedad publicada", user_id=user.id, property_id=property.get("id"))
        return {"property": property, "message": "Property published successfully"}
